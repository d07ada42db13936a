"""
Feature catalogue: each fundable feature gets its own derived address.

Identifier validation lives here, not in the derivation core: the core
accepts any string (including ""), the catalogue does not.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Feature:
    id: str
    title: str
    description: str
    funding_address: Optional[str] = None


DEFAULT_FEATURES = (
    Feature(
        id="feat-001",
        title="Dark Mode Support",
        description="Add a comprehensive dark mode theme across the entire application.",
    ),
    Feature(
        id="feat-002",
        title="Mobile Application",
        description="Develop a native mobile application for iOS and Android.",
    ),
    Feature(
        id="feat-003",
        title="Staking Rewards",
        description="Implement a staking mechanism for governance tokens.",
    ),
)


def validate_identifier(identifier: str) -> str:
    """
    Reject identifiers that should never reach the deriver.

    Raises:
        ValueError: Not a string, empty, or whitespace only
    """
    if not isinstance(identifier, str):
        raise ValueError("Feature identifier must be a string")
    if not identifier.strip():
        raise ValueError("Feature identifier must not be empty")
    return identifier


def assign_funding_addresses(features: Iterable[Feature], deriver) -> List[Feature]:
    """
    Derive a funding address for every feature.

    Args:
        features: Features to process (funding_address is overwritten)
        deriver: FeatureKeyDeriver (or anything with .address(identifier))

    Returns:
        New Feature objects with funding_address set, in input order

    Raises:
        ValueError: Empty or duplicate identifier
    """
    seen = set()
    result = []
    for feature in features:
        validate_identifier(feature.id)
        if feature.id in seen:
            raise ValueError(f"Duplicate feature identifier: {feature.id!r}")
        seen.add(feature.id)
        result.append(replace(feature, funding_address=deriver.address(feature.id)))

    logger.debug("Assigned funding addresses to %d features", len(result))
    return result
