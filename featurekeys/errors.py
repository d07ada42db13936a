"""
FeatureKeys - Errors and Typed Results

Every failure the core can produce is one of three kinds:

    DecodeError          bad hex, wrong length, point not on the curve,
                         private scalar out of range, malformed JWK
    AuthenticationError  AES-GCM tag did not verify
    ConfigError          a required configuration value is missing

A zero scalar is NOT an error: it is remapped to 1 where it can occur.

Callers that prefer values over exceptions can wrap any operation with
attempt(), which returns Ok(value) or Err(error).
"""

from dataclasses import dataclass
from typing import Any, Callable, Union


class FeatureKeyError(Exception):
    """Base class for all FeatureKeys failures."""


class DecodeError(FeatureKeyError, ValueError):
    """Input could not be decoded into a valid key, point or blob."""


class AuthenticationError(FeatureKeyError):
    """Ciphertext failed authentication (tampered, truncated tag, or wrong key)."""


class ConfigError(FeatureKeyError):
    """Required configuration is missing."""


# =============================================================================
# Typed Results
# =============================================================================

@dataclass(frozen=True)
class Ok:
    """Successful result."""
    value: Any

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed result. The error is kept, never replaced by a default value."""
    error: FeatureKeyError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok, Err]


def attempt(func: Callable[..., Any], *args, **kwargs) -> Result:
    """
    Run an operation and capture FeatureKeys failures as Err.

    Only FeatureKeyError subclasses are captured. Anything else
    (TypeError, bugs) propagates as usual.

    Example:
        result = attempt(decrypt, private_key, blob)
        if result.ok:
            print(result.value)
        else:
            print(f"rejected: {result.error}")
    """
    try:
        return Ok(func(*args, **kwargs))
    except FeatureKeyError as e:
        return Err(e)
