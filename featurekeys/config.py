"""
Configuration for FeatureKeys tooling.

Values are read once at start-up and never mutated. Library classes take
their keys explicitly; only the command-line tool reads the global
instance below.
"""

import logging
import os
from dataclasses import dataclass

from .errors import ConfigError

# Owner P-256 key that contact details are sealed to
DEFAULT_OWNER_PUBLIC_KEY = (
    "04941caf7c02e18bae7d9593670a5ca4a19d6b27c689dd432bd39169a43f9c16b7"
    "e2ed686dc7e4f9a80e8034814809f3eccb492d43e40137ef320b60755081c2fd"
)


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    # secp256k1 root public key for funding addresses (hex, 33 or 65 bytes)
    ROOT_PUBLIC_KEY: str = os.getenv("FEATUREKEYS_ROOT_PUBKEY", "")

    # P-256 owner public key for contact encryption (hex, 65 bytes)
    OWNER_PUBLIC_KEY: str = os.getenv("FEATUREKEYS_OWNER_PUBKEY", DEFAULT_OWNER_PUBLIC_KEY)

    LOG_LEVEL: str = os.getenv("FEATUREKEYS_LOG_LEVEL", "WARNING")

    @property
    def has_root_public_key(self) -> bool:
        return bool(self.ROOT_PUBLIC_KEY.strip())

    def require_root_public_key(self) -> str:
        """
        Return the configured root public key.

        Raises:
            ConfigError: FEATUREKEYS_ROOT_PUBKEY is not set
        """
        if not self.has_root_public_key:
            raise ConfigError(
                "No root public key configured (set FEATUREKEYS_ROOT_PUBKEY or pass --root)"
            )
        return self.ROOT_PUBLIC_KEY.strip()


def setup_logging(level: str = "WARNING") -> None:
    """Configure a stderr stream handler for the command-line tool."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global config instance
config = Config()
