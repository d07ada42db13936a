"""
FeatureKeys - Funding Addresses and Sealed Messages for Feature Donations

Two independent, stateless components:

- derivation.py: feature ID → secp256k1 child key → checksummed address.
  Only the root PUBLIC key is needed to show an address; the root owner
  can recompute the matching private key.
- encryption.py: one-shot ECIES (P-256 ECDH + AES-256-GCM) so anyone can
  seal a short message to the owner's public key.

Supporting modules:
- errors.py: DecodeError / AuthenticationError and Ok/Err results
- encoding.py: hex and base64url helpers
- features.py: feature catalogue and identifier validation
- config.py: read-only configuration (environment overrides)
- cli.py: command-line interface (uses built-in argparse)

Usage:
    python -m featurekeys generate-root             # Root key pair (owner)
    python -m featurekeys address feat-001 --root <pubkey>
    python -m featurekeys derive feat-001 <root-private-key>
    python -m featurekeys generate                  # Owner P-256 key pair
    python -m featurekeys encrypt <owner-pubkey> "updates@example.com"
    python -m featurekeys decrypt <private-jwk> <blob>
"""

__version__ = "0.1.0"
__author__ = "FeatureKeys Team"

from .errors import AuthenticationError, ConfigError, DecodeError, Err, FeatureKeyError, Ok, attempt
from .derivation import (
    FeatureKeyDeriver,
    OwnerDeriver,
    address_from_public,
    derive_address,
    derive_private,
    derive_public,
    scalar_from_identifier,
)
from .encryption import MessageOpener, MessageSealer, decrypt, encrypt

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "DecodeError",
    "Err",
    "FeatureKeyError",
    "Ok",
    "attempt",
    "FeatureKeyDeriver",
    "OwnerDeriver",
    "address_from_public",
    "derive_address",
    "derive_private",
    "derive_public",
    "scalar_from_identifier",
    "MessageOpener",
    "MessageSealer",
    "decrypt",
    "encrypt",
]
