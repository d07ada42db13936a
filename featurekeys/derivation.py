"""
FeatureKeys - Deterministic Address Derivation (secp256k1)

Maps any feature identifier to its own funding address without storing a
per-feature secret.

How it works:
    1. Feature ID → keccak256 → scalar s (mod n, never zero)
    2. Child public key  = RootPublic * s      (anyone can compute)
    3. Child private key = RootPrivate * s mod n  (only the root owner)
    4. Address = last 20 bytes of keccak256(child public key, uncompressed,
       without the 0x04 prefix), EIP-55 checksummed

Why this works:
    - G * (k * s) == (G * k) * s, so both sides always agree
    - The site only needs the root PUBLIC key to show an address
    - Funds sent to the address can only be moved by the root owner

This is a single flat namespace (one root, many identifiers), not a BIP-32
tree. Identical identifiers always produce identical addresses.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from coincurve import PrivateKey, PublicKey
from eth_utils import keccak, to_checksum_address

from .encoding import bytes_to_hex, hex_to_bytes, normalize_hex
from .errors import DecodeError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

PRIVATE_KEY_SIZE = 32
COMPRESSED_POINT_SIZE = 33
UNCOMPRESSED_POINT_SIZE = 65
ADDRESS_SIZE = 20

PublicKeyInput = Union[PublicKey, bytes, str]
PrivateKeyInput = Union[bytes, str, int]


@dataclass(frozen=True)
class RootKeyPair:
    """A root key pair. private_key is None on the address-consuming side."""
    private_key: Optional[str]
    public_key: str
    address: str


@dataclass(frozen=True)
class DerivedKey:
    """Child key for one feature identifier (hex values, no 0x prefix)."""
    identifier: str
    public_key: str
    address: str
    private_key: Optional[str] = None


# =============================================================================
# Key Decoding
# =============================================================================

def load_root_public_key(data: PublicKeyInput) -> PublicKey:
    """
    Decode a secp256k1 public key.

    Args:
        data: coincurve PublicKey, raw SEC1 bytes (33 or 65), or hex text

    Returns:
        coincurve PublicKey (always a valid point, never infinity)

    Raises:
        DecodeError: Bad hex, wrong length, or point not on the curve
    """
    if isinstance(data, PublicKey):
        return data
    if isinstance(data, str):
        data = hex_to_bytes(data, what="public key")
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError("public key must be bytes or hex text")
    if len(data) not in (COMPRESSED_POINT_SIZE, UNCOMPRESSED_POINT_SIZE):
        raise DecodeError(
            f"public key must be {COMPRESSED_POINT_SIZE} or "
            f"{UNCOMPRESSED_POINT_SIZE} bytes, got {len(data)}"
        )

    try:
        return PublicKey(bytes(data))
    except ValueError as e:
        raise DecodeError(f"invalid secp256k1 public key: {e}") from None


def load_root_private_key(data: PrivateKeyInput) -> PrivateKey:
    """
    Decode a secp256k1 private scalar.

    Accepts 32 raw bytes, hex text (0x prefix optional, left-padded to 32
    bytes), or an int. Must lie in [1, n-1].

    Raises:
        DecodeError: Bad encoding or scalar out of range
    """
    if isinstance(data, bool):
        raise DecodeError("private key must be bytes, hex text or int")
    if isinstance(data, int):
        if not 0 < data < SECP256K1_ORDER:
            raise DecodeError("private key out of range [1, n-1]")
        data = data.to_bytes(PRIVATE_KEY_SIZE, "big")
    elif isinstance(data, str):
        cleaned = normalize_hex(data)
        if len(cleaned) % 2:
            cleaned = "0" + cleaned
        raw = hex_to_bytes(cleaned, what="private key")
        if len(raw) > PRIVATE_KEY_SIZE:
            raise DecodeError(f"private key must be at most {PRIVATE_KEY_SIZE} bytes")
        data = raw.rjust(PRIVATE_KEY_SIZE, b"\x00")
    elif not isinstance(data, (bytes, bytearray)):
        raise DecodeError("private key must be bytes, hex text or int")

    if len(data) != PRIVATE_KEY_SIZE:
        raise DecodeError(f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(data)}")

    try:
        return PrivateKey(bytes(data))
    except ValueError:
        raise DecodeError("private key out of range [1, n-1]") from None


# =============================================================================
# Derivation
# =============================================================================

def scalar_from_identifier(identifier: str) -> int:
    """
    Hash a feature identifier to a nonzero scalar.

    scalar = keccak256(UTF-8 bytes) mod n, with 0 remapped to 1
    (a zero scalar would give the point at infinity).

    The empty string is accepted here; rejecting it is the caller's job
    (see features.validate_identifier).
    """
    digest = keccak(identifier.encode("utf-8"))
    # identifier is public, so the reduction leaks nothing secret
    scalar = int.from_bytes(digest, "big") % SECP256K1_ORDER
    return scalar if scalar != 0 else 1


def _scalar_bytes(identifier: str) -> bytes:
    return scalar_from_identifier(identifier).to_bytes(PRIVATE_KEY_SIZE, "big")


def derive_public(root_public: PublicKeyInput, identifier: str) -> PublicKey:
    """
    Child public key = root_public * scalar(identifier).

    Raises:
        DecodeError: root_public is not a valid secp256k1 point
    """
    root = load_root_public_key(root_public)
    return root.multiply(_scalar_bytes(identifier))


def derive_private(root_private: PrivateKeyInput, identifier: str) -> bytes:
    """
    Child private key = root_private * scalar(identifier) mod n.

    OWNER ONLY. The multiplication runs inside libsecp256k1
    (constant-time scalar tweak), not in Python integers.

    Returns:
        32-byte big-endian child private key

    Raises:
        DecodeError: root_private is not a valid scalar
    """
    root = load_root_private_key(root_private)
    child = root.multiply(_scalar_bytes(identifier))
    secret = child.secret
    # zero product is remapped to 1, same policy as scalar_from_identifier
    if not any(secret):
        return (1).to_bytes(PRIVATE_KEY_SIZE, "big")
    return secret


def public_key_from_private(private_key: PrivateKeyInput) -> PublicKey:
    """G * private_key."""
    return load_root_private_key(private_key).public_key


def address_from_public(point: PublicKeyInput) -> str:
    """
    Ethereum-style address of a public key.

    keccak256(uncompressed point without the 0x04 byte)[-20:],
    EIP-55 mixed-case checksum, 0x prefix.
    """
    key = load_root_public_key(point)
    uncompressed = key.format(compressed=False)
    digest = keccak(uncompressed[1:])
    return to_checksum_address("0x" + digest[-ADDRESS_SIZE:].hex())


def derive_address(root_public: PublicKeyInput, identifier: str) -> str:
    """Funding address for identifier. No private key needed."""
    address = address_from_public(derive_public(root_public, identifier))
    logger.debug("Derived address %s for feature %r", address, identifier)
    return address


def derive_key(root_private: PrivateKeyInput, identifier: str) -> DerivedKey:
    """
    Full owner-side derivation: child private key, public key and address.

    Returns:
        DerivedKey with all fields populated (hex, no 0x prefix)
    """
    child_private = derive_private(root_private, identifier)
    child_public = PrivateKey(child_private).public_key
    return DerivedKey(
        identifier=identifier,
        private_key=bytes_to_hex(child_private),
        public_key=bytes_to_hex(child_public.format(compressed=False)),
        address=address_from_public(child_public),
    )


def generate_root_keypair() -> RootKeyPair:
    """
    Generate a fresh secp256k1 root key pair (OS CSPRNG via libsecp256k1).

    The private key must be kept offline by the owner. Only public_key
    goes into the site configuration.
    """
    private_key = PrivateKey()
    public_key = private_key.public_key
    return RootKeyPair(
        private_key=private_key.to_hex(),
        public_key=bytes_to_hex(public_key.format(compressed=False)),
        address=address_from_public(public_key),
    )


# =============================================================================
# Deriver Classes
# =============================================================================

class FeatureKeyDeriver:
    """
    Address deriver bound to one root public key.

    Usage:
        deriver = FeatureKeyDeriver(root_public_hex)
        address = deriver.address("feat-001")

    Several derivers with different roots can coexist.
    """

    def __init__(self, root_public: PublicKeyInput):
        """
        Args:
            root_public: Root public key (PublicKey, SEC1 bytes, or hex)

        Raises:
            DecodeError: Invalid root public key
        """
        self.root_public = load_root_public_key(root_public)

    @classmethod
    def from_config(cls, config) -> "FeatureKeyDeriver":
        return cls(config.require_root_public_key())

    @property
    def root_public_hex(self) -> str:
        return bytes_to_hex(self.root_public.format(compressed=False))

    def scalar(self, identifier: str) -> int:
        return scalar_from_identifier(identifier)

    def public_key(self, identifier: str) -> PublicKey:
        return derive_public(self.root_public, identifier)

    def address(self, identifier: str) -> str:
        return derive_address(self.root_public, identifier)

    def derive(self, identifier: str) -> DerivedKey:
        """Public-only derivation (private_key is None)."""
        child = self.public_key(identifier)
        return DerivedKey(
            identifier=identifier,
            public_key=bytes_to_hex(child.format(compressed=False)),
            address=address_from_public(child),
        )


class OwnerDeriver(FeatureKeyDeriver):
    """Deriver for the root owner: also computes child private keys."""

    def __init__(self, root_private: PrivateKeyInput):
        self._root_private = load_root_private_key(root_private)
        super().__init__(self._root_private.public_key)

    def private_key(self, identifier: str) -> bytes:
        return derive_private(self._root_private.secret, identifier)

    def derive(self, identifier: str) -> DerivedKey:
        return derive_key(self._root_private.secret, identifier)
