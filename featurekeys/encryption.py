"""
FeatureKeys - Hybrid Encryption (one-shot ECIES over P-256)

Lets anyone seal a short message (e.g. a contact e-mail) to the site
owner's fixed public key. Only the owner's private key can open it.

Security Architecture:
    1. Fresh ephemeral P-256 key pair per message
    2. ECDH(ephemeral private, owner public) → 32-byte shared secret
    3. Shared secret used directly as the AES-256-GCM key
    4. Fresh random 12-byte nonce → AES-GCM → ciphertext + 16-byte tag
    5. Blob = ephemeral public key (65) || nonce (12) || ciphertext+tag

Why this is secure:
    - No handshake: owner key is public and stable
    - Ephemeral key is discarded after sealing
    - AES-GCM tag detects any modification of nonce or ciphertext
    - Fresh key and nonce per call, so nonce reuse cannot happen

Compatibility note:
    There is no KDF between ECDH and AES. Blobs produced by the browser
    helper (WebCrypto deriveBits(256) imported as a raw AES key) depend on
    this exact layout, so changing it breaks every existing blob.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .encoding import b64url_decode, b64url_encode, bytes_to_hex, hex_to_bytes, normalize_hex
from .errors import AuthenticationError, DecodeError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

CURVE = ec.SECP256R1()
P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

EPHEMERAL_KEY_SIZE = 65  # 0x04 || X (32) || Y (32)
COMPRESSED_KEY_SIZE = 33
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag
SHARED_SECRET_SIZE = 32  # 256-bit AES key
PRIVATE_KEY_SIZE = 32

HEADER_SIZE = EPHEMERAL_KEY_SIZE + NONCE_SIZE
MIN_BLOB_SIZE = HEADER_SIZE + TAG_SIZE

PublicKeyInput = Union[ec.EllipticCurvePublicKey, bytes, str]
PrivateKeyInput = Union[ec.EllipticCurvePrivateKey, bytes, str, Dict[str, Any]]


@dataclass(frozen=True)
class OwnerKeyPair:
    """Owner key pair as exported for configuration and safekeeping."""
    public_key: str
    private_key: str
    jwk: Dict[str, Any]


# =============================================================================
# Key Handling
# =============================================================================

def load_public_key(data: PublicKeyInput) -> ec.EllipticCurvePublicKey:
    """
    Decode a P-256 public key from a raw SEC1 point.

    Args:
        data: Key object, 65-byte uncompressed or 33-byte compressed point,
              or the same as hex text

    Raises:
        DecodeError: Wrong length or point not on P-256
    """
    if isinstance(data, ec.EllipticCurvePublicKey):
        if not isinstance(data.curve, ec.SECP256R1):
            raise DecodeError(f"expected a P-256 key, got {data.curve.name}")
        return data
    if isinstance(data, str):
        data = hex_to_bytes(data, what="public key")
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError("public key must be bytes or hex text")
    if len(data) not in (EPHEMERAL_KEY_SIZE, COMPRESSED_KEY_SIZE):
        raise DecodeError(
            f"public key must be {EPHEMERAL_KEY_SIZE} or {COMPRESSED_KEY_SIZE} bytes, got {len(data)}"
        )

    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, bytes(data))
    except ValueError as e:
        raise DecodeError(f"invalid P-256 public key: {e}") from None


def _private_key_from_int(value: int) -> ec.EllipticCurvePrivateKey:
    if not 0 < value < P256_ORDER:
        raise DecodeError("private key out of range [1, n-1]")
    return ec.derive_private_key(value, CURVE)


def _private_key_from_jwk(jwk: Dict[str, Any]) -> ec.EllipticCurvePrivateKey:
    """
    Import a WebCrypto-style JWK ({"kty": "EC", "crv": "P-256", "d", "x", "y"}).

    If x and y are present they must match the public key implied by d.
    """
    if jwk.get("kty") != "EC" or jwk.get("crv") != "P-256":
        raise DecodeError("JWK must have kty=EC and crv=P-256")
    if "d" not in jwk:
        raise DecodeError("JWK has no private component 'd'")

    d = b64url_decode(jwk["d"], what="JWK 'd'")
    if len(d) != PRIVATE_KEY_SIZE:
        raise DecodeError(f"JWK 'd' must be {PRIVATE_KEY_SIZE} bytes, got {len(d)}")
    private_key = _private_key_from_int(int.from_bytes(d, "big"))

    if "x" in jwk or "y" in jwk:
        numbers = private_key.public_key().public_numbers()
        x = int.from_bytes(b64url_decode(jwk.get("x", ""), what="JWK 'x'"), "big")
        y = int.from_bytes(b64url_decode(jwk.get("y", ""), what="JWK 'y'"), "big")
        if (x, y) != (numbers.x, numbers.y):
            raise DecodeError("JWK public coordinates do not match 'd'")

    return private_key


def load_private_key(material: PrivateKeyInput) -> ec.EllipticCurvePrivateKey:
    """
    Decode P-256 private key material.

    Accepted forms:
        - EllipticCurvePrivateKey object
        - 32 raw bytes
        - hex scalar (64 hex chars, 0x prefix allowed)
        - JWK as dict or JSON text (what the browser tooling exports)

    Raises:
        DecodeError: Unrecognised or invalid key material
    """
    if isinstance(material, ec.EllipticCurvePrivateKey):
        if not isinstance(material.curve, ec.SECP256R1):
            raise DecodeError(f"expected a P-256 key, got {material.curve.name}")
        return material

    if isinstance(material, dict):
        return _private_key_from_jwk(material)

    if isinstance(material, (bytes, bytearray)):
        if len(material) != PRIVATE_KEY_SIZE:
            raise DecodeError(f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(material)}")
        return _private_key_from_int(int.from_bytes(material, "big"))

    if isinstance(material, str):
        text = material.strip()
        if text.startswith("{"):
            try:
                jwk = json.loads(text)
            except json.JSONDecodeError as e:
                raise DecodeError(f"private key JWK is not valid JSON: {e}") from None
            if not isinstance(jwk, dict):
                raise DecodeError("private key JWK must be a JSON object")
            return _private_key_from_jwk(jwk)
        raw = hex_to_bytes(normalize_hex(text), length=PRIVATE_KEY_SIZE, what="private key")
        return _private_key_from_int(int.from_bytes(raw, "big"))

    raise DecodeError("unsupported private key material")


def public_key_bytes(key: ec.EllipticCurvePublicKey) -> bytes:
    """Raw uncompressed point (65 bytes), same as WebCrypto exportKey('raw')."""
    return key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def public_key_hex(key: ec.EllipticCurvePublicKey) -> str:
    return bytes_to_hex(public_key_bytes(key))


def private_key_to_jwk(key: ec.EllipticCurvePrivateKey) -> Dict[str, Any]:
    """Export in the shape WebCrypto uses for exportKey('jwk')."""
    numbers = key.private_numbers()
    public_numbers = numbers.public_numbers
    return {
        "kty": "EC",
        "crv": "P-256",
        "d": b64url_encode(numbers.private_value.to_bytes(PRIVATE_KEY_SIZE, "big")),
        "x": b64url_encode(public_numbers.x.to_bytes(PRIVATE_KEY_SIZE, "big")),
        "y": b64url_encode(public_numbers.y.to_bytes(PRIVATE_KEY_SIZE, "big")),
        "ext": True,
        "key_ops": ["deriveKey", "deriveBits"],
    }


def generate_owner_keypair() -> OwnerKeyPair:
    """
    Generate a fresh P-256 owner key pair.

    public_key goes into the site configuration; private_key / jwk stay
    with the owner.
    """
    private_key = ec.generate_private_key(CURVE)
    value = private_key.private_numbers().private_value
    return OwnerKeyPair(
        public_key=public_key_hex(private_key.public_key()),
        private_key=value.to_bytes(PRIVATE_KEY_SIZE, "big").hex(),
        jwk=private_key_to_jwk(private_key),
    )


def _shared_key(private_key: ec.EllipticCurvePrivateKey, peer: ec.EllipticCurvePublicKey) -> bytes:
    """Raw ECDH x-coordinate (32 bytes), used as the AES-256 key as-is."""
    return private_key.exchange(ec.ECDH(), peer)


# =============================================================================
# Encryption
# =============================================================================

def encrypt(recipient_public: PublicKeyInput, plaintext: Union[bytes, str]) -> bytes:
    """
    Seal plaintext to a recipient public key.

    Args:
        recipient_public: Owner's P-256 public key (object, bytes or hex)
        plaintext: Message bytes (str is UTF-8 encoded)

    Returns:
        Blob: ephemeral public key (65) || nonce (12) || ciphertext + tag

    Raises:
        DecodeError: recipient_public is not a valid P-256 point
    """
    recipient = load_public_key(recipient_public)
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    # Fresh ephemeral key and nonce for every message
    ephemeral = ec.generate_private_key(CURVE)
    key = _shared_key(ephemeral, recipient)
    nonce = os.urandom(NONCE_SIZE)

    ciphertext = AESGCM(key).encrypt(nonce, bytes(plaintext), None)
    blob = public_key_bytes(ephemeral.public_key()) + nonce + ciphertext

    logger.debug("Sealed %d-byte message into %d-byte blob", len(plaintext), len(blob))
    return blob


def decrypt(recipient_private: PrivateKeyInput, blob: Union[bytes, str]) -> bytes:
    """
    Open a blob produced by encrypt().

    Args:
        recipient_private: Owner's private key material (see load_private_key)
        blob: Raw blob bytes or hex text

    Returns:
        Plaintext bytes

    Raises:
        DecodeError: Bad key material, truncated blob, or invalid ephemeral key
        AuthenticationError: Tag check failed (tampered blob or wrong key)
    """
    private_key = load_private_key(recipient_private)
    if isinstance(blob, str):
        blob = hex_to_bytes(blob, what="blob")
    if len(blob) < MIN_BLOB_SIZE:
        raise DecodeError(f"blob too short: {len(blob)} bytes, need at least {MIN_BLOB_SIZE}")

    ephemeral_bytes = bytes(blob[:EPHEMERAL_KEY_SIZE])
    nonce = bytes(blob[EPHEMERAL_KEY_SIZE:HEADER_SIZE])
    ciphertext = bytes(blob[HEADER_SIZE:])

    if ephemeral_bytes[0] != 0x04:
        raise DecodeError("ephemeral public key must be an uncompressed point")
    ephemeral = load_public_key(ephemeral_bytes)
    key = _shared_key(private_key, ephemeral)

    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise AuthenticationError("message authentication failed") from None


def encrypt_message(owner_public_hex: str, message: str) -> str:
    """Browser-helper equivalent: hex key in, hex blob out."""
    return bytes_to_hex(encrypt(owner_public_hex, message.encode("utf-8")))


def decrypt_message(private_material: PrivateKeyInput, blob_hex: str) -> str:
    """
    Open a hex blob and decode the message as UTF-8.

    Raises:
        DecodeError: Bad input, or plaintext is not UTF-8
        AuthenticationError: Tampered blob or wrong key
    """
    plaintext = decrypt(private_material, blob_hex)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecodeError("decrypted message is not valid UTF-8") from None


# =============================================================================
# Sealer Classes
# =============================================================================

class MessageSealer:
    """
    Encrypts messages to one owner public key.

    Usage:
        sealer = MessageSealer(owner_public_hex)
        blob_hex = sealer.seal_hex("updates@example.com")
    """

    def __init__(self, owner_public: PublicKeyInput):
        self.owner_public = load_public_key(owner_public)

    @classmethod
    def from_config(cls, config) -> "MessageSealer":
        return cls(config.OWNER_PUBLIC_KEY)

    def seal(self, plaintext: Union[bytes, str]) -> bytes:
        return encrypt(self.owner_public, plaintext)

    def seal_hex(self, message: str) -> str:
        return bytes_to_hex(self.seal(message))


class MessageOpener:
    """Decrypts blobs with the owner private key (owner tooling only)."""

    def __init__(self, owner_private: PrivateKeyInput):
        self._private_key = load_private_key(owner_private)

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._private_key.public_key()

    def open(self, blob: Union[bytes, str]) -> bytes:
        return decrypt(self._private_key, blob)

    def open_hex(self, blob_hex: str) -> str:
        return decrypt_message(self._private_key, blob_hex)
