"""
FeatureKeys - Self-Tests

Run with: pytest
      or: python test_simple.py   (fixture-free tests only)

Proves correctness and shows how misuse and tampering fail:
- Address derivation is deterministic and matches known vectors
- Owner-side private keys agree with public-side addresses
- Degenerate inputs never produce infinity or a zero key
- Sealed messages round-trip, including blobs sealed by the browser helper
- Any modification of a blob is rejected
"""

import json
import sys

import pytest

from featurekeys import derivation, encryption
from featurekeys.encoding import b64url_decode
from featurekeys.derivation import (
    SECP256K1_ORDER,
    FeatureKeyDeriver,
    OwnerDeriver,
    address_from_public,
    derive_address,
    derive_key,
    derive_private,
    derive_public,
    generate_root_keypair,
    load_root_public_key,
    public_key_from_private,
    scalar_from_identifier,
)
from featurekeys.encryption import (
    EPHEMERAL_KEY_SIZE,
    HEADER_SIZE,
    MIN_BLOB_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    MessageOpener,
    MessageSealer,
    decrypt,
    decrypt_message,
    encrypt,
    encrypt_message,
    generate_owner_keypair,
    load_private_key,
    load_public_key,
    public_key_hex,
)
from featurekeys.errors import AuthenticationError, DecodeError, Err, FeatureKeyError, Ok, attempt


# =============================================================================
# Known Vectors
# =============================================================================

# secp256k1 generator (private key 1)
GENERATOR_HEX = (
    "0479be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8"
)

ROOT_PRIVATE = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ROOT_PUBLIC = (
    "044e3b81af9c2234cad09d679ce6035ed1392347ce64ce405f5dcd36228a25de6e"
    "47fd35c4215d1edf53e6f83de344615ce719bdb0fd878f6ed76f06dd277956de"
)
ROOT_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

# Cross-language conformance vectors for ROOT_PUBLIC
FEAT_001_SCALAR = 0xFC3D9BF34CC14F6925A2E505C96E1D748E518B8943F4E0DB9F749889DDCA6955
FEAT_001_PRIVATE = "5aa4d9964044196080162cbff88f3f44ec6f02405c96685099a2de9dd3ed6ea8"
FEAT_001_ADDRESS = "0xb4808Ab1721A6f2A00d1505B6C591e9eAE38a8B1"
FEAT_002_ADDRESS = "0xfA289b305b3A1A61B6d50f44125924327b68e7f1"
EMPTY_ID_PRIVATE = "e7f4c940120cd68cad6d741ab1af2130347365a283bfccde6141b23795b14c14"
EMPTY_ID_ADDRESS = "0x0eB946b5F123A98633B5d2874FA5710DBF46DBbF"

# Fixed P-256 owner key and a blob sealed by the browser helper (WebCrypto)
P256_PRIVATE = "c9afa9d845ba75166b5c215767b1d6934e50c3db36e89b127b8a622b120f6721"
P256_PUBLIC = (
    "0460fed4ba255a9d31c961eb74c6356d68c049b8923b61fa6ce669622e60f29fb6"
    "7903fe1008b8bc99a41ae9e95628bc64f2f1b20c2d7e9f5177a3c294d4462299"
)
P256_JWK = (
    '{"kty":"EC","x":"YP7UuiVanTHJYet0xjVtaMBJuJI7Yfps5mliLmDyn7Y",'
    '"y":"eQP-EAi4vJmkGunpVii8ZPLxsgwtfp9Rd6PClNRGIpk","crv":"P-256",'
    '"d":"ya-p2EW6dRZrXCFXZ7HWk05Qw9s26JsSe4piKxIPZyE"}'
)
BROWSER_BLOB = (
    "049ad6356ee1c9826d19a4c2b91b54fc40a41a6d1bab8a0cb5eceb41a9564a34d1"
    "8ad55ff315c033339b5ab0cb969fb649745f92401dc39a7072ae0367fe7b04be0b"
    "9635dbe1d46f2facd5109a2d5a832c1ece4104d18f322567cd4c9dd49e772c4424"
    "cb1721c0a6f688a91751554e36"
)
CONTACT = "updates@example.com"


# =============================================================================
# Derivation
# =============================================================================

def test_scalar_vectors():
    """Scalar is keccak256(id) mod n."""
    assert scalar_from_identifier("") == 0xC5D2460186F7233C927E7DB2DCC703C0E500B653CA82273B7BFAD8045D85A470
    assert scalar_from_identifier("abc") == 0x4E03657AEA45A94FC7D47BA826C8D667C0D1E6E33A64A036EC44F58FA12D6C45
    assert scalar_from_identifier("feat-001") == FEAT_001_SCALAR


def test_scalar_reduction_and_zero_remap(monkeypatch):
    """Hash values >= n are reduced; a zero result becomes 1."""
    monkeypatch.setattr(derivation, "keccak", lambda data: SECP256K1_ORDER.to_bytes(32, "big"))
    assert scalar_from_identifier("anything") == 1

    monkeypatch.setattr(derivation, "keccak", lambda data: (SECP256K1_ORDER + 5).to_bytes(32, "big"))
    assert scalar_from_identifier("anything") == 5


def test_known_addresses():
    """Private keys 1 and 2 have well-known addresses."""
    assert address_from_public(GENERATOR_HEX) == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
    assert address_from_public(public_key_from_private(2)) == "0x2B5AD5c4795c026514f8317c7a215E218DcCD6cF"
    assert address_from_public(ROOT_PUBLIC) == ROOT_ADDRESS


def test_feat_001_conformance_vector():
    """feat-001 under the fixed root derives the same address in every implementation."""
    assert derive_address(ROOT_PUBLIC, "feat-001") == FEAT_001_ADDRESS
    assert derive_address(ROOT_PUBLIC, "feat-002") == FEAT_002_ADDRESS
    assert derive_private(ROOT_PRIVATE, "feat-001").hex() == FEAT_001_PRIVATE


def test_derivation_is_deterministic():
    for identifier in ["feat-001", "Dark Mode", "ünïcødé ✓", "x" * 1000]:
        assert derive_address(ROOT_PUBLIC, identifier) == derive_address(ROOT_PUBLIC, identifier)


def test_different_identifiers_differ():
    addresses = {derive_address(ROOT_PUBLIC, f"feat-{i:03d}") for i in range(20)}
    assert len(addresses) == 20


def test_public_and_private_derivation_agree():
    """G * derive_private(k, id) == derive_public(G * k, id)."""
    for identifier in ["feat-001", "feat-002", "", "🚀"]:
        child_private = derive_private(ROOT_PRIVATE, identifier)
        from_private = public_key_from_private(child_private)
        from_public = derive_public(ROOT_PUBLIC, identifier)
        assert from_private.format(compressed=False) == from_public.format(compressed=False)
        assert address_from_public(from_public) == derive_address(ROOT_PUBLIC, identifier)


def test_generator_root_gives_scalar_as_private_key():
    """With root private key 1 the child private key is just the scalar."""
    child = derive_private(1, "feat-001")
    assert int.from_bytes(child, "big") == FEAT_001_SCALAR
    assert derive_public(GENERATOR_HEX, "feat-001").format() == public_key_from_private(child).format()


def test_empty_identifier_is_not_degenerate():
    """The core accepts "" and still yields a valid key and address."""
    child = derive_private(ROOT_PRIVATE, "")
    assert child.hex() == EMPTY_ID_PRIVATE
    assert int.from_bytes(child, "big") != 0
    assert derive_address(ROOT_PUBLIC, "") == EMPTY_ID_ADDRESS


def test_compressed_root_public_key_accepted():
    compressed = load_root_public_key(ROOT_PUBLIC).format(compressed=True)
    assert len(compressed) == 33
    assert derive_address(compressed, "feat-001") == FEAT_001_ADDRESS
    assert derive_address("0x" + compressed.hex(), "feat-001") == FEAT_001_ADDRESS


def test_invalid_root_public_key_rejected():
    off_curve = "04" + "00" * 64
    for bad in ["zz", "04abcd", off_curve, "02" + "ff" * 32, b"\x04" * 10]:
        with pytest.raises(DecodeError):
            derive_address(bad, "feat-001")


def test_invalid_root_private_key_rejected():
    for bad in [0, SECP256K1_ORDER, "00" * 32, "ff" * 32, "not hex", "11" * 33]:
        with pytest.raises(DecodeError):
            derive_private(bad, "feat-001")


def test_private_key_hex_forms():
    """0x prefix and short hex are accepted for the root private key."""
    expected = derive_private(ROOT_PRIVATE, "feat-001")
    assert derive_private("0x" + ROOT_PRIVATE, "feat-001") == expected
    assert derive_private("1", "feat-001") == derive_private(1, "feat-001")


def test_derive_key_populates_all_fields():
    derived = derive_key(ROOT_PRIVATE, "feat-001")
    assert derived.identifier == "feat-001"
    assert derived.private_key == FEAT_001_PRIVATE
    assert derived.address == FEAT_001_ADDRESS
    assert derived.public_key.startswith("04") and len(derived.public_key) == 130


def test_deriver_classes():
    """Public deriver and owner deriver agree; several roots coexist."""
    public = FeatureKeyDeriver(ROOT_PUBLIC)
    owner = OwnerDeriver(ROOT_PRIVATE)
    other = FeatureKeyDeriver(GENERATOR_HEX)

    assert public.root_public_hex == ROOT_PUBLIC
    assert owner.root_public_hex == ROOT_PUBLIC
    assert public.address("feat-001") == owner.address("feat-001") == FEAT_001_ADDRESS
    assert other.address("feat-001") != FEAT_001_ADDRESS

    public_view = public.derive("feat-001")
    owner_view = owner.derive("feat-001")
    assert public_view.private_key is None
    assert owner_view.private_key == FEAT_001_PRIVATE
    assert public_view.public_key == owner_view.public_key
    assert owner.private_key("feat-001").hex() == FEAT_001_PRIVATE


def test_generate_root_keypair():
    keypair = generate_root_keypair()
    assert len(keypair.private_key) == 64
    assert address_from_public(public_key_from_private(keypair.private_key)) == keypair.address
    assert derive_address(keypair.public_key, "feat-001") == derive_key(keypair.private_key, "feat-001").address


# =============================================================================
# Encryption
# =============================================================================

def test_round_trip_fixed_key():
    blob = encrypt(P256_PUBLIC, CONTACT)
    assert decrypt(P256_PRIVATE, blob) == CONTACT.encode("utf-8")
    assert decrypt_message(P256_PRIVATE, encrypt_message(P256_PUBLIC, CONTACT)) == CONTACT


def test_round_trip_various_plaintexts():
    keypair = generate_owner_keypair()
    for plaintext in [b"", b"x", "ünïcødé".encode("utf-8"), bytes(range(256)) * 4]:
        assert decrypt(keypair.private_key, encrypt(keypair.public_key, plaintext)) == plaintext


def test_blob_layout():
    blob = encrypt(P256_PUBLIC, CONTACT)
    assert len(blob) == HEADER_SIZE + len(CONTACT) + TAG_SIZE
    assert blob[0] == 0x04
    load_public_key(blob[:EPHEMERAL_KEY_SIZE])


def test_decrypts_browser_blob():
    """Blob sealed by WebCrypto (raw ECDH bits as AES key) opens unchanged."""
    assert decrypt_message(P256_PRIVATE, BROWSER_BLOB) == CONTACT
    assert decrypt_message(P256_JWK, BROWSER_BLOB) == CONTACT


def test_ciphertext_is_not_deterministic():
    first = encrypt(P256_PUBLIC, CONTACT)
    second = encrypt(P256_PUBLIC, CONTACT)
    assert first != second
    assert first[:EPHEMERAL_KEY_SIZE] != second[:EPHEMERAL_KEY_SIZE]
    assert first[EPHEMERAL_KEY_SIZE:HEADER_SIZE] != second[EPHEMERAL_KEY_SIZE:HEADER_SIZE]


def test_tampering_nonce_or_ciphertext_fails_authentication():
    blob = encrypt(P256_PUBLIC, CONTACT)
    for index in range(EPHEMERAL_KEY_SIZE, len(blob)):
        for bit in (0, 7):
            tampered = bytearray(blob)
            tampered[index] ^= 1 << bit
            with pytest.raises(AuthenticationError):
                decrypt(P256_PRIVATE, bytes(tampered))


def test_tampering_ephemeral_key_is_rejected():
    """A modified ephemeral key is either not a point or yields the wrong key."""
    blob = encrypt(P256_PUBLIC, CONTACT)
    for index in range(EPHEMERAL_KEY_SIZE):
        tampered = bytearray(blob)
        tampered[index] ^= 0x01
        with pytest.raises(FeatureKeyError):
            decrypt(P256_PRIVATE, bytes(tampered))


def test_wrong_private_key_fails_authentication():
    blob = encrypt(P256_PUBLIC, CONTACT)
    other = generate_owner_keypair()
    with pytest.raises(AuthenticationError):
        decrypt(other.private_key, blob)


def test_truncated_blob_rejected():
    blob = encrypt(P256_PUBLIC, CONTACT)
    with pytest.raises(DecodeError):
        decrypt(P256_PRIVATE, blob[:MIN_BLOB_SIZE - 1])
    with pytest.raises(DecodeError):
        decrypt(P256_PRIVATE, blob[:HEADER_SIZE])
    # Long enough to parse but the tag is cut off
    with pytest.raises(AuthenticationError):
        decrypt(P256_PRIVATE, blob[:-1])


def test_invalid_recipient_public_key_rejected():
    for bad in ["04" + "00" * 64, "not hex", "04" + "11" * 10, b"\x05" + b"\x01" * 64]:
        with pytest.raises(DecodeError):
            encrypt(bad, CONTACT)


def test_secp256k1_key_rejected_for_encryption():
    """The encryption curve is P-256, not the derivation curve."""
    with pytest.raises(DecodeError):
        encrypt(ROOT_PUBLIC, CONTACT)


def test_non_utf8_plaintext_is_decode_error():
    blob = encrypt(P256_PUBLIC, b"\xff\xfe")
    with pytest.raises(DecodeError):
        decrypt_message(P256_PRIVATE, blob.hex())


def test_private_key_material_forms():
    from_hex = load_private_key(P256_PRIVATE)
    from_jwk = load_private_key(P256_JWK)
    from_bytes = load_private_key(bytes.fromhex(P256_PRIVATE))
    for key in (from_hex, from_jwk, from_bytes):
        assert public_key_hex(key.public_key()) == P256_PUBLIC


def test_invalid_private_key_material_rejected():
    bad_jwk = P256_JWK.replace("YP7U", "ZP7U")
    for bad in ["{not json", "[]", '{"kty":"RSA"}', '{"kty":"EC","crv":"P-256"}', bad_jwk,
                "00" * 32, "ff" * 32, "abcd", b"\x01" * 31, 12345]:
        with pytest.raises(DecodeError):
            load_private_key(bad)


def test_jwk_with_stray_base64url_characters_rejected():
    """Characters outside the base64url alphabet are not silently dropped."""
    jwk = json.loads(P256_JWK)
    jwk["d"] = jwk["d"][:10] + "!!!!" + jwk["d"][10:]
    with pytest.raises(DecodeError):
        load_private_key(jwk)
    with pytest.raises(DecodeError):
        load_private_key(json.dumps(jwk))
    with pytest.raises(DecodeError):
        b64url_decode("ya-p2EW6!dRZ")
    assert b64url_decode("ya-p2EW6") == bytes.fromhex("c9afa9d845ba")


def test_generated_jwk_round_trip():
    keypair = generate_owner_keypair()
    assert keypair.jwk["kty"] == "EC" and keypair.jwk["crv"] == "P-256"
    key = load_private_key(keypair.jwk)
    assert public_key_hex(key.public_key()) == keypair.public_key


def test_sealer_classes():
    sealer = MessageSealer(P256_PUBLIC)
    opener = MessageOpener(P256_JWK)
    assert public_key_hex(opener.public_key) == P256_PUBLIC
    assert opener.open(sealer.seal(CONTACT)) == CONTACT.encode("utf-8")
    assert opener.open_hex(sealer.seal_hex(CONTACT)) == CONTACT


# =============================================================================
# Typed Results
# =============================================================================

def test_attempt_returns_ok_and_err():
    ok = attempt(derive_address, ROOT_PUBLIC, "feat-001")
    assert isinstance(ok, Ok) and ok.ok and ok.unwrap() == FEAT_001_ADDRESS

    err = attempt(decrypt, P256_PRIVATE, b"\x00" * 10)
    assert isinstance(err, Err) and not err.ok
    assert isinstance(err.error, DecodeError)
    with pytest.raises(DecodeError):
        err.unwrap()

    tampered = bytearray(encrypt(P256_PUBLIC, CONTACT))
    tampered[-1] ^= 0x80
    assert isinstance(attempt(decrypt, P256_PRIVATE, bytes(tampered)).error, AuthenticationError)


def test_attempt_does_not_capture_programming_errors():
    def broken():
        raise TypeError("bug")

    with pytest.raises(TypeError):
        attempt(broken)


def test_module_level_encryption_constants():
    assert (EPHEMERAL_KEY_SIZE, NONCE_SIZE, TAG_SIZE) == (65, 12, 16)
    assert encryption.HEADER_SIZE == 77


def run_all_tests():
    """Run the fixture-free tests without pytest."""
    print("=" * 70)
    print("FeatureKeys - Self-Test Suite")
    print("=" * 70)
    print()

    tests = [
        test_scalar_vectors,
        test_known_addresses,
        test_feat_001_conformance_vector,
        test_derivation_is_deterministic,
        test_different_identifiers_differ,
        test_public_and_private_derivation_agree,
        test_generator_root_gives_scalar_as_private_key,
        test_empty_identifier_is_not_degenerate,
        test_compressed_root_public_key_accepted,
        test_invalid_root_public_key_rejected,
        test_invalid_root_private_key_rejected,
        test_private_key_hex_forms,
        test_derive_key_populates_all_fields,
        test_deriver_classes,
        test_generate_root_keypair,
        test_round_trip_fixed_key,
        test_round_trip_various_plaintexts,
        test_blob_layout,
        test_decrypts_browser_blob,
        test_ciphertext_is_not_deterministic,
        test_tampering_nonce_or_ciphertext_fails_authentication,
        test_tampering_ephemeral_key_is_rejected,
        test_wrong_private_key_fails_authentication,
        test_truncated_blob_rejected,
        test_invalid_recipient_public_key_rejected,
        test_secp256k1_key_rejected_for_encryption,
        test_non_utf8_plaintext_is_decode_error,
        test_private_key_material_forms,
        test_invalid_private_key_material_rejected,
        test_jwk_with_stray_base64url_characters_rejected,
        test_generated_jwk_round_trip,
        test_sealer_classes,
        test_attempt_returns_ok_and_err,
        test_attempt_does_not_capture_programming_errors,
        test_module_level_encryption_constants,
    ]

    failed = []

    for test in tests:
        try:
            test()
            print(f"  [OK] {test.__name__}")
        except Exception as e:
            print(f"  [FAIL] {test.__name__}: {e!r}")
            failed.append((test.__name__, e))

    print()
    print("=" * 70)
    if not failed:
        print("[OK] ALL TESTS PASSED!")
    else:
        print(f"[FAIL] {len(failed)} TESTS FAILED:")
        for name, error in failed:
            print(f"  - {name}: {error!r}")
    print("=" * 70)

    return len(failed) == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
