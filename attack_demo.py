"""
FeatureKeys - Attack Demonstration

Run: python attack_demo.py

What it shows (and why attacks fail):
1) Flipping a bit in a sealed blob is detected by AES-GCM.
2) Swapping in a different ephemeral key is rejected.
3) A truncated blob is rejected before decryption.
4) The wrong private key cannot open a blob.
5) A fake root public key (not on the curve) cannot be used for derivation.
"""

from featurekeys.derivation import derive_address, generate_root_keypair
from featurekeys.encryption import EPHEMERAL_KEY_SIZE, decrypt, encrypt, generate_owner_keypair
from featurekeys.errors import FeatureKeyError


LINE = "=" * 70


def section(title: str):
    print(f"\n{LINE}\n{title}\n{LINE}")


def expect_failure(label: str, func, *args):
    try:
        func(*args)
        print(f"Unexpected: {label} succeeded")
    except FeatureKeyError as e:
        print(f"Expected failure: {type(e).__name__} ({e})")


def main():
    owner = generate_owner_keypair()
    blob = encrypt(owner.public_key, "updates@example.com")

    # 1) Ciphertext tampering
    section("Attack 1: Flip one ciphertext bit")
    tampered = bytearray(blob)
    tampered[-1] ^= 1
    expect_failure("tampered ciphertext", decrypt, owner.private_key, bytes(tampered))

    # 2) Ephemeral key substitution
    section("Attack 2: Replace the ephemeral public key")
    other = generate_owner_keypair()
    swapped = bytes.fromhex(other.public_key) + blob[EPHEMERAL_KEY_SIZE:]
    expect_failure("swapped ephemeral key", decrypt, owner.private_key, swapped)

    # 3) Truncation
    section("Attack 3: Truncate the blob")
    expect_failure("truncated blob", decrypt, owner.private_key, blob[:EPHEMERAL_KEY_SIZE])

    # 4) Wrong key
    section("Attack 4: Open with the wrong private key")
    expect_failure("wrong private key", decrypt, other.private_key, blob)

    # 5) Invalid root
    section("Attack 5: Derive from an invalid root public key")
    root = generate_root_keypair()
    fake_root = "04" + "00" * 64
    print(f"Real root address for feat-001: {derive_address(root.public_key, 'feat-001')}")
    expect_failure("invalid root", derive_address, fake_root, "feat-001")

    print("\nDemo complete. All showcased attacks failed as expected.")


if __name__ == "__main__":
    main()
