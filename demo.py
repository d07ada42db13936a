"""
FeatureKeys - Guided Walkthrough (single run, no user input)

Run: python demo.py

Simulates what the site owner and a donor see and explains what happens
under the hood:
 - Owner creates a secp256k1 root key pair (kept offline)
 - Site derives a funding address per feature from the root PUBLIC key
 - Owner recomputes the matching private key for one feature
 - Owner creates a P-256 key pair for contact messages
 - Donor seals an e-mail address to the owner's public key
 - Owner opens the sealed message
"""

from textwrap import indent

from featurekeys.derivation import (
    FeatureKeyDeriver,
    OwnerDeriver,
    generate_root_keypair,
    scalar_from_identifier,
)
from featurekeys.encryption import (
    EPHEMERAL_KEY_SIZE,
    HEADER_SIZE,
    MessageOpener,
    MessageSealer,
    generate_owner_keypair,
)
from featurekeys.features import DEFAULT_FEATURES, assign_funding_addresses


LINE = "=" * 70


def step(title: str, code_path: str):
    print(f"\n{LINE}\n{title}  (code: {code_path})\n{LINE}")


def explain(title: str, body: str):
    print(f"\n[Behind the scenes] {title}")
    print(indent(body.strip(), "  "))


def main():
    # 1) Root key pair
    step("Owner creates a root key pair", "featurekeys/derivation.py:generate_root_keypair")
    root = generate_root_keypair()
    print(f"Root Public Key: {root.public_key}")
    print(f"Root Address:    {root.address}")
    print("Root Private Key: (kept offline)")
    explain(
        "Root key",
        "Only the public key is placed in the site configuration. "
        "The private key never leaves the owner's machine.",
    )

    # 2) Funding addresses from the public key only
    step("Site derives funding addresses", "featurekeys/features.py:assign_funding_addresses")
    site = FeatureKeyDeriver(root.public_key)
    for feature in assign_funding_addresses(DEFAULT_FEATURES, site):
        print(f"  {feature.id}  {feature.funding_address}  {feature.title}")
    explain(
        "Public derivation",
        f"scalar = keccak256(feature_id) mod n, e.g. feat-001 -> {scalar_from_identifier('feat-001'):#x}.\n"
        "child public key = root_public * scalar; address = keccak256(child)[-20:], EIP-55 checksummed.",
    )

    # 3) Owner recovers the private key for one feature
    step("Owner derives a feature private key", "featurekeys/derivation.py:OwnerDeriver")
    owner = OwnerDeriver(root.private_key)
    derived = owner.derive("feat-001")
    print(f"Feature ID: {derived.identifier}")
    print(f"Derived Private Key: {derived.private_key[:8]}... (truncated)")
    print(f"Derived Address:     {derived.address}")
    print(f"Matches site address: {derived.address == site.address('feat-001')}")
    explain(
        "Why they match",
        "G * (root_private * scalar) == (G * root_private) * scalar, so the owner's key "
        "controls exactly the address the site displayed.",
    )

    # 4) Contact encryption key pair
    step("Owner creates a contact key pair", "featurekeys/encryption.py:generate_owner_keypair")
    contact_keys = generate_owner_keypair()
    print(f"Owner Public Key (P-256): {contact_keys.public_key}")

    # 5) Donor seals a message
    step("Donor seals contact details", "featurekeys/encryption.py:encrypt")
    sealer = MessageSealer(contact_keys.public_key)
    blob = sealer.seal("updates@example.com")
    print(f"Encrypted Blob (Hex): {blob.hex()}")
    print(f"  ephemeral key: bytes [0, {EPHEMERAL_KEY_SIZE})")
    print(f"  nonce:         bytes [{EPHEMERAL_KEY_SIZE}, {HEADER_SIZE})")
    print(f"  ciphertext+tag: bytes [{HEADER_SIZE}, {len(blob)})")
    explain(
        "One-shot ECIES",
        "A fresh ephemeral P-256 key does ECDH with the owner key; the 32-byte result is the "
        "AES-256-GCM key. Sealing the same text again gives a completely different blob.",
    )

    # 6) Owner opens it
    step("Owner opens the message", "featurekeys/encryption.py:decrypt")
    opener = MessageOpener(contact_keys.jwk)
    print(f"Decrypted Message: {opener.open(blob).decode('utf-8')}")

    print(f"\n{LINE}\nWalkthrough complete.\n{LINE}")


if __name__ == "__main__":
    main()
