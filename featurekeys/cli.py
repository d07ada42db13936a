"""
FeatureKeys - Command-Line Tool

Manual tooling for the site owner. Uses built-in argparse.

Usage:
    featurekeys generate                          # New P-256 owner key pair
    featurekeys generate-root                     # New secp256k1 root key pair
    featurekeys derive <feature-id> <root-priv>   # Owner: child key + address
    featurekeys address <feature-id> [--root H]   # Public: address only
    featurekeys features [--root H]               # Catalogue with addresses
    featurekeys encrypt <owner-pub> <message>     # Seal a message
    featurekeys decrypt <priv-or-jwk> <blob>      # Open a sealed message
"""

import argparse
import json
import sys
from typing import List, Optional

from . import __version__
from .config import config, setup_logging
from .derivation import FeatureKeyDeriver, derive_key, generate_root_keypair
from .encryption import decrypt_message, encrypt_message, generate_owner_keypair
from .errors import FeatureKeyError, attempt
from .features import DEFAULT_FEATURES, assign_funding_addresses, validate_identifier


def cmd_generate(args) -> None:
    keypair = generate_owner_keypair()
    print(f"Public Key (Hex): {keypair.public_key}")
    print(f"Private Key (JWK): {json.dumps(keypair.jwk)}")


def cmd_generate_root(args) -> None:
    keypair = generate_root_keypair()
    print(f"Private Key (Hex): {keypair.private_key}")
    print(f"Public Key (Hex): {keypair.public_key}")
    print(f"Address: {keypair.address}")


def cmd_derive(args) -> None:
    derived = derive_key(args.root_private_key, args.feature_id)
    print(f"Feature ID: {derived.identifier}")
    print(f"Derived Private Key (Hex): {derived.private_key}")
    print(f"Derived Public Key (Hex): {derived.public_key}")
    print(f"Derived Address: {derived.address}")


def _deriver(args) -> FeatureKeyDeriver:
    if args.root:
        return FeatureKeyDeriver(args.root)
    return FeatureKeyDeriver.from_config(config)


def cmd_address(args) -> None:
    print(_deriver(args).address(args.feature_id))


def cmd_features(args) -> None:
    for feature in assign_funding_addresses(DEFAULT_FEATURES, _deriver(args)):
        print(f"{feature.id}  {feature.funding_address}  {feature.title}")


def cmd_encrypt(args) -> None:
    print(f"Encrypted Blob (Hex): {encrypt_message(args.owner_public_key, args.message)}")


def cmd_decrypt(args) -> None:
    print(f"Decrypted Message: {decrypt_message(args.private_key, args.blob)}")


def _feature_id(value: str) -> str:
    try:
        return validate_identifier(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="featurekeys",
        description="Feature funding addresses and owner message encryption",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="generate a P-256 owner key pair")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("generate-root", help="generate a secp256k1 root key pair")
    p.set_defaults(func=cmd_generate_root)

    p = sub.add_parser("derive", help="derive child private key and address (owner)")
    p.add_argument("feature_id", type=_feature_id)
    p.add_argument("root_private_key", help="root private key (hex)")
    p.set_defaults(func=cmd_derive)

    p = sub.add_parser("address", help="derive funding address from the root public key")
    p.add_argument("feature_id", type=_feature_id)
    p.add_argument("--root", help="root public key (hex); defaults to FEATUREKEYS_ROOT_PUBKEY")
    p.set_defaults(func=cmd_address)

    p = sub.add_parser("features", help="list the feature catalogue with funding addresses")
    p.add_argument("--root", help="root public key (hex); defaults to FEATUREKEYS_ROOT_PUBKEY")
    p.set_defaults(func=cmd_features)

    p = sub.add_parser("encrypt", help="seal a message to an owner public key")
    p.add_argument("owner_public_key", help="owner P-256 public key (hex)")
    p.add_argument("message")
    p.set_defaults(func=cmd_encrypt)

    p = sub.add_parser("decrypt", help="open a sealed message")
    p.add_argument("private_key", help="owner private key (hex scalar or JWK JSON)")
    p.add_argument("blob", help="encrypted blob (hex)")
    p.set_defaults(func=cmd_decrypt)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else config.LOG_LEVEL)

    result = attempt(args.func, args)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
