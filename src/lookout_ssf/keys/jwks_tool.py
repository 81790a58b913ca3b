"""Generate ``jwks.json`` from an RSA public key for SSF receivers.

Usage::

    ssf-gen-jwks                          # ./public.pem -> ./jwks.json
    ssf-gen-jwks ./public.pem             # custom public key path
    ssf-gen-jwks ./public.pem ./jwks.json my-custom-kid

Generate the key pair first, for example::

    openssl genrsa -out private.pem 2048
    openssl rsa -in private.pem -pubout -out public.pem

Keep ``private.pem`` out of version control and out of ``jwks.json``.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.algorithms import RSAAlgorithm

from lookout_ssf.config import DEFAULT_KEY_ID


class KeyConversionError(Exception):
    """The public key file is missing or not an RSA SPKI key."""


def public_pem_to_jwk(pem: bytes, kid: str, *, alg: str = "RS256") -> dict[str, Any]:
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyConversionError(f"Failed to parse public key as SPKI (RSA): {exc}") from exc
    if not isinstance(key, RSAPublicKey):
        raise KeyConversionError("Public key is not an RSA key")

    jwk = RSAAlgorithm.to_jwk(key, as_dict=True)
    jwk["use"] = "sig"
    jwk["alg"] = alg
    jwk["kid"] = kid
    return jwk


def build_jwks(public_pem_path: Path, kid: str) -> dict[str, Any]:
    if not public_pem_path.is_file():
        raise KeyConversionError(f"public key not found: {public_pem_path}")
    return {"keys": [public_pem_to_jwk(public_pem_path.read_bytes(), kid)]}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ssf-gen-jwks",
        description="Write a JWK set for the SSF signing key.",
    )
    parser.add_argument("public_pem", nargs="?", default="public.pem")
    parser.add_argument("jwks_out", nargs="?", default="jwks.json")
    parser.add_argument("kid", nargs="?", default=None)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    kid = args.kid or os.getenv("SSF_JWK_KID") or DEFAULT_KEY_ID
    public_pem_path = Path(args.public_pem)
    jwks_out = Path(args.jwks_out)

    try:
        jwks = build_jwks(public_pem_path, kid)
    except KeyConversionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        print(
            "Generate a key pair first, for example:\n"
            "  openssl genrsa -out private.pem 2048\n"
            "  openssl rsa -in private.pem -pubout -out public.pem",
            file=sys.stderr,
        )
        return 1

    jwks_out.write_text(json.dumps(jwks, indent=2), encoding="utf-8")
    jwk = jwks["keys"][0]
    print(f"Wrote JWKS to: {jwks_out}")
    print(f"   kid: {jwk['kid']}")
    print(f"   kty: {jwk['kty']} alg: {jwk['alg']} use: {jwk['use']}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
