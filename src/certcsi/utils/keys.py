# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/keys.py
from __future__ import annotations

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from certcsi.apis.constants import RSA_KEY_SIZE
from certcsi.apis.models import KeyBundle


def new_rsa_key(bits: int = RSA_KEY_SIZE) -> KeyBundle:
    sk = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    pem = sk.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return KeyBundle(pem=pem, private_key=sk, signature_hash=hashes.SHA256())


def decode_private_key(pem: bytes) -> KeyBundle:
    """Rebuild a KeyBundle from a key previously written to the volume."""
    sk = serialization.load_pem_private_key(pem, password=None)

    if isinstance(sk, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        return KeyBundle(pem=pem, private_key=sk, signature_hash=hashes.SHA256())

    raise ValueError(f"unsupported private key type: {type(sk).__name__}")
