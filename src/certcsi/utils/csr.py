# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/csr.py
from __future__ import annotations

import ipaddress
import re
from datetime import datetime
from typing import List, Mapping
from urllib.parse import urlsplit

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from certcsi.apis import constants as c
from certcsi.apis.models import KeyBundle
from certcsi.errors import InvalidSANError

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _split(s: str | None) -> List[str]:
    if not s:
        return []
    return [part.strip() for part in s.split(",") if part.strip()]


def parse_dns_names(s: str | None) -> List[str]:
    return _split(s)


def parse_ip_addresses(s: str | None) -> list:
    ips = []
    for raw in _split(s):
        try:
            ips.append(ipaddress.ip_address(raw))
        except ValueError:
            raise InvalidSANError(c.IP_SANS_KEY, f"{c.IP_SANS_KEY}: invalid IP address {raw!r}")
    return ips


def parse_uris(s: str | None) -> List[str]:
    uris = []
    for raw in _split(s):
        if any(ch.isspace() or ord(ch) < 0x20 for ch in raw) or _BAD_ESCAPE.search(raw):
            raise InvalidSANError(c.URI_SANS_KEY, f"{c.URI_SANS_KEY}: invalid URI {raw!r}")
        try:
            parts = urlsplit(raw)
        except ValueError as exc:
            raise InvalidSANError(c.URI_SANS_KEY, f"{c.URI_SANS_KEY}: invalid URI {raw!r}: {exc}")
        if not parts.scheme:
            raise InvalidSANError(c.URI_SANS_KEY, f"{c.URI_SANS_KEY}: URI {raw!r} missing scheme")
        uris.append(raw)
    return uris


def build_csr(attr: Mapping[str, str], key_bundle: KeyBundle) -> bytes:
    """
    Build and self-sign a certificate signing request for the volume.

    Returns the PEM encoded request ("CERTIFICATE REQUEST" block).
    """
    dns_names = parse_dns_names(attr.get(c.DNS_NAMES_KEY))
    ips = parse_ip_addresses(attr.get(c.IP_SANS_KEY))
    uris = parse_uris(attr.get(c.URI_SANS_KEY))

    name_attrs = []
    common_name = attr.get(c.COMMON_NAME_KEY)
    if common_name:
        name_attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))

    builder = x509.CertificateSigningRequestBuilder().subject_name(x509.Name(name_attrs))

    sans: list = [x509.DNSName(d) for d in dns_names]
    sans += [x509.IPAddress(ip) for ip in ips]
    sans += [x509.UniformResourceIdentifier(u) for u in uris]
    if sans:
        builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)

    csr = builder.sign(key_bundle.private_key, key_bundle.signature_hash)
    return csr.public_bytes(serialization.Encoding.PEM)


def decode_certificate(data: bytes) -> x509.Certificate:
    return x509.load_pem_x509_certificate(data)


def not_after(cert: x509.Certificate) -> datetime:
    return cert.not_valid_after_utc
