# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/apis/defaults.py
from __future__ import annotations

from datetime import timedelta
from typing import Dict, Mapping

from certcsi.apis import constants as c
from certcsi.utils.duration import parse_duration

_DEFAULTS = {
    c.ISSUER_KIND_KEY: c.DEFAULT_ISSUER_KIND,
    c.ISSUER_GROUP_KEY: c.DEFAULT_ISSUER_GROUP,
    c.IS_CA_KEY: "false",
    c.DURATION_KEY: c.DEFAULT_DURATION,
    c.RENEW_BEFORE_KEY: c.DEFAULT_RENEW_BEFORE,
    c.CERT_FILE_KEY: c.DEFAULT_CERT_FILE,
    c.KEY_FILE_KEY: c.DEFAULT_KEY_FILE,
    c.DISABLE_AUTO_RENEW_KEY: "false",
    c.REUSE_PRIVATE_KEY: "false",
}


def set_default_attributes(attr: Mapping[str, str] | None) -> Dict[str, str]:
    """Return a copy of *attr* with every unset or empty recognised key defaulted."""
    out = dict(attr or {})
    for key, value in _DEFAULTS.items():
        if not out.get(key):
            out[key] = value
    return out


def requested_duration(attr: Mapping[str, str]) -> timedelta:
    return parse_duration(attr.get(c.DURATION_KEY) or c.DEFAULT_DURATION)


def renew_before(attr: Mapping[str, str]) -> timedelta:
    return parse_duration(attr.get(c.RENEW_BEFORE_KEY) or c.DEFAULT_RENEW_BEFORE)
