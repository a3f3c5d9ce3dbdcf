# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/apis/validation.py
from __future__ import annotations

from datetime import timedelta
from typing import List, Mapping, Optional

from certcsi.apis import constants as c
from certcsi.errors import FieldViolation, ValidationError, ViolationKind
from certcsi.utils.duration import parse_duration


def validate_attributes(attr: Mapping[str, str]) -> None:
    """
    Check volume attributes after defaults have been applied.

    Every broken rule is collected and raised as one ValidationError.
    """
    errs: List[FieldViolation] = []

    if not attr.get(c.ISSUER_NAME_KEY):
        errs.append(
            FieldViolation(
                ViolationKind.MISSING_FIELD,
                c.ISSUER_NAME_KEY,
                f"{c.ISSUER_NAME_KEY} field required",
            )
        )

    _bool_value(attr.get(c.IS_CA_KEY), c.IS_CA_KEY, errs)
    duration = _duration_parse(attr.get(c.DURATION_KEY), c.DURATION_KEY, errs)

    _filepath_breakout(attr.get(c.CERT_FILE_KEY), c.CERT_FILE_KEY, errs)
    _filepath_breakout(attr.get(c.KEY_FILE_KEY), c.KEY_FILE_KEY, errs)

    renew_before = _duration_parse(attr.get(c.RENEW_BEFORE_KEY), c.RENEW_BEFORE_KEY, errs)
    _bool_value(attr.get(c.DISABLE_AUTO_RENEW_KEY), c.DISABLE_AUTO_RENEW_KEY, errs)
    _bool_value(attr.get(c.REUSE_PRIVATE_KEY), c.REUSE_PRIVATE_KEY, errs)

    # a certificate born inside its renewal window would be renewed back to back
    if (
        duration is not None
        and renew_before is not None
        and attr.get(c.DISABLE_AUTO_RENEW_KEY) != "true"
        and renew_before >= duration
    ):
        errs.append(
            FieldViolation(
                ViolationKind.INVALID_DURATION,
                c.RENEW_BEFORE_KEY,
                f"{c.RENEW_BEFORE_KEY} ({attr[c.RENEW_BEFORE_KEY]}) must be shorter than "
                f"{c.DURATION_KEY} ({attr[c.DURATION_KEY]})",
            )
        )

    if errs:
        raise ValidationError(errs)


def _filepath_breakout(s: str | None, key: str, errs: List[FieldViolation]) -> None:
    if s and ".." in s:
        errs.append(
            FieldViolation(
                ViolationKind.PATH_TRAVERSAL, key, f"{key} filepaths may not contain '..'"
            )
        )


def _duration_parse(s: str | None, key: str, errs: List[FieldViolation]) -> Optional[timedelta]:
    if not s:
        return None
    try:
        return parse_duration(s)
    except ValueError as exc:
        errs.append(
            FieldViolation(
                ViolationKind.INVALID_DURATION,
                key,
                f"{key} must be a valid duration string: {exc}",
            )
        )
        return None


def _bool_value(s: str | None, key: str, errs: List[FieldViolation]) -> None:
    if not s:
        return
    if s not in ("true", "false"):
        errs.append(
            FieldViolation(
                ViolationKind.INVALID_BOOLEAN,
                key,
                f"{key} may only be set to 'true' or 'false'",
            )
        )
