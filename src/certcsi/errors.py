# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List


class StatusCode(str, Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    INTERNAL = "Internal"


class CertCSIError(RuntimeError):
    """Base class for driver failures. `code` tells the transport how to report it."""

    code = StatusCode.INTERNAL


class ViolationKind(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_BOOLEAN = "InvalidBoolean"
    INVALID_DURATION = "InvalidDuration"
    PATH_TRAVERSAL = "PathTraversal"
    INVALID_REQUEST = "InvalidRequest"
    INVALID_SAN = "InvalidSAN"


@dataclass(frozen=True)
class FieldViolation:
    kind: ViolationKind
    key: str
    message: str


class ValidationError(CertCSIError):
    """All the rules broken by one request, reported together."""

    code = StatusCode.INVALID_ARGUMENT

    def __init__(self, violations: Iterable[FieldViolation]):
        self.violations: List[FieldViolation] = list(violations)
        super().__init__(", ".join(v.message for v in self.violations))

    def keys(self) -> List[str]:
        return [v.key for v in self.violations]


class InvalidSANError(ValidationError):
    def __init__(self, key: str, message: str):
        super().__init__([FieldViolation(ViolationKind.INVALID_SAN, key, message)])


class IssuanceError(CertCSIError):
    """Raised when a certificate could not be obtained from the issuer."""


class IssuanceFailed(IssuanceError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"certificate request {name} marked as failed: {reason}")


class IssuanceTimeout(IssuanceError):
    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(
            f"timed out after {timeout:g}s waiting for certificate request {name} to become ready"
        )


class ResourceConflict(CertCSIError):
    """An existing certificate request no longer matches the desired spec."""


class NotFoundError(CertCSIError):
    """The issuing authority has no such resource."""


class MountError(CertCSIError):
    pass


class MetaDataNotFound(CertCSIError):
    pass
