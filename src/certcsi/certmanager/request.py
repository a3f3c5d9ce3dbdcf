# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/certmanager/request.py
from __future__ import annotations

import base64
from typing import Any, Dict, List, Mapping, Optional

from certcsi.apis import constants as c
from certcsi.apis.defaults import requested_duration
from certcsi.apis.models import VolumeMetaData
from certcsi.errors import ResourceConflict
from certcsi.utils.duration import format_duration


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def desired_spec(attr: Mapping[str, str], csr_pem: bytes) -> Dict[str, Any]:
    return {
        "request": _b64(csr_pem),
        "isCA": attr.get(c.IS_CA_KEY) == "true",
        "duration": format_duration(requested_duration(attr)),
        "issuerRef": {
            "name": attr.get(c.ISSUER_NAME_KEY, ""),
            "kind": attr.get(c.ISSUER_KIND_KEY, ""),
            "group": attr.get(c.ISSUER_GROUP_KEY, ""),
        },
    }


def certificate_request(vol: VolumeMetaData, spec: Dict[str, Any]) -> Dict[str, Any]:
    # Owned by the pod so the API server garbage collects it with the pod
    return {
        "apiVersion": f"{c.CM_GROUP}/{c.CM_VERSION}",
        "kind": c.CM_CR_KIND,
        "metadata": {
            "name": vol.id,
            "namespace": vol.namespace,
            "ownerReferences": [
                {
                    "apiVersion": "v1",
                    "kind": "Pod",
                    "name": vol.pod_name,
                    "uid": vol.attributes.get(c.CSI_POD_UID_KEY, ""),
                    "blockOwnerDeletion": True,
                    "controller": False,
                }
            ],
        },
        "spec": spec,
    }


def matches_spec(cr: Mapping[str, Any], desired: Mapping[str, Any]) -> None:
    """Raise ResourceConflict describing every field of *cr* that differs from *desired*."""
    spec = cr.get("spec") or {}
    diffs: List[str] = []

    if spec.get("request") != desired["request"]:
        diffs.append("request")
    if bool(spec.get("isCA", False)) != desired["isCA"]:
        diffs.append("isCA")
    if spec.get("duration") != desired["duration"]:
        diffs.append(f"duration ({spec.get('duration')} != {desired['duration']})")

    have = spec.get("issuerRef") or {}
    for field in ("name", "kind", "group"):
        if (have.get(field) or "") != desired["issuerRef"][field]:
            diffs.append(f"issuerRef.{field}")

    if diffs:
        raise ResourceConflict("spec mismatch: " + ", ".join(diffs))


def _ready_condition(cr: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    for cond in (cr.get("status") or {}).get("conditions") or []:
        if cond.get("type") == "Ready":
            return cond
    return None


def is_ready(cr: Mapping[str, Any]) -> bool:
    cond = _ready_condition(cr)
    return cond is not None and cond.get("status") == "True"


def failed_reason(cr: Mapping[str, Any]) -> Optional[str]:
    cond = _ready_condition(cr)
    if cond is not None and cond.get("reason") == "Failed":
        return cond.get("message") or "Failed"
    return None


def issued_certificate(cr: Mapping[str, Any]) -> bytes:
    return base64.b64decode((cr.get("status") or {}).get("certificate") or "")


def issued_ca(cr: Mapping[str, Any]) -> bytes:
    return base64.b64decode((cr.get("status") or {}).get("ca") or "")
