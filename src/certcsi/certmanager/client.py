# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/certmanager/client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from certcsi.apis import constants as c
from certcsi.errors import CertCSIError, NotFoundError

log = logging.getLogger("certcsi")


class CertificateRequestClient(Protocol):
    """Access to CertificateRequest objects (Kubernetes JSON form)."""

    def get(self, name: str, namespace: str) -> Dict[str, Any]: ...

    def create(self, obj: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete(self, name: str, namespace: str) -> None: ...


def load_kube_config(kubeconfig: Optional[str] = None) -> None:
    """In-cluster config when running as a pod, otherwise kubeconfig."""
    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        log.debug("not running in cluster, falling back to kubeconfig")
        config.load_kube_config()


class KubernetesCertificateRequestClient:
    def __init__(self, api: Optional[client.CustomObjectsApi] = None):
        self.api = api or client.CustomObjectsApi()

    @classmethod
    def from_config(cls, kubeconfig: Optional[str] = None) -> "KubernetesCertificateRequestClient":
        load_kube_config(kubeconfig)
        return cls()

    def _wrap(self, exc: ApiException, what: str) -> CertCSIError:
        if exc.status == 404:
            return NotFoundError(f"{what}: not found")
        return CertCSIError(f"{what}: {exc.status} {exc.reason}")

    def get(self, name: str, namespace: str) -> Dict[str, Any]:
        try:
            return self.api.get_namespaced_custom_object(
                group=c.CM_GROUP,
                version=c.CM_VERSION,
                namespace=namespace,
                plural=c.CM_CR_PLURAL,
                name=name,
            )
        except ApiException as exc:
            raise self._wrap(exc, f"get CertificateRequest {namespace}/{name}") from exc

    def create(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        meta = obj["metadata"]
        try:
            return self.api.create_namespaced_custom_object(
                group=c.CM_GROUP,
                version=c.CM_VERSION,
                namespace=meta["namespace"],
                plural=c.CM_CR_PLURAL,
                body=obj,
            )
        except ApiException as exc:
            raise self._wrap(
                exc, f"create CertificateRequest {meta['namespace']}/{meta['name']}"
            ) from exc

    def delete(self, name: str, namespace: str) -> None:
        try:
            self.api.delete_namespaced_custom_object(
                group=c.CM_GROUP,
                version=c.CM_VERSION,
                namespace=namespace,
                plural=c.CM_CR_PLURAL,
                name=name,
            )
        except ApiException as exc:
            raise self._wrap(exc, f"delete CertificateRequest {namespace}/{name}") from exc
