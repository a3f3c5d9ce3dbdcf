# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/certmanager/manager.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from cryptography import x509

from certcsi.apis import constants as c
from certcsi.apis.defaults import renew_before
from certcsi.apis.models import KeyBundle, VolumeMetaData
from certcsi.certmanager import request as cr_util
from certcsi.certmanager.client import CertificateRequestClient
from certcsi.errors import (
    IssuanceError,
    IssuanceFailed,
    IssuanceTimeout,
    NotFoundError,
    ResourceConflict,
)
from certcsi.utils import files
from certcsi.utils.csr import build_csr, decode_certificate, not_after
from certcsi.utils.keys import decode_private_key, new_rsa_key
from certcsi.utils.retry import PollOutcome, PollResult, poll

log = logging.getLogger("certcsi")


class CertManager:
    """
    Issues certificates for volumes through cert-manager CertificateRequests.

    The same call serves first publish and renewal: an existing request is
    reused only when it still matches what the volume asks for, otherwise it
    is deleted and recreated.
    """

    def __init__(
        self,
        cr_client: CertificateRequestClient,
        *,
        poll_interval: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = cr_client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._now = now

    # ------------------------------------------------------------------
    def create_new_certificate(self, vol: VolumeMetaData, key_bundle: KeyBundle) -> x509.Certificate:
        namespace = vol.namespace

        csr_pem = build_csr(vol.attributes, key_bundle)
        desired = cr_util.desired_spec(vol.attributes, csr_pem)

        if not self._check_existing_certificate_request(vol, desired):
            self.client.create(cr_util.certificate_request(vol, desired))
            log.info("cert-manager: created CertificateRequest %s/%s", namespace, vol.id)

        log.info("cert-manager: waiting for CertificateRequest to become ready %s/%s", namespace, vol.id)
        cr = self._wait_for_certificate_request_ready(vol.id, namespace)

        cert_pem = cr_util.issued_certificate(cr)
        if not cert_pem:
            raise IssuanceError(f"CertificateRequest {namespace}/{vol.id} is ready but carries no certificate")
        cert = decode_certificate(cert_pem)

        # no parents=True: a volume directory removed by unpublish stays removed
        files.mount_path(vol).mkdir(mode=0o700, exist_ok=True)
        files.write_meta_data_file(vol)

        cert_path = files.cert_path(vol)
        files.write_file(cert_path, cert_pem)
        log.info("cert-manager: certificate written to file %s", cert_path)

        ca_pem = cr_util.issued_ca(cr)
        if ca_pem:
            files.write_file(files.ca_path(vol), ca_pem)

        key_path = files.key_path(vol)
        files.write_file(key_path, key_bundle.pem)
        log.info("cert-manager: private key written to file: %s", key_path)

        return cert

    def renew_certificate(self, vol: VolumeMetaData) -> x509.Certificate:
        log.info("cert-manager: renewing certificate %s", vol.id)

        if vol.flag(c.REUSE_PRIVATE_KEY):
            key_bundle = decode_private_key(files.key_path(vol).read_bytes())
        else:
            key_bundle = new_rsa_key()

        return self.create_new_certificate(vol, key_bundle)

    # ------------------------------------------------------------------
    def _check_existing_certificate_request(self, vol: VolumeMetaData, desired: Dict[str, Any]) -> bool:
        """True when an existing request can be reused as is."""
        namespace = vol.namespace
        try:
            cr = self.client.get(vol.id, namespace)
        except NotFoundError:
            return False

        try:
            cr_util.matches_spec(cr, desired)
            self._check_not_due(cr, vol)
        except ResourceConflict as exc:
            log.info(
                "cert-manager: deleting existing CertificateRequest since it doesn't match spec %s/%s: %s",
                namespace,
                vol.id,
                exc,
            )
            try:
                self.client.delete(vol.id, namespace)
            except NotFoundError:
                pass
            return False

        return True

    def _check_not_due(self, cr: Dict[str, Any], vol: VolumeMetaData) -> None:
        # A request that already resolved to a certificate inside its renewal
        # window cannot satisfy a renewal.
        if not cr_util.is_ready(cr):
            return
        cert_pem = cr_util.issued_certificate(cr)
        if not cert_pem:
            return
        expiry = not_after(decode_certificate(cert_pem))
        if expiry - renew_before(vol.attributes) <= self._now():
            raise ResourceConflict(f"issued certificate is due for renewal (expires {expiry.isoformat()})")

    def _wait_for_certificate_request_ready(self, name: str, namespace: str) -> Dict[str, Any]:
        def check() -> PollResult[Dict[str, Any]]:
            log.debug("cert-manager: polling CertificateRequest %s/%s for ready status", namespace, name)
            cr = self.client.get(name, namespace)

            reason = cr_util.failed_reason(cr)
            if reason is not None:
                return PollResult(PollOutcome.FAILED, value=cr, reason=reason)
            if not cr_util.is_ready(cr):
                return PollResult(PollOutcome.TIMED_OUT, value=cr)
            return PollResult(PollOutcome.READY, value=cr)

        result = poll(
            check,
            interval=self.poll_interval,
            timeout=self.timeout,
            sleep=self._sleep,
            clock=self._clock,
        )
        log.debug(
            "cert-manager: CertificateRequest %s/%s %s after %d poll(s)",
            namespace,
            name,
            result.outcome.value,
            result.attempts,
        )

        if result.outcome is PollOutcome.FAILED:
            raise IssuanceFailed(f"{namespace}/{name}", result.reason)
        if result.outcome is PollOutcome.TIMED_OUT:
            raise IssuanceTimeout(f"{namespace}/{name}", self.timeout)
        return result.value
