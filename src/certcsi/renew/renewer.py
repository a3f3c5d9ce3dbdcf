# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/renew/renewer.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from cryptography import x509

from certcsi.apis import constants as c
from certcsi.apis.defaults import renew_before
from certcsi.apis.models import VolumeMetaData
from certcsi.errors import MetaDataNotFound
from certcsi.observers.dispatcher import EventBus
from certcsi.observers.events import VolumeRenewed, new_ctx
from certcsi.utils import files
from certcsi.utils.csr import decode_certificate, not_after

log = logging.getLogger("certcsi")

RenewFunc = Callable[[VolumeMetaData], x509.Certificate]


@dataclass
class Watcher:
    volume_id: str
    not_after: datetime
    wake_at: datetime
    cancelled: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        self.cancelled.set()


class Renewer:
    """
    One background watcher per mounted volume.

    A watcher sleeps until ``not_after - renew_before``, renews the
    certificate and hands over to a fresh watcher for the new expiry. A
    failed renewal is logged and nothing is re-armed. The registry is the
    only shared state and every change to it happens under ``_lock``.
    """

    def __init__(
        self,
        data_root: str | Path,
        renew: RenewFunc,
        *,
        bus: Optional[EventBus] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.data_root = Path(data_root)
        self._renew = renew
        self.bus = bus or EventBus()
        self._now = now
        self._lock = threading.Lock()
        self._watchers: Dict[str, Watcher] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def watch_cert(self, vol: VolumeMetaData, expiry: datetime) -> Optional[Watcher]:
        if vol.flag(c.DISABLE_AUTO_RENEW_KEY):
            log.debug("renewer: auto renew disabled for volume %s", vol.id)
            return None
        return self._register(vol, expiry)

    def kill_watcher(self, volume_id: str) -> None:
        with self._lock:
            watcher = self._watchers.pop(volume_id, None)
        if watcher is None:
            return
        watcher.cancel()
        log.info("renewer: stopped watching volume %s", volume_id)

    def active_watchers(self) -> Dict[str, datetime]:
        with self._lock:
            return {vid: w.not_after for vid, w in self._watchers.items()}

    def stop(self) -> None:
        with self._lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        for w in watchers:
            w.cancel()

    def _register(
        self,
        vol: VolumeMetaData,
        expiry: datetime,
        *,
        successor_of: Optional[Watcher] = None,
    ) -> Optional[Watcher]:
        watcher = Watcher(
            volume_id=vol.id,
            not_after=expiry,
            wake_at=expiry - renew_before(vol.attributes),
        )

        with self._lock:
            if successor_of is not None and (
                successor_of.cancelled.is_set() or self._watchers.get(vol.id) is not successor_of
            ):
                # volume was torn down while its certificate was being renewed
                return None

            prev = self._watchers.get(vol.id)
            if prev is not None:
                prev.cancel()
            self._watchers[vol.id] = watcher

            watcher.thread = threading.Thread(
                target=self._run,
                args=(vol, watcher),
                name=f"renew-{vol.id}",
                daemon=True,
            )
            watcher.thread.start()

        log.info(
            "renewer: watching volume %s, expires %s, renewal at %s",
            vol.id,
            expiry.isoformat(),
            watcher.wake_at.isoformat(),
        )
        return watcher

    def _release(self, watcher: Watcher) -> None:
        with self._lock:
            if self._watchers.get(watcher.volume_id) is watcher:
                del self._watchers[watcher.volume_id]

    # ------------------------------------------------------------------
    # Watcher body
    # ------------------------------------------------------------------

    def _run(self, vol: VolumeMetaData, watcher: Watcher) -> None:
        delay = max(0.0, (watcher.wake_at - self._now()).total_seconds())
        if watcher.cancelled.wait(delay):
            return

        try:
            cert = self._renew(vol)
        except Exception as exc:
            log.error("renewer: failed to renew certificate for volume %s: %s", vol.id, exc)
            self._release(watcher)
            return

        expiry = not_after(cert)
        if expiry <= watcher.not_after:
            log.error(
                "renewer: renewed certificate for volume %s does not extend expiry (%s <= %s)",
                vol.id,
                expiry.isoformat(),
                watcher.not_after.isoformat(),
            )
            self._release(watcher)
            return

        if self._register(vol, expiry, successor_of=watcher) is None:
            log.info("renewer: volume %s removed during renewal, not re-arming", vol.id)
            return

        self.bus.emit(VolumeRenewed(**new_ctx(vol), not_after=expiry.isoformat()))

    # ------------------------------------------------------------------
    # Crash recovery
    # ------------------------------------------------------------------

    def discover(self) -> int:
        """
        Re-arm a watcher for every volume persisted under the data root.

        Returns the number of watchers started.
        """
        if not self.data_root.is_dir():
            log.warning("renewer: data root %s does not exist, nothing to discover", self.data_root)
            return 0

        started = 0
        for entry in sorted(self.data_root.iterdir()):
            if not entry.is_dir():
                continue

            try:
                vol = files.read_meta_data_file(entry / c.META_DATA_FILE_NAME)
            except MetaDataNotFound as exc:
                log.warning("renewer: skipping %s: %s", entry, exc)
                continue

            cert_path = files.cert_path(vol)
            try:
                cert = decode_certificate(cert_path.read_bytes())
            except (OSError, ValueError) as exc:
                log.warning("renewer: skipping volume %s, unreadable certificate %s: %s", vol.id, cert_path, exc)
                continue

            if self.watch_cert(vol, not_after(cert)) is not None:
                started += 1

        log.info("renewer: discovered %d volume(s) under %s", started, self.data_root)
        return started
