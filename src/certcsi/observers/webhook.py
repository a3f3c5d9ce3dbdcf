# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/observers/webhook.py
from __future__ import annotations

import logging
import threading
from typing import Optional

import requests

from .events import BaseEvent, VolumeCreated, VolumeDestroyed, VolumeRenewed

log = logging.getLogger("certcsi")

_ACTIONS = {
    VolumeCreated: "create",
    VolumeRenewed: "renew",
    VolumeDestroyed: "destroy",
}


class WebhookObserver:
    """
    POSTs volume lifecycle events to ``<net_host>/<create|renew|destroy>``.

    Delivery happens on a daemon thread so a slow or dead endpoint never
    holds up publish, unpublish or renewal.
    """

    def __init__(
        self,
        net_host: str,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        background: bool = True,
    ):
        self.net_host = net_host.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.background = background

    def notify(self, event: BaseEvent) -> None:
        action = _ACTIONS.get(type(event))
        if action is None:
            return

        if self.background:
            threading.Thread(
                target=self._post,
                args=(action, event),
                name=f"webhook-{action}",
                daemon=True,
            ).start()
        else:
            self._post(action, event)

    def _post(self, action: str, event: BaseEvent) -> None:
        url = f"{self.net_host}/{action}"
        try:
            resp = self.session.post(url, json={"event": action, **event.dict()}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            log.warning("webhook: %s %s failed: %s", action, url, exc)
            return
        log.debug("webhook: %s delivered to %s", action, url)
