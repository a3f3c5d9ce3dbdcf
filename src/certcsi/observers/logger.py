# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        vol = d.pop("volume", {}) or {}
        extra = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts",))
        msg = f"id={vol.get('id')} name={vol.get('name')}"
        if extra:
            msg = f"{msg}, {extra}"

        self.logger.info(f"[EVENT] {etype}: {msg}")
