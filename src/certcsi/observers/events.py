# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any
from datetime import datetime, timezone

from certcsi.apis.models import VolumeMetaData


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                   # ISO timestamp
    volume: Dict[str, Any]    # metadata.json form of the volume

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(vol: VolumeMetaData) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "volume": vol.model_dump(by_alias=True),
    }


# ---------------------------------------------------------------------
# Volume lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class VolumeCreated(BaseEvent):
    pass

@dataclass(frozen=True)
class VolumeRenewed(BaseEvent):
    not_after: str

@dataclass(frozen=True)
class VolumeDestroyed(BaseEvent):
    pass
