# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/driver/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional


@dataclass(frozen=True)
class VolumeCapability:
    access_type: Literal["mount", "block"] = "mount"


@dataclass
class PublishVolumeRequest:
    volume_id: str
    target_path: str
    volume_context: Dict[str, str] = field(default_factory=dict)
    volume_capability: Optional[VolumeCapability] = field(default_factory=VolumeCapability)
    readonly: bool = True


@dataclass
class UnpublishVolumeRequest:
    volume_id: str
    target_path: str
