# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/apis/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from certcsi.apis import constants as c


class VolumeMetaData(BaseModel):
    """
    One provisioned ephemeral volume.

    Serialised verbatim into ``<path>/metadata.json``; the JSON keys
    (``id``, ``name``, ``size``, ``path``, ``targetPath``, ``attributes``)
    are what discovery and unpublish read back.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    size: int = c.MAX_STORAGE_CAPACITY
    path: str
    target_path: str = Field(alias="targetPath")
    attributes: Dict[str, str] = Field(default_factory=dict)

    @property
    def namespace(self) -> str:
        return self.attributes.get(c.CSI_POD_NAMESPACE_KEY, "")

    @property
    def pod_name(self) -> str:
        return self.attributes.get(c.CSI_POD_NAME_KEY, "")

    def flag(self, key: str) -> bool:
        return self.attributes.get(key) == "true"

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "VolumeMetaData":
        return cls.model_validate_json(raw)


@dataclass(frozen=True)
class KeyBundle:
    pem: bytes
    private_key: Any
    signature_hash: Any
