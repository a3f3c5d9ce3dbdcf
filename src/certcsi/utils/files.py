# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/files.py
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from certcsi.apis import constants as c
from certcsi.apis.models import VolumeMetaData
from certcsi.errors import MetaDataNotFound

log = logging.getLogger("certcsi")


def build_volume_name(pod_name: str, volume_id: str) -> str:
    return f"{pod_name}-{volume_id}"


def mount_path(vol: VolumeMetaData) -> Path:
    return Path(vol.path) / c.DATA_DIR_NAME


def cert_path(vol: VolumeMetaData) -> Path:
    return mount_path(vol) / vol.attributes.get(c.CERT_FILE_KEY, c.DEFAULT_CERT_FILE)


def key_path(vol: VolumeMetaData) -> Path:
    return mount_path(vol) / vol.attributes.get(c.KEY_FILE_KEY, c.DEFAULT_KEY_FILE)


def ca_path(vol: VolumeMetaData) -> Path:
    return mount_path(vol) / c.CA_FILE_NAME


def meta_data_path(vol: VolumeMetaData) -> Path:
    return Path(vol.path) / c.META_DATA_FILE_NAME


def write_file(path: Path, data: bytes, mode: int = 0o600) -> None:
    """
    Replace *path* with *data* in one rename.

    Readers of the mounted directory never observe a half written file.
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


def write_meta_data_file(vol: VolumeMetaData) -> Path:
    path = meta_data_path(vol)
    write_file(path, vol.to_json().encode("utf-8"))
    log.debug("metadata written to file %s", path)
    return path


def read_meta_data_file(path: str | Path) -> VolumeMetaData:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        raise MetaDataNotFound(f"metadata file not found: {path}")

    try:
        return VolumeMetaData.from_json(raw)
    except PydanticValidationError as exc:
        raise MetaDataNotFound(f"metadata file {path} is corrupt: {exc}")
