# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/config/loader.py

from __future__ import annotations

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .models import DriverOptions

log = logging.getLogger("certcsi")

ENV_PREFIX = "CERTCSI_"


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def _from_env() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in DriverOptions.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value not in (None, ""):
            out[name] = value
    return out


def load_options(path: Optional[str | Path] = None, **overrides: Any) -> DriverOptions:
    """
    Build DriverOptions from, in increasing priority:

      1. an optional YAML file (``${ENV_VAR}`` placeholders are expanded)
      2. ``CERTCSI_<FIELD>`` environment variables
      3. keyword overrides (CLI flags); ``None`` values are ignored
    """
    data: Dict[str, Any] = {}
    if path:
        path = Path(path)
        log.debug("Loading driver options from %s", path)
        data.update(_load_yaml(path))

    data.update(_from_env())
    data.update({k: v for k, v in overrides.items() if v is not None})

    return DriverOptions.model_validate(data)
