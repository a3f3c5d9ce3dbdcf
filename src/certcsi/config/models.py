# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/config/models.py

from typing import Optional
from pydantic import BaseModel, Field


class DriverOptions(BaseModel):
    node_id: str                                   # node ID
    driver_name: str = "csi.cert-manager.io"
    data_root: str = "/csi-data-dir"                # directory to store ephemeral data
    webhook_net_host: Optional[str] = None          # URL consuming create/renew/destroy webhooks
    kubeconfig: Optional[str] = None                # unset -> in-cluster config
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    issue_timeout_seconds: float = Field(default=30.0, gt=0)
