# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/driver/nodeserver.py
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from certcsi.apis import constants as c
from certcsi.apis.defaults import set_default_attributes
from certcsi.apis.models import VolumeMetaData
from certcsi.apis.validation import validate_attributes
from certcsi.certmanager.client import KubernetesCertificateRequestClient
from certcsi.certmanager.manager import CertManager
from certcsi.config.models import DriverOptions
from certcsi.driver.models import PublishVolumeRequest, UnpublishVolumeRequest
from certcsi.errors import (
    FieldViolation,
    MetaDataNotFound,
    MountError,
    ValidationError,
    ViolationKind,
)
from certcsi.observers.dispatcher import EventBus
from certcsi.observers.events import VolumeCreated, VolumeDestroyed, new_ctx
from certcsi.observers.logger import LoggerObserver
from certcsi.observers.webhook import WebhookObserver
from certcsi.renew.renewer import Renewer
from certcsi.utils import files
from certcsi.utils.csr import not_after
from certcsi.utils.keys import new_rsa_key
from certcsi.utils.mount import Mounter

log = logging.getLogger("certcsi")


def _violation(message: str, key: str = "") -> FieldViolation:
    return FieldViolation(ViolationKind.INVALID_REQUEST, key, message)


def validate_publish_request(req: PublishVolumeRequest) -> None:
    """Reject request shapes the driver does not support, listing every problem at once."""
    errs: List[FieldViolation] = []
    attr = req.volume_context or {}

    # Kubernetes 1.15 does not set csi.storage.k8s.io/ephemeral
    if attr.get(c.CSI_EPHEMERAL_KEY, "") not in ("true", ""):
        errs.append(_violation("publishing a non-ephemeral volume mount is not supported", c.CSI_EPHEMERAL_KEY))

    if c.CSI_POD_NAME_KEY not in attr or c.CSI_POD_NAMESPACE_KEY not in attr:
        errs.append(
            _violation(
                f"expecting both {c.CSI_POD_NAMESPACE_KEY} and {c.CSI_POD_NAME_KEY} "
                "attributes to be set in context"
            )
        )

    if req.volume_capability is None:
        errs.append(_violation("volume capability missing"))
    elif req.volume_capability.access_type == "block":
        errs.append(_violation("block access type not supported"))

    if not req.volume_id:
        errs.append(_violation("volume ID missing"))
    if not req.target_path:
        errs.append(_violation("target path missing"))

    if errs:
        raise ValidationError(errs)


class NodeServer:
    """
    Node side of the driver: publish and unpublish ephemeral certificate volumes.

    Calls for different volume ids may run concurrently. The transport is
    expected to map raised CertCSIError subclasses onto their ``code``.
    """

    def __init__(
        self,
        *,
        node_id: str,
        data_root: str | Path,
        cert_manager: CertManager,
        renewer: Renewer,
        mounter: Optional[Mounter] = None,
        bus: Optional[EventBus] = None,
    ):
        self.node_id = node_id
        self.data_root = Path(data_root)
        self.cm = cert_manager
        self.renewer = renewer
        self.mounter = mounter or Mounter()
        self.bus = bus or EventBus()

    def node_get_info(self) -> Dict[str, str]:
        return {"node_id": self.node_id}

    # ------------------------------------------------------------------
    def publish_volume(self, req: PublishVolumeRequest) -> None:
        validate_publish_request(req)

        attr = set_default_attributes(req.volume_context)
        validate_attributes(attr)

        target_path = Path(req.target_path)
        if self.mounter.is_likely_mount_point(target_path):
            # already published; keep the current certificate and watcher
            log.info("node: %s already mounted at %s", req.volume_id, target_path)
            return

        vol = self.create_volume(req.volume_id, req.target_path, attr)
        log.info("node: created volume: %s", vol.path)

        log.info("node: creating key/cert pair with cert-manager: %s", vol.path)
        cert = self.cm.create_new_certificate(vol, new_rsa_key())

        self.renewer.watch_cert(vol, not_after(cert))

        files.write_meta_data_file(vol)

        mount_path = files.mount_path(vol)

        log.debug(
            "node: publish volume request ~ target:%s volumeId:%s attributes:%s",
            target_path,
            vol.id,
            attr,
        )

        try:
            target_path.mkdir(parents=True, exist_ok=True, mode=0o700)
            mount_path.mkdir(parents=True, exist_ok=True, mode=0o700)
            self.mounter.mount(mount_path, target_path, ["ro"])
        except (MountError, OSError) as exc:
            self.renewer.kill_watcher(vol.id)
            try:
                shutil.rmtree(vol.path)
            except FileNotFoundError:
                pass
            except OSError as rm_exc:
                raise MountError(
                    f"failed to mount path {mount_path} -> {target_path}: {exc}; "
                    f"failed to remove {vol.path}: {rm_exc}"
                ) from exc
            raise MountError(f"failed to mount path {mount_path} -> {target_path}: {exc}") from exc

        log.info("node: mount successful %s:%s:%s", vol.namespace, vol.pod_name, vol.id)

        self.bus.emit(VolumeCreated(**new_ctx(vol)))

    def unpublish_volume(self, req: UnpublishVolumeRequest) -> None:
        errs = []
        if not req.volume_id:
            errs.append(_violation("volume ID missing in request"))
        if not req.target_path:
            errs.append(_violation("target path missing in request"))
        if errs:
            raise ValidationError(errs)

        volume_id = req.volume_id
        path = self.data_root / volume_id

        meta: Optional[VolumeMetaData] = None
        try:
            meta = files.read_meta_data_file(path / c.META_DATA_FILE_NAME)
        except MetaDataNotFound as exc:
            log.warning("node: failed to get metadata file when deleting %s: %s", volume_id, exc)

        self.renewer.kill_watcher(volume_id)

        unmount_err: Optional[MountError] = None
        try:
            self.mounter.unmount(req.target_path)
            log.debug("node: volume %s/%s has been unmounted.", req.target_path, volume_id)
        except MountError as exc:
            log.error("node: failed to unmount %s: %s", req.target_path, exc)
            unmount_err = exc

        try:
            shutil.rmtree(path)
            log.debug("node: deleted volume %s", volume_id)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.error("node: failed to remove volume directory %s: %s", path, exc)

        if meta is not None:
            self.bus.emit(VolumeDestroyed(**new_ctx(meta)))

        if unmount_err is not None:
            raise unmount_err

    # ------------------------------------------------------------------
    def create_volume(self, volume_id: str, target_path: str, attr: Dict[str, str]) -> VolumeMetaData:
        """Create the directory backing the volume; an existing directory is reused."""
        path = self.data_root / volume_id
        path.mkdir(parents=True, exist_ok=True, mode=0o700)

        return VolumeMetaData(
            id=volume_id,
            name=files.build_volume_name(attr.get(c.CSI_POD_NAME_KEY, ""), volume_id),
            size=c.MAX_STORAGE_CAPACITY,
            path=str(path),
            target_path=target_path,
            attributes=attr,
        )



def new_node_server(
    opts: DriverOptions,
    *,
    cr_client=None,
    mounter: Optional[Mounter] = None,
    bus: Optional[EventBus] = None,
) -> NodeServer:
    """
    Wire a NodeServer from DriverOptions and resume watching every volume
    already on disk.
    """
    if bus is None:
        bus = EventBus([LoggerObserver(log)])
        if opts.webhook_net_host:
            bus.subscribe(WebhookObserver(opts.webhook_net_host))

    if cr_client is None:
        cr_client = KubernetesCertificateRequestClient.from_config(opts.kubeconfig)

    cm = CertManager(
        cr_client,
        poll_interval=opts.poll_interval_seconds,
        timeout=opts.issue_timeout_seconds,
    )
    renewer = Renewer(opts.data_root, cm.renew_certificate, bus=bus)
    renewer.discover()

    return NodeServer(
        node_id=opts.node_id,
        data_root=opts.data_root,
        cert_manager=cm,
        renewer=renewer,
        mounter=mounter,
        bus=bus,
    )
