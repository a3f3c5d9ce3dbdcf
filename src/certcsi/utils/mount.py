# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/mount.py
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Sequence

from certcsi.errors import MountError

log = logging.getLogger("certcsi")


class Mounter:
    """
    Thin wrapper around mount(8)/umount(8).

    Bind mounts are made read-only with a second remount pass, since the
    kernel ignores "ro" on the initial bind.
    """

    def __init__(self, mount_bin: str = "mount", umount_bin: str = "umount"):
        self.mount_bin = mount_bin
        self.umount_bin = umount_bin

    def _run(self, argv: List[str]) -> None:
        log.debug("$ %s", " ".join(argv))
        cp = subprocess.run(argv, check=False, text=True, capture_output=True)
        if cp.returncode != 0:
            raise MountError(
                f"{' '.join(argv)} failed (rc={cp.returncode}): {(cp.stderr or cp.stdout).strip()}"
            )

    def is_likely_mount_point(self, path: str | Path) -> bool:
        path = Path(path)
        try:
            st = os.stat(path)
            parent = os.stat(path.parent)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as exc:
            raise MountError(f"cannot inspect {path}: {exc}") from exc
        return st.st_dev != parent.st_dev

    def mount(self, source: str | Path, target: str | Path, options: Sequence[str] = ("ro",)) -> None:
        self._run([self.mount_bin, "-o", "bind", str(source), str(target)])
        if "ro" in options:
            try:
                self._run([self.mount_bin, "-o", "bind,remount,ro", str(source), str(target)])
            except MountError:
                self._run([self.umount_bin, str(target)])
                raise

    def unmount(self, target: str | Path) -> None:
        if not self.is_likely_mount_point(target):
            log.debug("%s is not a mount point, skipping unmount", target)
            return
        self._run([self.umount_bin, str(target)])
