import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509

from certcsi.apis import constants as c
from certcsi.apis.defaults import set_default_attributes
from certcsi.apis.models import VolumeMetaData
from certcsi.certmanager.manager import CertManager
from certcsi.observers.dispatcher import EventBus
from certcsi.observers.events import VolumeRenewed
from certcsi.renew.renewer import Renewer
from certcsi.utils import files
from certcsi.utils.keys import new_rsa_key


def _vol(root: Path, vid: str, **attrs) -> VolumeMetaData:
    path = root / vid
    path.mkdir(parents=True, exist_ok=True)
    base = {
        c.ISSUER_NAME_KEY: "ca-issuer",
        c.COMMON_NAME_KEY: f"{vid}.default",
        c.CSI_POD_NAME_KEY: "my-pod",
        c.CSI_POD_NAMESPACE_KEY: "default",
    }
    base.update(attrs)
    return VolumeMetaData(
        id=vid,
        name=f"my-pod-{vid}",
        path=str(path),
        target_path=f"/target/{vid}",
        attributes=set_default_attributes(base),
    )


def _wait_for(cond, timeout=5.0):
    end = time.monotonic() + timeout
    while time.monotonic() < end:
        if cond():
            return True
        time.sleep(0.01)
    return False


def _in(**kw) -> datetime:
    return datetime.now(timezone.utc) + timedelta(**kw)


@pytest.fixture
def never_renew():
    def renew(vol):
        raise AssertionError(f"unexpected renewal of {vol.id}")
    return renew


def test_watch_registers_watcher_keyed_to_expiry(tmp_path, never_renew):
    r = Renewer(tmp_path, never_renew)
    vol = _vol(tmp_path, "v1")
    expiry = _in(days=60)

    w = r.watch_cert(vol, expiry)

    assert r.active_watchers() == {"v1": expiry}
    assert w.wake_at == expiry - timedelta(hours=720)
    r.stop()


def test_watch_is_noop_when_auto_renew_disabled(tmp_path, never_renew):
    r = Renewer(tmp_path, never_renew)
    vol = _vol(tmp_path, "v1", **{c.DISABLE_AUTO_RENEW_KEY: "true"})

    assert r.watch_cert(vol, _in(days=60)) is None
    assert r.active_watchers() == {}


def test_kill_unknown_watcher_is_noop(tmp_path, never_renew):
    r = Renewer(tmp_path, never_renew)
    r.kill_watcher("does-not-exist")
    assert r.active_watchers() == {}


def test_cancel_preempts_sleep(tmp_path, never_renew):
    r = Renewer(tmp_path, never_renew)
    w = r.watch_cert(_vol(tmp_path, "v1"), _in(days=60))

    r.kill_watcher("v1")

    w.thread.join(timeout=2)
    assert not w.thread.is_alive()
    assert w.cancelled.is_set()
    assert r.active_watchers() == {}


def test_new_watcher_supersedes_old_one(tmp_path, never_renew):
    r = Renewer(tmp_path, never_renew)
    vol = _vol(tmp_path, "v1")
    first = r.watch_cert(vol, _in(days=60))
    second_expiry = _in(days=90)

    second = r.watch_cert(vol, second_expiry)

    first.thread.join(timeout=2)
    assert not first.thread.is_alive()
    assert not second.cancelled.is_set()
    assert r.active_watchers() == {"v1": second_expiry}
    r.stop()


def test_firing_watcher_renews_and_rearms(tmp_path, ca, capture):
    renewed = threading.Event()
    new_cert = x509.load_pem_x509_certificate(ca.issue("v1.default", timedelta(days=90)))

    def renew(vol):
        renewed.set()
        return new_cert

    r = Renewer(tmp_path, renew, bus=EventBus([capture]))
    vol = _vol(tmp_path, "v1", **{c.RENEW_BEFORE_KEY: "1h"})

    # inside the renew-before window -> fires straight away
    r.watch_cert(vol, _in(minutes=30))

    assert renewed.wait(5)
    assert _wait_for(lambda: r.active_watchers().get("v1") == new_cert.not_valid_after_utc)
    assert _wait_for(lambda: any(isinstance(e, VolumeRenewed) for e in capture.events))
    r.stop()


def test_failed_renewal_is_not_retried(tmp_path):
    attempts = []

    def renew(vol):
        attempts.append(vol.id)
        raise RuntimeError("issuer unavailable")

    r = Renewer(tmp_path, renew)
    w = r.watch_cert(_vol(tmp_path, "v1", **{c.RENEW_BEFORE_KEY: "1h"}), _in(minutes=30))

    w.thread.join(timeout=5)
    assert attempts == ["v1"]
    assert r.active_watchers() == {}


def test_renewal_that_does_not_extend_expiry_is_not_rearmed(tmp_path, ca):
    stale = x509.load_pem_x509_certificate(ca.issue("v1.default", timedelta(minutes=10)))

    r = Renewer(tmp_path, lambda vol: stale)
    w = r.watch_cert(_vol(tmp_path, "v1", **{c.RENEW_BEFORE_KEY: "1h"}), _in(minutes=30))

    w.thread.join(timeout=5)
    assert r.active_watchers() == {}


def test_teardown_during_renewal_wins(tmp_path, ca):
    started = threading.Event()
    release = threading.Event()
    new_cert = x509.load_pem_x509_certificate(ca.issue("v1.default", timedelta(days=90)))

    def renew(vol):
        started.set()
        release.wait(5)
        return new_cert

    r = Renewer(tmp_path, renew)
    w = r.watch_cert(_vol(tmp_path, "v1", **{c.RENEW_BEFORE_KEY: "1h"}), _in(minutes=30))

    assert started.wait(5)
    r.kill_watcher("v1")
    release.set()

    w.thread.join(timeout=5)
    assert r.active_watchers() == {}


def test_renewal_advances_persisted_certificate(tmp_path, cr_client):
    cm = CertManager(cr_client)
    vol = _vol(tmp_path, "v1", **{c.RENEW_BEFORE_KEY: "1h"})

    cr_client.lifetime = timedelta(minutes=30)
    first = cm.create_new_certificate(vol, new_rsa_key())
    cr_client.lifetime = None

    r = Renewer(tmp_path, cm.renew_certificate)
    r.watch_cert(vol, first.not_valid_after_utc)

    def advanced():
        expiry = r.active_watchers().get("v1")
        return expiry is not None and expiry > first.not_valid_after_utc

    assert _wait_for(advanced)
    on_disk = x509.load_pem_x509_certificate(files.cert_path(vol).read_bytes())
    assert on_disk.not_valid_after_utc > first.not_valid_after_utc
    assert on_disk.not_valid_after_utc == r.active_watchers()["v1"]
    r.stop()


def test_discover_rearms_persisted_volumes_only(tmp_path, ca, never_renew):
    for vid in ("a", "b"):
        vol = _vol(tmp_path, vid)
        files.write_meta_data_file(vol)
        files.mount_path(vol).mkdir()
        files.write_file(files.cert_path(vol), ca.issue(f"{vid}.default", timedelta(days=60)))

    # no metadata
    (tmp_path / "c" / "data").mkdir(parents=True)
    # corrupt metadata
    (tmp_path / "d").mkdir()
    (tmp_path / "d" / "metadata.json").write_text("{oops")
    # metadata but no certificate
    files.write_meta_data_file(_vol(tmp_path, "e"))
    # stray file in the data root
    (tmp_path / "lost+found.txt").write_text("")

    r = Renewer(tmp_path, never_renew)
    assert r.discover() == 2
    assert sorted(r.active_watchers()) == ["a", "b"]
    r.stop()


def test_discover_on_missing_root(tmp_path, never_renew):
    r = Renewer(tmp_path / "missing", never_renew)
    assert r.discover() == 0
