# tests/conftest.py
from __future__ import annotations

import base64
import copy
import threading
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from certcsi.apis import constants as c
from certcsi.errors import CertCSIError, MountError, NotFoundError
from certcsi.utils.duration import parse_duration


# ---- Throwaway issuing CA ----

class FakeCA:
    def __init__(self):
        self.key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "test-ca")])
        now = datetime.now(timezone.utc)
        self.cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=5))
            .not_valid_after(now + timedelta(days=3650))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(self.key, hashes.SHA256())
        )
        self.pem = self.cert.public_bytes(serialization.Encoding.PEM)

    def _sign(self, subject, public_key, lifetime: timedelta, extensions=()) -> bytes:
        now = datetime.now(timezone.utc)
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(self.cert.subject)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + lifetime)
        )
        for ext in extensions:
            builder = builder.add_extension(ext, critical=False)
        return builder.sign(self.key, hashes.SHA256()).public_bytes(serialization.Encoding.PEM)

    def sign_csr(self, csr_pem: bytes, lifetime: timedelta) -> bytes:
        csr = x509.load_pem_x509_csr(csr_pem)
        exts = []
        try:
            exts.append(csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value)
        except x509.ExtensionNotFound:
            pass
        return self._sign(csr.subject, csr.public_key(), lifetime, exts)

    def issue(self, common_name: str, lifetime: timedelta) -> bytes:
        key = ec.generate_private_key(ec.SECP256R1())
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        return self._sign(subject, key.public_key(), lifetime)


# ---- In-memory CertificateRequest API ----

class FakeCertificateRequestClient:
    """
    mode: "ready" signs on create, "failed" marks the request failed,
    "pending" leaves it without conditions.
    lifetime: overrides the requested duration of issued certificates.
    """

    def __init__(self, ca: FakeCA, mode: str = "ready"):
        self.ca = ca
        self.mode = mode
        self.lifetime: timedelta | None = None
        self.objects: dict = {}
        self.calls: list = []
        self._lock = threading.Lock()

    def get(self, name, namespace):
        with self._lock:
            self.calls.append(("get", namespace, name))
            try:
                return copy.deepcopy(self.objects[(namespace, name)])
            except KeyError:
                raise NotFoundError(f"{namespace}/{name} not found")

    def create(self, obj):
        ns, name = obj["metadata"]["namespace"], obj["metadata"]["name"]
        with self._lock:
            self.calls.append(("create", ns, name))
            if (ns, name) in self.objects:
                raise CertCSIError(f"{ns}/{name} already exists")
            obj = copy.deepcopy(obj)
            obj["status"] = self._status(obj)
            self.objects[(ns, name)] = obj
            return copy.deepcopy(obj)

    def delete(self, name, namespace):
        with self._lock:
            self.calls.append(("delete", namespace, name))
            if (namespace, name) not in self.objects:
                raise NotFoundError(f"{namespace}/{name} not found")
            del self.objects[(namespace, name)]

    def approve(self, namespace, name):
        with self._lock:
            obj = self.objects[(namespace, name)]
            obj["status"] = self._signed(obj)

    def count(self, verb):
        return sum(1 for call in self.calls if call[0] == verb)

    def _status(self, obj):
        if self.mode == "pending":
            return {"conditions": []}
        if self.mode == "failed":
            return {
                "conditions": [
                    {
                        "type": "Ready",
                        "status": "False",
                        "reason": "Failed",
                        "message": "issuer ca-issuer rejected the request",
                    }
                ]
            }
        return self._signed(obj)

    def _signed(self, obj):
        csr_pem = base64.b64decode(obj["spec"]["request"])
        lifetime = self.lifetime or parse_duration(obj["spec"]["duration"])
        cert_pem = self.ca.sign_csr(csr_pem, lifetime)
        return {
            "conditions": [{"type": "Ready", "status": "True", "reason": "Issued"}],
            "certificate": base64.b64encode(cert_pem).decode(),
            "ca": base64.b64encode(self.ca.pem).decode(),
        }


# ---- Mount and notification doubles ----

class FakeMounter:
    def __init__(self):
        self.mounted: set = set()
        self.calls: list = []
        self.fail_mount = False
        self.fail_unmount = False

    def is_likely_mount_point(self, path):
        return str(path) in self.mounted

    def mount(self, source, target, options=("ro",)):
        self.calls.append(("mount", str(source), str(target), tuple(options)))
        if self.fail_mount:
            raise MountError("mount: permission denied")
        self.mounted.add(str(target))

    def unmount(self, target):
        self.calls.append(("unmount", str(target)))
        if self.fail_unmount:
            raise MountError("umount: target is busy")
        self.mounted.discard(str(target))


class Capture:
    def __init__(self):
        self.events = []

    def notify(self, ev):
        self.events.append(ev)

    def kinds(self):
        return [e.__class__.__name__ for e in self.events]


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(scope="session")
def ca():
    return FakeCA()


@pytest.fixture
def cr_client(ca):
    return FakeCertificateRequestClient(ca)


@pytest.fixture
def mounter():
    return FakeMounter()


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def pod_attributes():
    return {
        c.ISSUER_NAME_KEY: "ca-issuer",
        c.COMMON_NAME_KEY: "svc.default",
        c.DNS_NAMES_KEY: "svc.default.svc",
        c.CSI_POD_NAME_KEY: "my-pod",
        c.CSI_POD_NAMESPACE_KEY: "default",
        c.CSI_POD_UID_KEY: "0b6b5e0c-3b1b-4c8e-9f4a-1d2e3f4a5b6c",
    }
