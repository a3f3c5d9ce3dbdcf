from datetime import timedelta

from certcsi.apis import constants as c
from certcsi.apis.defaults import renew_before, requested_duration, set_default_attributes


def test_defaults_fill_unset_keys_only():
    raw = {c.ISSUER_NAME_KEY: "ca-issuer", c.ISSUER_KIND_KEY: "ClusterIssuer", c.DURATION_KEY: ""}
    attr = set_default_attributes(raw)

    assert attr[c.ISSUER_KIND_KEY] == "ClusterIssuer"
    assert attr[c.ISSUER_GROUP_KEY] == "cert-manager.io"
    assert attr[c.DURATION_KEY] == c.DEFAULT_DURATION
    assert attr[c.RENEW_BEFORE_KEY] == c.DEFAULT_RENEW_BEFORE
    assert attr[c.CERT_FILE_KEY] == "crt.pem"
    assert attr[c.KEY_FILE_KEY] == "key.pem"
    assert attr[c.REUSE_PRIVATE_KEY] == "false"
    assert attr[c.DISABLE_AUTO_RENEW_KEY] == "false"
    assert attr[c.IS_CA_KEY] == "false"

    # caller's mapping is left alone
    assert raw[c.DURATION_KEY] == ""
    assert c.ISSUER_GROUP_KEY not in raw


def test_duration_helpers():
    attr = {c.DURATION_KEY: "24h", c.RENEW_BEFORE_KEY: "90m"}
    assert requested_duration(attr) == timedelta(hours=24)
    assert renew_before(attr) == timedelta(minutes=90)
    assert renew_before({}) == timedelta(days=30)
    assert requested_duration({}) == timedelta(days=90)
