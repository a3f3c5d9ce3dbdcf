# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/apis/constants.py

# Attributes set by the user on the volume
ISSUER_NAME_KEY = "csi.cert-manager.io/issuer-name"
ISSUER_KIND_KEY = "csi.cert-manager.io/issuer-kind"
ISSUER_GROUP_KEY = "csi.cert-manager.io/issuer-group"

COMMON_NAME_KEY = "csi.cert-manager.io/common-name"
DNS_NAMES_KEY = "csi.cert-manager.io/dns-names"
IP_SANS_KEY = "csi.cert-manager.io/ip-sans"
URI_SANS_KEY = "csi.cert-manager.io/uri-sans"

DURATION_KEY = "csi.cert-manager.io/duration"
IS_CA_KEY = "csi.cert-manager.io/is-ca"

CERT_FILE_KEY = "csi.cert-manager.io/certificate-file"
KEY_FILE_KEY = "csi.cert-manager.io/privatekey-file"

RENEW_BEFORE_KEY = "csi.cert-manager.io/renew-before"
DISABLE_AUTO_RENEW_KEY = "csi.cert-manager.io/disable-auto-renew"
REUSE_PRIVATE_KEY = "csi.cert-manager.io/reuse-private-key"

# Attributes set by kubelet
CSI_POD_NAME_KEY = "csi.storage.k8s.io/pod.name"
CSI_POD_NAMESPACE_KEY = "csi.storage.k8s.io/pod.namespace"
CSI_POD_UID_KEY = "csi.storage.k8s.io/pod.uid"
CSI_EPHEMERAL_KEY = "csi.storage.k8s.io/ephemeral"

BOOL_KEYS = (IS_CA_KEY, DISABLE_AUTO_RENEW_KEY, REUSE_PRIVATE_KEY)
DURATION_KEYS = (DURATION_KEY, RENEW_BEFORE_KEY)
FILE_KEYS = (CERT_FILE_KEY, KEY_FILE_KEY)

# Defaults
DEFAULT_ISSUER_KIND = "Issuer"
DEFAULT_ISSUER_GROUP = "cert-manager.io"
DEFAULT_DURATION = "2160h"
DEFAULT_RENEW_BEFORE = "720h"
DEFAULT_CERT_FILE = "crt.pem"
DEFAULT_KEY_FILE = "key.pem"

# On-disk layout
META_DATA_FILE_NAME = "metadata.json"
DATA_DIR_NAME = "data"
CA_FILE_NAME = "ca.pem"

KIB = 1024
MAX_STORAGE_CAPACITY = 100 * KIB

# cert-manager CertificateRequest
CM_GROUP = "cert-manager.io"
CM_VERSION = "v1"
CM_CR_PLURAL = "certificaterequests"
CM_CR_KIND = "CertificateRequest"

RSA_KEY_SIZE = 2048
