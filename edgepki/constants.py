# Copyright (c) 2026, NVIDIA CORPORATION.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

DEFAULT_BASEDIR = "/etc/tedge/device-certs"

# 7 days
DEFAULT_MIN_VALIDITY_SECONDS = 604800
MIN_VALIDITY_FLOOR_SECONDS = 60

# 1 day
DEFAULT_CERT_DURATION_SECONDS = 86400
CERT_DURATION_FLOOR_SECONDS = 86400

DEFAULT_CA_HOST = "127.0.0.1:8888"

PENDING_SUFFIX = ".tmp"
QUARANTINE_SUFFIX = ".invalid"


class Backend:
    LOCAL = "local"
    REMOTE = "remote"


DEFINED_BACKENDS = [Backend.LOCAL, Backend.REMOTE]


class KeyPolicy:
    EC_P256 = "ec-p256"
    ANY = "any"


class FileBasename:
    PRIVATE_KEY = "tedge-private-key.pem"
    CSR = "tedge.csr"
    CERTIFICATE = "tedge-certificate.pem"
    CA_CERTIFICATE = "ca.pem"
    CA_PRIVATE_KEY = "ca-key.pem"


class EnvVar:
    CONFIG = "PKI_CONFIG"
    BASEDIR = "BASEDIR"
    DEFAULT_BASEDIR = "DEFAULT_BASEDIR"
    DEVICE_ID = "DEVICE_ID"
    FORCE = "FORCE"
    BACKEND = "PKI_BACKEND"
    CA_HOST = "CA_HOST"
    MIN_VALIDITY = "MIN_VALIDITY_SEC"
    CERT_DURATION = "CERT_DURATION_SEC"
    CA_KEY_ENCODED = "CA_CERT_CONTENTS_KEY"
    CA_CERT_ENCODED = "CA_CERT_CONTENTS_PUB"
    TIMEOUT = "PKI_TIMEOUT"


class CASubject:
    """Fixed subject of a locally bootstrapped root CA."""

    COUNTRY = "DE"
    ORG = "Thin Edge"
    ORG_UNIT = "Test CA"
    COMMON_NAME = "tedge-pki-ca"
    KEY_SIZE = 4096
    VALID_DAYS = 1024


class DeviceSubject:
    """Subject names and key parameters requested from the remote CA for new devices."""

    COUNTRY = "DE"
    ORG = "Thin Edge"
    ORG_UNIT = "Test Device"
    KEY_ALGO = "rsa"
    KEY_SIZE = 2048


class CfsslEndpoint:
    INFO = "/api/v1/cfssl/info"
    SIGN = "/api/v1/cfssl/sign"
    NEWCERT = "/api/v1/cfssl/newcert"


CFSSL_INFO_LABEL = "primary"
