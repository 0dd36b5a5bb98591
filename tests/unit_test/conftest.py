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

import datetime
import os
import tempfile

import pytest

from edgepki.config import PKIConfig
from edgepki.utils import (
    Identity,
    generate_ca_cert,
    generate_cert,
    generate_csr,
    generate_ec_keys,
    generate_keys,
    serialize_cert,
    serialize_csr,
    serialize_pri_key,
    utcnow,
    x509_name,
)

# 30 days
TEST_CERT_DURATION = 30 * 86400
# 1 hour
TEST_MIN_VALIDITY = 3600


@pytest.fixture(scope="session")
def ca_material():
    """A 2048-bit test CA (cert, key objects and their PEM), generated once per session."""
    pri_key, _ = generate_keys()
    cert = generate_ca_cert(Identity("test-ca", org="Test Org", country="DE"), pri_key, valid_days=365)
    return {
        "cert": cert,
        "key": pri_key,
        "cert_pem": serialize_cert(cert),
        "key_pem": serialize_pri_key(pri_key),
    }


@pytest.fixture
def basedir():
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


@pytest.fixture
def config(basedir):
    return PKIConfig(
        basedir=basedir,
        cert_duration_seconds=TEST_CERT_DURATION,
        min_validity_seconds=TEST_MIN_VALIDITY,
    )


@pytest.fixture
def local_ca(config, ca_material):
    """Install the test CA into basedir."""
    with open(config.ca_cert_path, "wb") as f:
        f.write(ca_material["cert_pem"])
    with open(config.ca_key_path, "wb") as f:
        f.write(ca_material["key_pem"])
    return ca_material


@pytest.fixture
def issue_chain(ca_material):
    """Factory writing a leaf + CA chain for a fresh EC key.

    Returns (key_pem, chain_pem). Validity is given relative to now, in seconds.
    """

    def _issue(common_name="device-001", not_before=-60, not_after=TEST_CERT_DURATION, pri_key=None):
        if pri_key is None:
            pri_key, _ = generate_ec_keys()
        now = utcnow()
        leaf = generate_cert(
            subject=x509_name(common_name),
            issuer_cert=ca_material["cert"],
            signing_pri_key=ca_material["key"],
            subject_pub_key=pri_key.public_key(),
            not_before=now + datetime.timedelta(seconds=not_before),
            not_after=now + datetime.timedelta(seconds=not_after),
        )
        return serialize_pri_key(pri_key), serialize_cert(leaf) + ca_material["cert_pem"]

    return _issue


@pytest.fixture
def csr_pem():
    pri_key, _ = generate_ec_keys()
    return serialize_csr(generate_csr(pri_key, "device-001"))


def write_bytes(path: str, content: bytes):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


@pytest.fixture
def write_file():
    return write_bytes
