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

"""CA Trust Provider.

Makes sure the CA certificate (and, for the local backend, the CA private key)
exists under basedir. Missing material is bootstrapped, first success wins:

1. base64 PEM from the environment (CA_CERT_CONTENTS_PUB / CA_CERT_CONTENTS_KEY)
2. remote backend only: the CA's info endpoint
3. local backend only: a freshly generated self-signed root

Whatever was obtained is written to disk, so later calls find it and do nothing.
"""

import binascii
import os
from enum import Enum
from typing import Optional

from edgepki.config import PKIConfig
from edgepki.constants import CASubject
from edgepki.errors import MissingTrustAnchor, RemoteSigningError, UnsupportedOperation
from edgepki.log_utils import get_obj_logger
from edgepki.utils import (
    Identity,
    decode_base64_pem,
    generate_ca_cert,
    generate_keys,
    load_crt_bytes,
    load_private_key,
    public_key_fingerprint,
    serialize_cert,
    serialize_pri_key,
    write_file_atomic,
)

CA_KEY_FILE_MODE = 0o600
CA_CERT_FILE_MODE = 0o644


class TrustSource(str, Enum):
    """Where load_or_bootstrap found the trust anchor."""

    EXISTING = "existing"
    ENVIRONMENT = "environment"
    REMOTE = "remote"
    GENERATED = "generated"


class CATrustProvider:
    def __init__(self, config: PKIConfig, local: bool, client=None):
        """Trust anchor access for one base directory.

        Args:
            config: resolved configuration
            local: True when this host signs with its own CA key
            client: CfsslClient used to fetch the CA certificate (remote backend only)
        """
        self.config = config
        self.local = local
        self.client = client
        self.cert_path = config.ca_cert_path
        self.key_path = config.ca_key_path
        self.logger = get_obj_logger(self)

    def _has_material(self) -> bool:
        if not os.path.isfile(self.cert_path):
            return False
        return not self.local or os.path.isfile(self.key_path)

    def load_or_bootstrap(self) -> TrustSource:
        """Make sure the trust anchor is on disk.

        Returns:
            the TrustSource that provided the material

        Raises:
            MissingTrustAnchor: if no bootstrap path succeeded or existing files are unusable
        """
        if self._has_material():
            self._validate_existing()
            self.logger.debug(f"CA certificate present: {self.cert_path}")
            return TrustSource.EXISTING

        if self._load_from_environment():
            return TrustSource.ENVIRONMENT

        if not self.local:
            if self._fetch_from_remote():
                return TrustSource.REMOTE
            raise MissingTrustAnchor(
                f"No CA certificate at {self.cert_path}: not supplied through the environment "
                f"and could not be fetched from {self.config.ca_url}"
            )

        self._generate_root()
        return TrustSource.GENERATED

    def _validate_existing(self):
        try:
            with open(self.cert_path, "rb") as f:
                ca_cert = load_crt_bytes(f.read())
            if self.local:
                with open(self.key_path, "rb") as f:
                    ca_key = load_private_key(f.read())
                if public_key_fingerprint(ca_key.public_key()) != public_key_fingerprint(ca_cert.public_key()):
                    raise MissingTrustAnchor(f"CA key {self.key_path} does not belong to {self.cert_path}")
        except (ValueError, TypeError) as e:
            raise MissingTrustAnchor(f"CA files exist but are invalid: {e}")

    def _load_from_environment(self) -> bool:
        cert_encoded = self.config.ca_cert_encoded
        key_encoded = self.config.ca_key_encoded
        if not cert_encoded:
            return False
        if self.local and not key_encoded:
            self.logger.warning("CA certificate supplied through the environment without its private key, ignored")
            return False

        try:
            cert_pem = decode_base64_pem(cert_encoded)
            load_crt_bytes(cert_pem)
            key_pem = None
            if self.local:
                key_pem = decode_base64_pem(key_encoded)
                load_private_key(key_pem)
        except (binascii.Error, ValueError, TypeError) as e:
            self.logger.warning(f"Could not decode the CA material from the environment: {e}")
            return False

        if key_pem is not None:
            write_file_atomic(self.key_path, key_pem, CA_KEY_FILE_MODE)
        write_file_atomic(self.cert_path, cert_pem, CA_CERT_FILE_MODE)
        self.logger.info(f"CA material loaded from the environment into {self.config.basedir}")
        return True

    def _fetch_from_remote(self) -> bool:
        if self.client is None:
            self.logger.warning("No CA client configured, cannot fetch the CA certificate")
            return False
        try:
            cert_pem = self.client.info()
            load_crt_bytes(cert_pem)
        except (RemoteSigningError, ValueError) as e:
            self.logger.warning(f"Could not fetch the CA certificate: {e}")
            return False
        write_file_atomic(self.cert_path, cert_pem, CA_CERT_FILE_MODE)
        self.logger.info(f"CA certificate fetched from {self.config.ca_url}: {self.cert_path}")
        return True

    def _generate_root(self):
        self.logger.info("No CA found - generating a self-signed root CA...")
        pri_key, _ = generate_keys(CASubject.KEY_SIZE)
        subject = Identity(
            CASubject.COMMON_NAME,
            org=CASubject.ORG,
            org_unit=CASubject.ORG_UNIT,
            country=CASubject.COUNTRY,
        )
        ca_cert = generate_ca_cert(subject, pri_key, CASubject.VALID_DAYS)

        # key before certificate
        write_file_atomic(self.key_path, serialize_pri_key(pri_key), CA_KEY_FILE_MODE)
        write_file_atomic(self.cert_path, serialize_cert(ca_cert), CA_CERT_FILE_MODE)
        self.logger.info(f"Root CA certificate created: {self.cert_path}")
        self.logger.info(f"Root CA private key created: {self.key_path}")
        self.logger.info(f"Validity: {CASubject.VALID_DAYS} days")

    def public_certificate(self) -> bytes:
        if not os.path.isfile(self.cert_path):
            raise MissingTrustAnchor(f"CA certificate not found: {self.cert_path}")
        with open(self.cert_path, "rb") as f:
            return f.read()

    def private_key(self) -> bytes:
        if not self.local:
            raise UnsupportedOperation("The CA private key is not available with the remote signing backend")
        if not os.path.isfile(self.key_path):
            raise MissingTrustAnchor(f"CA private key not found: {self.key_path}")
        with open(self.key_path, "rb") as f:
            return f.read()

    def subject(self) -> Optional[str]:
        """The CA subject as an RFC 4514 string, or None if there is no CA certificate yet."""
        if not os.path.isfile(self.cert_path):
            return None
        return load_crt_bytes(self.public_certificate()).subject.rfc4514_string()
