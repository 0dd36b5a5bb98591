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
from typing import List

from edgepki.constants import CERT_DURATION_FLOOR_SECONDS
from edgepki.errors import LocalSigningError, MissingTrustAnchor
from edgepki.log_utils import get_obj_logger
from edgepki.utils import (
    generate_cert,
    get_csr_cn,
    load_crt_bytes,
    load_csr,
    load_private_key,
    serialize_cert,
    utcnow,
    x509_name,
)

from .spec import Signer

# clock skew allowance for freshly issued certificates
BACKDATE = datetime.timedelta(minutes=1)


def san_dns_names(common_name: str) -> List[str]:
    """DNS names for the subjectAltName: the common name itself, or its IDNA A-label if it is not ASCII."""
    if common_name.isascii():
        return [common_name]
    try:
        return [common_name.encode("idna").decode("ascii")]
    except UnicodeError:
        return []


class LocalSigner(Signer):
    """Signs CSRs with the CA key held under basedir."""

    issues_keys = False

    def __init__(self, trust, duration_seconds: int):
        self.trust = trust
        self.duration_seconds = max(duration_seconds, CERT_DURATION_FLOOR_SECONDS)
        self.logger = get_obj_logger(self)

    def _load_ca(self):
        try:
            ca_pem = self.trust.public_certificate()
            ca_key_pem = self.trust.private_key()
        except MissingTrustAnchor as e:
            raise LocalSigningError(f"CA trust anchor unavailable: {e}")
        try:
            return load_crt_bytes(ca_pem), load_private_key(ca_key_pem), ca_pem
        except (ValueError, TypeError) as e:
            raise LocalSigningError(f"CA trust anchor unreadable: {e}")

    def sign(self, csr: bytes) -> bytes:
        try:
            request = load_csr(csr)
        except ValueError as e:
            raise LocalSigningError(f"CSR does not parse: {e}")
        if not request.is_signature_valid:
            raise LocalSigningError("CSR signature is invalid")

        common_name = get_csr_cn(request)
        if not common_name:
            raise LocalSigningError("CSR has no common name")

        ca_cert, ca_key, ca_pem = self._load_ca()
        dns_names = san_dns_names(common_name)
        if not dns_names:
            self.logger.warning(f"'{common_name}' is not a valid host name, certificate has no subjectAltName")
        now = utcnow()
        try:
            cert = generate_cert(
                subject=x509_name(common_name),
                issuer_cert=ca_cert,
                signing_pri_key=ca_key,
                subject_pub_key=request.public_key(),
                not_before=now - BACKDATE,
                not_after=now + datetime.timedelta(seconds=self.duration_seconds),
                dns_names=dns_names,
            )
        except (ValueError, TypeError) as e:
            raise LocalSigningError(f"Could not issue a certificate for '{common_name}': {e}")
        self.logger.info(f"Certificate issued for '{common_name}', valid for {self.duration_seconds} seconds")
        return self.chain(serialize_cert(cert), ca_pem)
