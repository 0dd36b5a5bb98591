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

"""Certificate Validator.

Read-only checks over the key and certificate files, with one exception: a
certificate that does not belong to the private key is quarantined, renamed
to ``<cert>.invalid`` so it is kept for diagnosis but no longer used.
"""

import datetime
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature

from edgepki.constants import QUARANTINE_SUFFIX
from edgepki.log_utils import get_obj_logger
from edgepki.utils import (
    cert_fingerprint,
    get_cert_cn,
    load_crt_chain_file,
    load_private_key_file,
    public_key_fingerprint,
    utcnow,
)


class CertificateStatus(str, Enum):
    MISSING = "missing"
    INVALID = "invalid"
    MISMATCH = "mismatch"
    EXPIRING = "expiring"
    USABLE = "usable"


@dataclass
class CertificateInfo:
    """Decoded view of a certificate file, as printed by ``show``."""

    path: str
    subject: str
    common_name: Optional[str]
    issuer: str
    serial_number: int
    not_before: datetime.datetime
    not_after: datetime.datetime
    fingerprint: str
    chain_length: int

    def to_text(self) -> str:
        lines = [
            f"Certificate:   {self.path}",
            f"Subject:       {self.subject}",
            f"Common Name:   {self.common_name or ''}",
            f"Issuer:        {self.issuer}",
            f"Serial Number: {self.serial_number:x}",
            f"Not Before:    {self.not_before.isoformat()}",
            f"Not After:     {self.not_after.isoformat()}",
            f"SHA-256:       {self.fingerprint}",
            f"Chain Length:  {self.chain_length}",
        ]
        return "\n".join(lines)


class CertificateValidator:
    def __init__(self):
        self.logger = get_obj_logger(self)

    def _load_chain(self, cert_path: str) -> Optional[List[x509.Certificate]]:
        try:
            return load_crt_chain_file(cert_path)
        except (OSError, ValueError) as e:
            self.logger.debug(f"cannot read certificate {cert_path}: {e}")
            return None

    def is_structurally_valid(self, cert_path: str) -> bool:
        """The file holds one or more PEM certificates, each directly issued by the next one."""
        chain = self._load_chain(cert_path)
        if not chain:
            return False
        for cert, issuer in zip(chain, chain[1:]):
            try:
                cert.verify_directly_issued_by(issuer)
            except (InvalidSignature, ValueError, TypeError) as e:
                subject = cert.subject.rfc4514_string()
                self.logger.debug(f"{cert_path}: {subject} is not issued by the next certificate: {e!r}")
                return False
        return True

    def key_matches_certificate(self, key_path: str, cert_path: str, quarantine: bool = True) -> bool:
        """Compare the public key of the private key with the one in the leaf certificate.

        Args:
            key_path: PEM private key
            cert_path: PEM certificate (chain); the first certificate is the leaf
            quarantine: rename the certificate to ``<cert>.invalid`` on mismatch

        Returns:
            True if both carry the same public key
        """
        chain = self._load_chain(cert_path)
        if not chain:
            return False
        try:
            pri_key = load_private_key_file(key_path)
        except (OSError, ValueError, TypeError) as e:
            self.logger.debug(f"cannot read private key {key_path}: {e}")
            return False

        if public_key_fingerprint(pri_key.public_key()) == public_key_fingerprint(chain[0].public_key()):
            return True

        if quarantine:
            quarantined = self.quarantine(cert_path)
            self.logger.warning(f"Certificate {cert_path} does not match key {key_path}, moved to {quarantined}")
        else:
            self.logger.warning(f"Certificate {cert_path} does not match key {key_path}")
        return False

    def quarantine(self, cert_path: str, target: Optional[str] = None) -> str:
        """Rename cert_path out of the way, by default to <cert>.invalid. An older quarantined file is replaced."""
        target = target or cert_path + QUARANTINE_SUFFIX
        os.replace(cert_path, target)
        return target

    def remaining_validity(self, cert_path: str) -> float:
        """Seconds until the leaf certificate expires; negative once expired.

        Raises:
            ValueError: if the file is missing or holds no certificate
        """
        chain = self._load_chain(cert_path)
        if not chain:
            raise ValueError(f"no certificate in {cert_path}")
        return (chain[0].not_valid_after_utc - utcnow()).total_seconds()

    def expires_within(self, cert_path: str, seconds: float) -> bool:
        """True if the certificate expires within seconds. A missing or unreadable file counts as expiring."""
        try:
            return self.remaining_validity(cert_path) < seconds
        except ValueError:
            return True

    def is_currently_valid(self, cert_path: str, margin_seconds: float = 0) -> bool:
        """The leaf is already valid and stays valid for at least margin_seconds."""
        chain = self._load_chain(cert_path)
        if not chain:
            return False
        now = utcnow()
        leaf = chain[0]
        return leaf.not_valid_before_utc <= now and (leaf.not_valid_after_utc - now).total_seconds() >= margin_seconds

    def check(self, key_path: str, cert_path: str, min_validity_seconds: float) -> CertificateStatus:
        """Classify the canonical certificate. A mismatched certificate is quarantined."""
        if not os.path.isfile(cert_path):
            return CertificateStatus.MISSING
        if not self.is_structurally_valid(cert_path):
            return CertificateStatus.INVALID
        if not os.path.isfile(key_path):
            # the certificate cannot be used without its key
            return CertificateStatus.MISSING
        if not self.key_matches_certificate(key_path, cert_path):
            return CertificateStatus.MISMATCH
        if self.expires_within(cert_path, min_validity_seconds):
            return CertificateStatus.EXPIRING
        return CertificateStatus.USABLE

    def is_usable(self, key_path: str, cert_path: str, min_validity_seconds: float) -> bool:
        return self.check(key_path, cert_path, min_validity_seconds) is CertificateStatus.USABLE

    def describe(self, cert_path: str) -> CertificateInfo:
        """Decode the leaf certificate of cert_path.

        Raises:
            ValueError: if the file holds no certificate
        """
        chain = load_crt_chain_file(cert_path)
        leaf = chain[0]
        return CertificateInfo(
            path=cert_path,
            subject=leaf.subject.rfc4514_string(),
            common_name=get_cert_cn(leaf),
            issuer=leaf.issuer.rfc4514_string(),
            serial_number=leaf.serial_number,
            not_before=leaf.not_valid_before_utc,
            not_after=leaf.not_valid_after_utc,
            fingerprint=cert_fingerprint(leaf),
            chain_length=len(chain),
        )
