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

"""Remote signing through a cfssl-compatible HTTP API.

Endpoints used:

    POST /api/v1/cfssl/info     {"label": "primary"}
    POST /api/v1/cfssl/sign     {"certificate_request": <CSR PEM>}
    POST /api/v1/cfssl/newcert  {"request": {"CN": ..., "names": [...], "key": {...}}}

Every response is a cfssl envelope: {"success": bool, "result": {...}, "errors": [...]}.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from edgepki.constants import CFSSL_INFO_LABEL, CfsslEndpoint, DeviceSubject
from edgepki.errors import RemoteSigningError
from edgepki.log_utils import get_obj_logger

from .spec import Signer


@dataclass
class IssuedIdentity:
    """Key, CSR and certificate chain issued together by the remote CA (all PEM)."""

    private_key: bytes
    csr: bytes
    certificate: bytes


class CfsslClient:
    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_obj_logger(self)

    def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{self.base_url}{endpoint}"
        self.logger.debug(f"POST {url}")
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteSigningError(f"Failed to connect to the CA at {url}: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code != 200:
            raise RemoteSigningError(
                f"CA request to {url} failed with HTTP {response.status_code}: {_error_text(body, response.text)}"
            )
        if not isinstance(body, dict):
            raise RemoteSigningError(f"CA response from {url} is not a JSON object")
        if body.get("success") is False:
            raise RemoteSigningError(f"CA rejected the request to {url}: {_error_text(body, response.text)}")

        result = body.get("result")
        if not isinstance(result, dict) or not result.get("certificate"):
            raise RemoteSigningError(f"CA response from {url} has no certificate")
        return result

    def info(self) -> bytes:
        """The CA certificate (PEM)."""
        result = self._post(CfsslEndpoint.INFO, {"label": CFSSL_INFO_LABEL})
        return _pem(result["certificate"])

    def sign(self, csr_pem: bytes) -> bytes:
        """Sign a CSR. Returns the leaf certificate (PEM)."""
        result = self._post(CfsslEndpoint.SIGN, {"certificate_request": csr_pem.decode("utf-8")})
        return _pem(result["certificate"])

    def newcert(self, common_name: str) -> IssuedIdentity:
        """Have the CA generate a key pair and issue a certificate for common_name."""
        payload = {
            "request": {
                "hosts": [],
                "names": [{"C": DeviceSubject.COUNTRY, "O": DeviceSubject.ORG, "OU": DeviceSubject.ORG_UNIT}],
                "CN": common_name,
                "key": {"algo": DeviceSubject.KEY_ALGO, "size": DeviceSubject.KEY_SIZE},
            }
        }
        result = self._post(CfsslEndpoint.NEWCERT, payload)
        for field in ("private_key", "certificate_request"):
            if not result.get(field):
                raise RemoteSigningError(f"CA newcert response has no {field}")
        return IssuedIdentity(
            private_key=_pem(result["private_key"]),
            csr=_pem(result["certificate_request"]),
            certificate=_pem(result["certificate"]),
        )


def _pem(value: str) -> bytes:
    data = value.encode("utf-8")
    return data if data.endswith(b"\n") else data + b"\n"


def _error_text(body, default: str) -> str:
    if isinstance(body, dict):
        errors = body.get("errors")
        if errors:
            return "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
    return default


class RemoteSigner(Signer):
    """Signs through the remote CA. The CA certificate is appended to every issued leaf."""

    issues_keys = True

    def __init__(self, client: CfsslClient, trust):
        self.client = client
        self.trust = trust
        self.logger = get_obj_logger(self)

    def _chain(self, leaf_pem: bytes) -> bytes:
        try:
            return self.chain(leaf_pem, self.trust.public_certificate())
        except ValueError as e:
            raise RemoteSigningError(f"CA returned an unreadable certificate: {e}")

    def sign(self, csr: bytes) -> bytes:
        self.logger.info(f"Submitting CSR to {self.client.base_url}")
        return self._chain(self.client.sign(csr))

    def issue_new(self, common_name: str) -> IssuedIdentity:
        self.logger.info(f"Requesting a new key and certificate for '{common_name}' from {self.client.base_url}")
        issued = self.client.newcert(common_name)
        return IssuedIdentity(
            private_key=issued.private_key,
            csr=issued.csr,
            certificate=self._chain(issued.certificate),
        )
