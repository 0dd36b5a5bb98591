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

from abc import ABC, abstractmethod

from edgepki.utils import load_crt_bytes, load_crt_chain, serialize_cert


class Signer(ABC):
    """A signing backend.

    ``sign`` turns a PEM CSR into a PEM chain (leaf followed by the CA certificate)
    or raises a SigningError. Backends that generate the device key themselves set
    ``issues_keys``.
    """

    issues_keys = False

    @abstractmethod
    def sign(self, csr: bytes) -> bytes:
        pass

    @staticmethod
    def chain(leaf_pem: bytes, ca_pem: bytes) -> bytes:
        """Concatenate the leaf and the issuing CA certificate into one PEM file.

        Raises:
            ValueError: if either input is not a PEM certificate
        """
        leaf = load_crt_bytes(leaf_pem)
        ca_certs = load_crt_chain(ca_pem)
        return serialize_cert(leaf) + serialize_cert(ca_certs[0])
