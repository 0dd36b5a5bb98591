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


class PKIError(Exception):
    """Base class of every terminal failure reported at the command boundary."""

    pass


class ConfigurationError(PKIError):
    pass


class MissingTrustAnchor(PKIError):
    pass


class UnsupportedOperation(PKIError):
    pass


class SigningError(PKIError):
    pass


class RemoteSigningError(SigningError):
    pass


class LocalSigningError(SigningError):
    pass


class RenewalValidationFailed(PKIError):
    """The freshly signed material failed validation; canonical files were not touched."""

    pass


class KeyCertificateMismatch(PKIError):
    """The certificate does not belong to the private key. The certificate was quarantined."""

    pass


class CertificateNotFound(PKIError):
    pass
