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

"""edgepki: X.509 device certificate lifecycle for edge devices.

Example usage:

    from edgepki import LifecycleOrchestrator, load_config

    config = load_config(overrides={"basedir": "/etc/tedge/device-certs"})
    orchestrator = LifecycleOrchestrator.from_config(config)
    orchestrator.new("device-001")
    print(orchestrator.show().to_text())
"""

from .config import PKIConfig, load_config
from .errors import (
    CertificateNotFound,
    ConfigurationError,
    KeyCertificateMismatch,
    LocalSigningError,
    MissingTrustAnchor,
    PKIError,
    RemoteSigningError,
    RenewalValidationFailed,
    SigningError,
    UnsupportedOperation,
)
from .orchestrator import LifecycleOrchestrator, LifecycleState
from .renewer import RenewalDriver
from .store import KeyMaterialStore
from .trust import CATrustProvider, TrustSource
from .validator import CertificateInfo, CertificateStatus, CertificateValidator

__version__ = "0.1.0"

__all__ = [
    "CATrustProvider",
    "CertificateInfo",
    "CertificateNotFound",
    "CertificateStatus",
    "CertificateValidator",
    "ConfigurationError",
    "KeyCertificateMismatch",
    "KeyMaterialStore",
    "LifecycleOrchestrator",
    "LifecycleState",
    "LocalSigningError",
    "MissingTrustAnchor",
    "PKIConfig",
    "PKIError",
    "RemoteSigningError",
    "RenewalDriver",
    "RenewalValidationFailed",
    "SigningError",
    "TrustSource",
    "UnsupportedOperation",
    "load_config",
]
