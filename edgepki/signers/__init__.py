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

from edgepki.config import PKIConfig
from edgepki.constants import Backend

from .local import LocalSigner
from .remote import CfsslClient, IssuedIdentity, RemoteSigner
from .spec import Signer


def create_signer(config: PKIConfig, trust, client: CfsslClient = None) -> Signer:
    """Build the signing backend selected by config.backend."""
    if config.backend == Backend.REMOTE:
        if client is None:
            client = CfsslClient(config.ca_url, timeout=config.timeout)
        return RemoteSigner(client, trust)
    return LocalSigner(trust, config.cert_duration_seconds)


__all__ = ["CfsslClient", "IssuedIdentity", "LocalSigner", "RemoteSigner", "Signer", "create_signer"]
