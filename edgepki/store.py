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

"""Key Material Store - the device key, CSR and certificate files.

All writes go through a temporary file and a rename, so a reader never
observes a partially written file. Staged (pending) material lives next to
the canonical files with a ``.tmp`` suffix until ``PendingArtifacts.commit``
renames it into place.
"""

import glob
import os
from typing import List, Optional

from edgepki.config import PKIConfig
from edgepki.constants import PENDING_SUFFIX, KeyPolicy
from edgepki.log_utils import get_obj_logger
from edgepki.utils import (
    generate_csr,
    generate_ec_keys,
    is_ec_p256_key,
    is_supported_key,
    load_csr,
    load_private_key_file,
    remove_file,
    serialize_csr,
    serialize_pri_key,
    write_file_atomic,
)

KEY_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644


class PendingArtifacts:
    """A commit transaction over the canonical key, CSR and certificate.

    Usage:

        with store.begin() as txn:
            txn.stage_certificate(chain_pem)
            ... validate txn.cert_path ...
            txn.commit()

    Leaving the block removes whatever was staged but not committed.
    """

    def __init__(self, store: "KeyMaterialStore"):
        self.store = store
        self.key_path = store.key_path + PENDING_SUFFIX
        self.csr_path = store.csr_path + PENDING_SUFFIX
        self.cert_path = store.cert_path + PENDING_SUFFIX
        self._staged = []
        self.committed = False
        self.logger = get_obj_logger(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.committed:
            self.logger.debug("transaction ended without commit")
        self.discard()
        return False

    def _stage(self, path: str, content: bytes, mode: int):
        write_file_atomic(path, content, mode)
        if path not in self._staged:
            self._staged.append(path)
        self.logger.debug(f"staged {path}")

    def stage_key(self, content: bytes):
        self._stage(self.key_path, content, KEY_FILE_MODE)

    def stage_csr(self, content: bytes):
        self._stage(self.csr_path, content, PUBLIC_FILE_MODE)

    def stage_certificate(self, content: bytes):
        self._stage(self.cert_path, content, PUBLIC_FILE_MODE)

    @property
    def has_key(self) -> bool:
        return self.key_path in self._staged

    @property
    def has_csr(self) -> bool:
        return self.csr_path in self._staged

    def effective_key_path(self) -> str:
        """The key the staged certificate must correspond to."""
        return self.key_path if self.has_key else self.store.key_path

    def commit(self):
        """Rename the staged files onto their canonical paths: key, then CSR, then certificate."""
        for pending, canonical in [(self.key_path, self.store.key_path), (self.csr_path, self.store.csr_path)]:
            if pending in self._staged:
                os.replace(pending, canonical)
                self._staged.remove(pending)
                self.logger.debug(f"committed {canonical}")
        if self.cert_path in self._staged:
            self.store.write_certificate(self.cert_path)
            self._staged.remove(self.cert_path)
        self.committed = True

    def discard(self) -> List[str]:
        removed = []
        for path in list(self._staged):
            if remove_file(path):
                removed.append(path)
            self._staged.remove(path)
        if removed:
            self.logger.debug(f"discarded pending artifacts: {removed}")
        return removed


class KeyMaterialStore:
    """Owns the device's private key, CSR and certificate under the configured base directory."""

    def __init__(self, config: PKIConfig, key_policy: str = KeyPolicy.EC_P256):
        self.config = config
        self.key_policy = key_policy
        self.key_path = config.key_path
        self.csr_path = config.csr_path
        self.cert_path = config.cert_path
        self.logger = get_obj_logger(self)

    def _load_key(self, path: Optional[str] = None):
        return load_private_key_file(path or self.key_path)

    def _key_acceptable(self, pri_key) -> bool:
        if self.key_policy == KeyPolicy.EC_P256:
            return is_ec_p256_key(pri_key)
        return is_supported_key(pri_key)

    def has_valid_key(self) -> bool:
        if not os.path.isfile(self.key_path):
            return False
        try:
            pri_key = self._load_key()
        except (ValueError, TypeError) as e:
            self.logger.debug(f"key file {self.key_path} does not parse: {e}")
            return False
        if not self._key_acceptable(pri_key):
            self.logger.debug(f"key file {self.key_path} is not a {self.key_policy} key")
            return False
        return True

    def generate_key(self) -> bool:
        """Create a new EC P-256 key unless a valid one exists. Returns whether a key was written."""
        if self.has_valid_key():
            self.logger.debug(f"reusing existing key: {self.key_path}")
            return False
        pri_key, _ = generate_ec_keys()
        write_file_atomic(self.key_path, serialize_pri_key(pri_key), KEY_FILE_MODE)
        self.logger.info(f"Generated private key: {self.key_path}")
        return True

    def has_valid_csr(self, common_name: str) -> bool:
        # The embedded common name is not compared with common_name.
        if not os.path.isfile(self.csr_path):
            return False
        try:
            with open(self.csr_path, "rb") as f:
                csr = load_csr(f.read())
            return csr.is_signature_valid
        except ValueError as e:
            self.logger.debug(f"CSR file {self.csr_path} does not parse: {e}")
            return False

    def generate_csr(self, common_name: str):
        pri_key = self._load_key()
        write_file_atomic(self.csr_path, serialize_csr(generate_csr(pri_key, common_name)), PUBLIC_FILE_MODE)
        self.logger.info(f"Generated CSR for '{common_name}': {self.csr_path}")

    def read_csr(self, csr_path: Optional[str] = None) -> bytes:
        with open(csr_path or self.csr_path, "rb") as f:
            return f.read()

    def write_certificate(self, pending_path: str):
        """Promote a pending certificate file onto the canonical certificate path."""
        os.replace(pending_path, self.cert_path)
        self.logger.info(f"Certificate written: {self.cert_path}")

    def begin(self) -> PendingArtifacts:
        return PendingArtifacts(self)

    def pending_paths(self) -> List[str]:
        return [p + PENDING_SUFFIX for p in (self.key_path, self.csr_path, self.cert_path)]

    def leftover_temp_paths(self) -> List[str]:
        """Temporary files an interrupted atomic write left next to the managed files."""
        paths = []
        for path in (self.key_path, self.csr_path, self.cert_path):
            dir_name, base_name = os.path.split(path)
            paths.extend(sorted(glob.glob(os.path.join(glob.escape(dir_name), "." + glob.escape(base_name) + ".*"))))
        return paths

    def delete_all(self) -> List[str]:
        """Remove every managed file. Missing files are skipped. Returns the removed paths."""
        removed = []
        # quarantined certificates are kept for diagnosis
        for path in [self.key_path, self.csr_path, self.cert_path] + self.pending_paths() + self.leftover_temp_paths():
            try:
                if remove_file(path):
                    removed.append(path)
            except OSError as e:
                self.logger.warning(f"Could not remove {path}: {e}")
        for path in removed:
            self.logger.info(f"Removed {path}")
        return removed
