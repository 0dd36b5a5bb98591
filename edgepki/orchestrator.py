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

"""Lifecycle Orchestrator.

Sequences the store, trust provider, signer and validator for the ``new``,
``sign``, ``show``, ``delete`` and renew operations. Within one operation the
steps always run in order: key, CSR, signing, validation, commit. Signed
material is staged next to the canonical files and only renamed into place
once it validated, so a failure at any step leaves the previous certificate
as it was.
"""

import os
from enum import Enum
from typing import List, Optional

from edgepki.config import PKIConfig
from edgepki.constants import MIN_VALIDITY_FLOOR_SECONDS, QUARANTINE_SUFFIX, Backend, KeyPolicy
from edgepki.errors import (
    CertificateNotFound,
    ConfigurationError,
    KeyCertificateMismatch,
    RenewalValidationFailed,
)
from edgepki.log_utils import get_obj_logger
from edgepki.signers import CfsslClient, Signer, create_signer
from edgepki.store import KeyMaterialStore, PendingArtifacts
from edgepki.trust import CATrustProvider
from edgepki.utils import generate_csr, generate_ec_keys, serialize_csr, serialize_pri_key
from edgepki.validator import CertificateInfo, CertificateStatus, CertificateValidator


class LifecycleState(str, Enum):
    ABSENT = "absent"
    KEY_READY = "key_ready"
    CSR_READY = "csr_ready"
    SIGNED = "signed"
    COMMITTED = "committed"
    INVALID = "invalid"


class LifecycleOrchestrator:
    def __init__(
        self,
        config: PKIConfig,
        store: KeyMaterialStore,
        trust: CATrustProvider,
        signer: Signer,
        validator: CertificateValidator,
    ):
        self.config = config
        self.store = store
        self.trust = trust
        self.signer = signer
        self.validator = validator
        self.state = LifecycleState.ABSENT
        self.logger = get_obj_logger(self)

    @classmethod
    def from_config(cls, config: PKIConfig) -> "LifecycleOrchestrator":
        """Wire up the components for the backend selected in config."""
        local = config.backend == Backend.LOCAL
        client = None if local else CfsslClient(config.ca_url, timeout=config.timeout)
        trust = CATrustProvider(config, local=local, client=client)
        store = KeyMaterialStore(config, key_policy=KeyPolicy.EC_P256 if local else KeyPolicy.ANY)
        return cls(
            config=config,
            store=store,
            trust=trust,
            signer=create_signer(config, trust, client),
            validator=CertificateValidator(),
        )

    def _set_state(self, state: LifecycleState):
        self.logger.debug(f"state: {self.state.value} -> {state.value}")
        self.state = state

    def new(self, common_name: Optional[str] = None, force: Optional[bool] = None) -> LifecycleState:
        """Make sure a usable certificate exists, creating whatever is missing.

        Args:
            common_name: device common name; defaults to the configured device id, then the host name
            force: delete all managed files first; defaults to config.force_recreate

        Returns:
            the final LifecycleState (COMMITTED on success)

        Raises:
            ConfigurationError: if no common name can be determined
            RenewalValidationFailed: if the signed certificate did not validate
        """
        common_name = self.config.resolve_common_name(common_name)
        if force is None:
            force = self.config.force_recreate

        self.state = LifecycleState.ABSENT
        regenerate = False
        if force:
            self.logger.info("Forced recreation: removing existing key material")
            self.delete()
        else:
            status = self.validator.check(self.store.key_path, self.store.cert_path, self.config.min_validity_seconds)
            if status is CertificateStatus.USABLE:
                self.logger.info(f"Certificate is still usable, nothing to do: {self.store.cert_path}")
                self._set_state(LifecycleState.COMMITTED)
                return self.state
            self.logger.info(f"Certificate status: {status.value}")
            regenerate = status is CertificateStatus.MISMATCH

        self._issue(common_name, regenerate=regenerate)
        return self.state

    def _issue(self, common_name: str, regenerate: bool):
        self.trust.load_or_bootstrap()
        with self.store.begin() as txn:
            if self.signer.issues_keys:
                issued = self.signer.issue_new(common_name)
                txn.stage_key(issued.private_key)
                self._set_state(LifecycleState.KEY_READY)
                txn.stage_csr(issued.csr)
                self._set_state(LifecycleState.CSR_READY)
                txn.stage_certificate(issued.certificate)
                self._set_state(LifecycleState.SIGNED)
                # freshly issued by the remote CA, no expiry re-check
                check_validity = False
            else:
                csr_pem = self._prepare_csr(txn, common_name, regenerate)
                txn.stage_certificate(self.signer.sign(csr_pem))
                self._set_state(LifecycleState.SIGNED)
                check_validity = True

            self._validate_staged(txn, check_validity)
            txn.commit()
        self._set_state(LifecycleState.COMMITTED)
        self.logger.info(f"Certificate for '{common_name}' written: {self.store.cert_path}")

    def _prepare_csr(self, txn: PendingArtifacts, common_name: str, regenerate: bool) -> bytes:
        # the key behind an existing certificate is only replaced on commit
        if regenerate or (os.path.isfile(self.store.cert_path) and not self.store.has_valid_key()):
            pri_key, _ = generate_ec_keys()
            txn.stage_key(serialize_pri_key(pri_key))
            self._set_state(LifecycleState.KEY_READY)
            csr_pem = serialize_csr(generate_csr(pri_key, common_name))
            txn.stage_csr(csr_pem)
            self._set_state(LifecycleState.CSR_READY)
            return csr_pem

        key_written = self.store.generate_key()
        self._set_state(LifecycleState.KEY_READY)
        # a CSR made for a previous key is useless with a new one
        if key_written or not self.store.has_valid_csr(common_name):
            self.store.generate_csr(common_name)
        self._set_state(LifecycleState.CSR_READY)
        return self.store.read_csr()

    def _fail(self, message: str):
        self._set_state(LifecycleState.INVALID)
        raise RenewalValidationFailed(message)

    def _validate_staged(self, txn: PendingArtifacts, check_validity: bool):
        if not self.validator.is_structurally_valid(txn.cert_path):
            self._fail("Signed certificate is not a well-formed chain")
        if not self.validator.key_matches_certificate(txn.effective_key_path(), txn.cert_path, quarantine=False):
            self._fail("Signed certificate does not match the private key")
        if check_validity and not self.validator.is_currently_valid(txn.cert_path, MIN_VALIDITY_FLOOR_SECONDS):
            self._fail("Signed certificate is not currently valid or expires immediately")

    def sign(self, csr_path: Optional[str] = None) -> str:
        """Sign an existing CSR and commit the result as the device certificate.

        Returns:
            path of the committed certificate

        Raises:
            ConfigurationError: if the CSR does not exist
            KeyCertificateMismatch: if the signed certificate does not belong to the device key
            RenewalValidationFailed: if the signed certificate is not a well-formed chain
        """
        csr_path = csr_path or self.store.csr_path
        if not os.path.isfile(csr_path):
            raise ConfigurationError(f"CSR not found: {csr_path}")

        self.trust.load_or_bootstrap()
        csr_pem = self.store.read_csr(csr_path)
        self._set_state(LifecycleState.CSR_READY)

        with self.store.begin() as txn:
            txn.stage_certificate(self.signer.sign(csr_pem))
            self._set_state(LifecycleState.SIGNED)
            if not self.validator.is_structurally_valid(txn.cert_path):
                self._fail("Signed certificate is not a well-formed chain")
            key_path = self.store.key_path
            if os.path.isfile(key_path) and not self.validator.key_matches_certificate(
                key_path, txn.cert_path, quarantine=False
            ):
                quarantined = self.validator.quarantine(txn.cert_path, self.store.cert_path + QUARANTINE_SUFFIX)
                self._set_state(LifecycleState.INVALID)
                raise KeyCertificateMismatch(
                    f"Certificate signed from {csr_path} does not match {key_path}; kept as {quarantined}"
                )
            txn.commit()

        self._set_state(LifecycleState.COMMITTED)
        self.logger.info(f"Certificate written: {self.store.cert_path}")
        return self.store.cert_path

    def show(self, cert_path: Optional[str] = None) -> CertificateInfo:
        cert_path = cert_path or self.store.cert_path
        if not os.path.isfile(cert_path):
            raise CertificateNotFound(f"Certificate not found: {cert_path}")
        try:
            return self.validator.describe(cert_path)
        except ValueError as e:
            raise CertificateNotFound(f"No readable certificate in {cert_path}: {e}")

    def delete(self) -> List[str]:
        removed = self.store.delete_all()
        self._set_state(LifecycleState.ABSENT)
        return removed

    def expires_soon(self) -> bool:
        return self.validator.expires_within(self.store.cert_path, self.config.min_validity_seconds)

    def renew_if_needed(self, common_name: Optional[str] = None) -> bool:
        """Replace key, CSR and certificate if the certificate expires within the minimum validity window.

        The replacement is staged and committed in one step, so the current
        certificate stays in place if anything fails.

        Returns:
            True if a renewal ran
        """
        if not self.expires_soon():
            self.logger.info(
                f"Certificate {self.store.cert_path} is valid for more than {self.config.min_validity_seconds} seconds"
            )
            return False

        common_name = self.config.resolve_common_name(common_name)
        self.logger.info(f"Certificate {self.store.cert_path} expires soon, renewing for '{common_name}'")
        self.state = LifecycleState.ABSENT
        self._issue(common_name, regenerate=True)
        return True
