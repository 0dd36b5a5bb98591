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

import time
from typing import Callable, Optional

from edgepki.errors import MissingTrustAnchor, RenewalValidationFailed, SigningError
from edgepki.log_utils import get_obj_logger


class RenewalDriver:
    """Periodic trigger for LifecycleOrchestrator.renew_if_needed.

    Scheduling is up to the caller: ``run_once`` suits a cron job or systemd
    timer, ``run`` is a simple blocking loop.
    """

    def __init__(self, orchestrator):
        self.orchestrator = orchestrator
        self.logger = get_obj_logger(self)

    def run_once(self) -> bool:
        cert_path = self.orchestrator.store.cert_path
        self.logger.info(f"Checking certificate: {cert_path}")
        renewed = self.orchestrator.renew_if_needed()
        if renewed:
            self.logger.info(f"Certificate renewed: {cert_path}")
        return renewed

    def run(
        self,
        interval_seconds: float,
        iterations: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Check every interval_seconds. Returns the number of renewals.

        Signing errors, an unreachable trust anchor and failed validations are
        logged and retried on the next tick. Configuration and unexpected errors
        end the loop.
        """
        renewals = 0
        count = 0
        while iterations is None or count < iterations:
            try:
                if self.run_once():
                    renewals += 1
            except (SigningError, MissingTrustAnchor, RenewalValidationFailed) as e:
                self.logger.warning(f"Renewal failed, will retry in {interval_seconds} seconds: {e}")
            count += 1
            if iterations is None or count < iterations:
                sleep(interval_seconds)
        return renewals
