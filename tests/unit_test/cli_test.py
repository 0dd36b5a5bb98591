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

import logging
import os
from unittest.mock import patch

import pytest

from edgepki.cli import EXIT_ERROR, EXIT_OK, EXIT_UNEXPECTED, define_parser, run
from edgepki.utils import get_cert_cn, load_crt_chain_file


@pytest.fixture
def cli(basedir, local_ca):
    """Run the CLI against basedir, isolated from the caller's environment."""

    def _run(*args, env=None):
        environ = {"CERT_DURATION_SEC": str(30 * 86400), "MIN_VALIDITY_SEC": "3600", **(env or {})}
        with patch.dict(os.environ, environ, clear=True):
            return run(["--basedir", basedir, *args])

    yield _run

    # drop the console handler bound to the captured stderr
    pkg_logger = logging.getLogger("edgepki")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.propagate = True


class TestParser:
    def test_global_options(self):
        args = define_parser().parse_args(
            ["--basedir", "/d", "--backend", "remote", "--ca-host", "pki:8888", "-v", "new", "dev", "--force"]
        )
        assert args.basedir == "/d"
        assert args.backend == "remote"
        assert args.ca_host == "pki:8888"
        assert args.verbose
        assert args.sub_command == "new"
        assert args.common_name == "dev"
        assert args.force is True

    def test_force_defaults_to_config(self):
        assert define_parser().parse_args(["new"]).force is None

    def test_invalid_backend(self):
        with pytest.raises(SystemExit):
            define_parser().parse_args(["--backend", "openssl", "new"])


class TestCommands:
    def test_new_prints_certificate_path(self, cli, basedir, capsys):
        assert cli("new", "device-001") == EXIT_OK

        cert_path = os.path.join(basedir, "tedge-certificate.pem")
        assert capsys.readouterr().out.strip() == cert_path
        assert get_cert_cn(load_crt_chain_file(cert_path)[0]) == "device-001"

    def test_show(self, cli, capsys):
        cli("new", "device-001")
        capsys.readouterr()

        assert cli("show") == EXIT_OK
        out = capsys.readouterr().out
        assert "Common Name:   device-001" in out
        assert "Chain Length:  2" in out

    def test_show_missing(self, cli, capsys):
        assert cli("show") == EXIT_ERROR
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Certificate not found" in captured.err

    def test_sign(self, cli, basedir, capsys):
        cli("new", "device-001")
        capsys.readouterr()
        assert cli("sign") == EXIT_OK
        assert capsys.readouterr().out.strip() == os.path.join(basedir, "tedge-certificate.pem")

    def test_sign_missing_csr(self, cli, basedir):
        assert cli("sign", os.path.join(basedir, "missing.csr")) == EXIT_ERROR

    def test_delete(self, cli, basedir, capsys):
        cli("new", "device-001")
        capsys.readouterr()

        assert cli("delete") == EXIT_OK
        assert len(capsys.readouterr().out.split()) == 3
        assert not os.path.exists(os.path.join(basedir, "tedge-private-key.pem"))

    def test_check(self, cli):
        assert cli("check") == EXIT_ERROR
        cli("new", "device-001")
        assert cli("check") == EXIT_OK
        assert cli("check", "--min-validity", str(60 * 86400)) == EXIT_ERROR

    def test_renew(self, cli, basedir):
        cert_path = os.path.join(basedir, "tedge-certificate.pem")
        assert cli("renew", env={"DEVICE_ID": "device-001"}) == EXIT_OK
        assert os.path.isfile(cert_path)

    def test_no_command(self, cli):
        assert cli() == EXIT_ERROR

    def test_unexpected_error(self, cli, capsys):
        with patch("edgepki.cli.LifecycleOrchestrator.from_config", side_effect=RuntimeError("boom")):
            assert cli("-v", "show") == EXIT_UNEXPECTED
        err = capsys.readouterr().err
        assert "boom" in err
        assert "Traceback" in err
