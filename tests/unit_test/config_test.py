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

import os
import tempfile
from unittest.mock import patch

import pytest

from edgepki.config import PKIConfig, load_config
from edgepki.constants import DEFAULT_MIN_VALIDITY_SECONDS, Backend
from edgepki.errors import ConfigurationError


def write_yaml(tmp_dir: str, content: str) -> str:
    path = os.path.join(tmp_dir, "pki.yml")
    with open(path, "w") as f:
        f.write(content)
    return path


class TestPKIConfig:
    def test_defaults(self, basedir):
        config = PKIConfig(basedir=basedir)
        assert config.backend == Backend.LOCAL
        assert config.min_validity_seconds == DEFAULT_MIN_VALIDITY_SECONDS
        assert config.cert_duration_seconds == 86400
        assert config.timeout is None
        assert config.key_path == os.path.join(basedir, "tedge-private-key.pem")
        assert config.csr_path == os.path.join(basedir, "tedge.csr")
        assert config.cert_path == os.path.join(basedir, "tedge-certificate.pem")
        assert config.ca_cert_path == os.path.join(basedir, "ca.pem")
        assert config.ca_key_path == os.path.join(basedir, "ca-key.pem")

    @pytest.mark.parametrize("value", [-5, 0, 10, 59])
    def test_min_validity_floor(self, value):
        assert PKIConfig(min_validity_seconds=value).min_validity_seconds == 60

    def test_cert_duration_floor(self):
        assert PKIConfig(cert_duration_seconds=3600).cert_duration_seconds == 86400
        assert PKIConfig(cert_duration_seconds=172800).cert_duration_seconds == 172800

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            PKIConfig(backend="openssl")

    def test_backend_is_normalized(self):
        assert PKIConfig(backend=" Remote ").backend == Backend.REMOTE

    @pytest.mark.parametrize(
        "ca_host, expected",
        [
            ("127.0.0.1:8888", "http://127.0.0.1:8888"),
            ("https://pki.example.com/", "https://pki.example.com"),
        ],
    )
    def test_ca_url(self, ca_host, expected):
        assert PKIConfig(ca_host=ca_host).ca_url == expected


class TestResolveCommonName:
    def test_explicit_wins(self):
        assert PKIConfig(device_id="configured").resolve_common_name("explicit") == "explicit"

    def test_device_id(self):
        assert PKIConfig(device_id="configured").resolve_common_name() == "configured"

    def test_host_name_fallback(self):
        with patch("edgepki.config.socket.gethostname", return_value="edge-host"):
            assert PKIConfig().resolve_common_name("  ") == "edge-host"

    def test_nothing_resolves(self):
        with patch("edgepki.config.socket.gethostname", return_value=""):
            with pytest.raises(ConfigurationError):
                PKIConfig().resolve_common_name()


class TestLoadConfig:
    def test_file_values(self, basedir):
        path = write_yaml(basedir, f"basedir: {basedir}\nbackend: remote\nfiles:\n  certificate: device.crt\n")
        config = load_config(path, environ={})
        assert config.backend == Backend.REMOTE
        assert config.cert_path == os.path.join(basedir, "device.crt")
        # untouched names keep their defaults
        assert config.files.private_key == "tedge-private-key.pem"

    def test_precedence(self, basedir):
        path = write_yaml(basedir, f"basedir: {basedir}\nca_host: file-host:1\nmin_validity_seconds: 1000\n")
        environ = {"CA_HOST": "env-host:2", "MIN_VALIDITY_SEC": "2000"}
        config = load_config(path, overrides={"ca_host": "cli-host:3", "min_validity_seconds": None}, environ=environ)
        assert config.ca_host == "cli-host:3"
        assert config.min_validity_seconds == 2000

    def test_config_path_from_environment(self, basedir):
        path = write_yaml(basedir, f"basedir: {basedir}\ndevice_id: from-file\n")
        config = load_config(environ={"PKI_CONFIG": path})
        assert config.device_id == "from-file"

    def test_empty_environment_value_is_unset(self, basedir):
        config = load_config(environ={"BASEDIR": basedir, "MIN_VALIDITY_SEC": ""})
        assert config.min_validity_seconds == DEFAULT_MIN_VALIDITY_SECONDS

    def test_environment_types(self, basedir):
        environ = {"BASEDIR": basedir, "FORCE": "true", "MIN_VALIDITY_SEC": "0", "PKI_TIMEOUT": "2.5"}
        config = load_config(environ=environ)
        assert config.force_recreate is True
        assert config.min_validity_seconds == 60
        assert config.timeout == 2.5

    def test_ca_material_from_environment(self, basedir):
        config = load_config(
            environ={"BASEDIR": basedir, "CA_CERT_CONTENTS_PUB": "Y2VydA==", "CA_CERT_CONTENTS_KEY": "a2V5"}
        )
        assert config.ca_cert_encoded == "Y2VydA=="
        assert config.ca_key_encoded == "a2V5"

    def test_default_basedir(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            assert load_config(environ={"DEFAULT_BASEDIR": tmp_dir}).basedir == tmp_dir
        assert load_config(environ={"DEFAULT_BASEDIR": "/nonexistent/device-certs"}).basedir == "."

    def test_missing_file(self):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config("/nonexistent/pki.yml", environ={})

    def test_invalid_yaml(self, basedir):
        path = write_yaml(basedir, "basedir: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid config file"):
            load_config(path, environ={})

    def test_not_a_mapping(self, basedir):
        path = write_yaml(basedir, "- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path, environ={})

    def test_invalid_value(self, basedir):
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(environ={"BASEDIR": basedir, "PKI_BACKEND": "openssl"})

    def test_negative_timeout(self, basedir):
        with pytest.raises(ConfigurationError):
            load_config(environ={"BASEDIR": basedir, "PKI_TIMEOUT": "-1"})
