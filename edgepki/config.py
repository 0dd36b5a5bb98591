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

"""Configuration for edgepki.

The configuration is resolved once at startup and handed to every component.
Precedence, highest first:

1. explicit parameters (CLI flags or keyword overrides)
2. environment variables
3. YAML config file (``--config`` or ``PKI_CONFIG``)
4. built-in defaults

Example config file::

    basedir: /etc/tedge/device-certs
    backend: remote
    ca_host: pki.example.com:8888
    min_validity_seconds: 259200
    files:
      certificate: device.crt
"""

import os
import socket
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from edgepki.constants import (
    CERT_DURATION_FLOOR_SECONDS,
    DEFAULT_BASEDIR,
    DEFAULT_CA_HOST,
    DEFAULT_CERT_DURATION_SECONDS,
    DEFAULT_MIN_VALIDITY_SECONDS,
    DEFINED_BACKENDS,
    MIN_VALIDITY_FLOOR_SECONDS,
    Backend,
    EnvVar,
    FileBasename,
)
from edgepki.errors import ConfigurationError

# environment variable -> config field
ENV_FIELDS = {
    EnvVar.BASEDIR: "basedir",
    EnvVar.DEVICE_ID: "device_id",
    EnvVar.FORCE: "force_recreate",
    EnvVar.BACKEND: "backend",
    EnvVar.CA_HOST: "ca_host",
    EnvVar.MIN_VALIDITY: "min_validity_seconds",
    EnvVar.CERT_DURATION: "cert_duration_seconds",
    EnvVar.CA_KEY_ENCODED: "ca_key_encoded",
    EnvVar.CA_CERT_ENCODED: "ca_cert_encoded",
    EnvVar.TIMEOUT: "timeout",
}


class FileNames(BaseModel):
    """Basenames of the managed files under basedir."""

    private_key: str = FileBasename.PRIVATE_KEY
    csr: str = FileBasename.CSR
    certificate: str = FileBasename.CERTIFICATE
    ca_certificate: str = FileBasename.CA_CERTIFICATE
    ca_private_key: str = FileBasename.CA_PRIVATE_KEY

    @field_validator("*")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("file name cannot be empty")
        return v.strip()


class PKIConfig(BaseModel):
    basedir: str = "."
    device_id: Optional[str] = None
    force_recreate: bool = False
    backend: str = Backend.LOCAL
    ca_host: str = DEFAULT_CA_HOST
    min_validity_seconds: int = DEFAULT_MIN_VALIDITY_SECONDS
    cert_duration_seconds: int = DEFAULT_CERT_DURATION_SECONDS
    ca_key_encoded: Optional[str] = None
    ca_cert_encoded: Optional[str] = None
    timeout: Optional[float] = None
    files: FileNames = FileNames()

    @field_validator("basedir")
    @classmethod
    def validate_basedir(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("basedir cannot be empty")
        return v.strip()

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in DEFINED_BACKENDS:
            raise ValueError(f"backend must be one of: {DEFINED_BACKENDS}")
        return v

    @field_validator("ca_host")
    @classmethod
    def validate_ca_host(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("ca_host cannot be empty")
        return v.strip()

    @field_validator("min_validity_seconds")
    @classmethod
    def validate_min_validity(cls, v: int) -> int:
        return max(v, MIN_VALIDITY_FLOOR_SECONDS)

    @field_validator("cert_duration_seconds")
    @classmethod
    def validate_cert_duration(cls, v: int) -> int:
        return max(v, CERT_DURATION_FLOOR_SECONDS)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @property
    def key_path(self) -> str:
        return os.path.join(self.basedir, self.files.private_key)

    @property
    def csr_path(self) -> str:
        return os.path.join(self.basedir, self.files.csr)

    @property
    def cert_path(self) -> str:
        return os.path.join(self.basedir, self.files.certificate)

    @property
    def ca_cert_path(self) -> str:
        return os.path.join(self.basedir, self.files.ca_certificate)

    @property
    def ca_key_path(self) -> str:
        return os.path.join(self.basedir, self.files.ca_private_key)

    @property
    def ca_url(self) -> str:
        if "://" in self.ca_host:
            return self.ca_host.rstrip("/")
        return f"http://{self.ca_host}".rstrip("/")

    def resolve_common_name(self, explicit: Optional[str] = None) -> str:
        """Resolve the device common name: explicit argument, then device_id, then the host name.

        Raises:
            ConfigurationError: if every source is empty
        """
        for candidate in (explicit, self.device_id, _host_identifier()):
            if candidate and candidate.strip():
                return candidate.strip()
        raise ConfigurationError("Could not determine the device common name (no argument, device id or host name)")


def _host_identifier() -> Optional[str]:
    try:
        return socket.gethostname()
    except OSError:
        return None


def _merge_config(base: dict, override: dict):
    """Recursively merge override into base config."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value


def _default_basedir(environ: Mapping[str, str]) -> str:
    default_basedir = environ.get(EnvVar.DEFAULT_BASEDIR) or DEFAULT_BASEDIR
    if os.path.isdir(default_basedir):
        return default_basedir
    return "."


def _load_config_file(config_path: str) -> Dict[str, Any]:
    if not os.path.isfile(config_path):
        raise ConfigurationError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r") as f:
            file_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {config_path}: {e}")
    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return file_config


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PKIConfig:
    """Resolve the configuration from defaults, config file, environment and explicit overrides.

    Args:
        config_path: path to a YAML config file. Falls back to the PKI_CONFIG environment variable.
        overrides: explicit values; entries set to None are ignored
        environ: environment mapping, defaults to os.environ

    Returns:
        the validated PKIConfig

    Raises:
        ConfigurationError: if the file cannot be read or a value is invalid
    """
    if environ is None:
        environ = os.environ

    config: Dict[str, Any] = {}

    config_path = config_path or environ.get(EnvVar.CONFIG)
    if config_path:
        _merge_config(config, _load_config_file(config_path))

    for env_name, field_name in ENV_FIELDS.items():
        value = environ.get(env_name)
        # empty variables count as unset
        if value is not None and value.strip():
            config[field_name] = value.strip()

    if overrides:
        _merge_config(config, {k: v for k, v in overrides.items() if v is not None})

    if not config.get("basedir"):
        config["basedir"] = _default_basedir(environ)

    try:
        return PKIConfig(**config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
