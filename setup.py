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

from setuptools import find_packages, setup

base_version = os.environ.get("EDGEPKI_BASE_VERSION", "0.1.0")

setup(
    name="edgepki",
    version=base_version,
    description="X.509 device certificate lifecycle: key, CSR, signing, validation and renewal",
    python_requires=">=3.9",
    package_dir={"edgepki": "edgepki"},
    packages=find_packages(
        where=".",
        include=["edgepki", "edgepki.*"],
        exclude=["tests", "tests.*"],
    ),
    install_requires=[
        "cryptography>=42.0.0",
        "pydantic>=2.0",
        "PyYAML",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "edgepki=edgepki.cli:main",
        ],
    },
)
