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
import stat

import pytest

from edgepki.constants import KeyPolicy
from edgepki.store import KeyMaterialStore
from edgepki.utils import generate_keys, load_csr, load_private_key_file, serialize_pri_key


@pytest.fixture
def store(config):
    return KeyMaterialStore(config)


def read(path):
    with open(path, "rb") as f:
        return f.read()


class TestKey:
    def test_generate_key(self, store):
        assert not store.has_valid_key()
        assert store.generate_key() is True
        assert store.has_valid_key()
        assert stat.S_IMODE(os.stat(store.key_path).st_mode) == 0o600

    def test_generate_key_keeps_valid_key(self, store):
        store.generate_key()
        before = read(store.key_path)
        assert store.generate_key() is False
        assert read(store.key_path) == before

    def test_garbage_key_is_replaced(self, store, write_file):
        write_file(store.key_path, b"garbage")
        assert not store.has_valid_key()
        assert store.generate_key() is True
        assert store.has_valid_key()

    def test_key_policy(self, config, write_file):
        rsa_key, _ = generate_keys()
        write_file(config.key_path, serialize_pri_key(rsa_key))
        assert not KeyMaterialStore(config, KeyPolicy.EC_P256).has_valid_key()
        assert KeyMaterialStore(config, KeyPolicy.ANY).has_valid_key()


class TestCSR:
    def test_generate_csr(self, store):
        store.generate_key()
        assert not store.has_valid_csr("device-001")
        store.generate_csr("device-001")
        assert store.has_valid_csr("device-001")
        csr = load_csr(store.read_csr())
        pri_key = load_private_key_file(store.key_path)
        assert csr.public_key().public_numbers() == pri_key.public_key().public_numbers()

    def test_common_name_is_not_compared(self, store):
        store.generate_key()
        store.generate_csr("device-001")
        assert store.has_valid_csr("another-device")

    def test_garbage_csr(self, store, write_file):
        write_file(store.csr_path, b"garbage")
        assert not store.has_valid_csr("device-001")

    def test_generate_csr_without_key(self, store):
        with pytest.raises(FileNotFoundError):
            store.generate_csr("device-001")


class TestPendingArtifacts:
    def test_commit(self, store, issue_chain):
        key_pem, chain_pem = issue_chain()
        with store.begin() as txn:
            txn.stage_key(key_pem)
            txn.stage_certificate(chain_pem)
            assert txn.effective_key_path() == txn.key_path
            assert not os.path.exists(store.cert_path)
            txn.commit()
        assert read(store.key_path) == key_pem
        assert read(store.cert_path) == chain_pem
        assert not os.path.exists(txn.key_path)
        assert not os.path.exists(txn.cert_path)
        assert txn.committed

    def test_leaving_block_discards(self, store, issue_chain, write_file):
        write_file(store.cert_path, b"previous")
        _, chain_pem = issue_chain()
        with pytest.raises(RuntimeError):
            with store.begin() as txn:
                txn.stage_certificate(chain_pem)
                raise RuntimeError("boom")
        assert read(store.cert_path) == b"previous"
        assert not os.path.exists(txn.cert_path)
        assert not txn.committed

    def test_effective_key_path_defaults_to_canonical(self, store):
        txn = store.begin()
        assert txn.effective_key_path() == store.key_path
        assert not txn.has_key
        assert not txn.has_csr


class TestDeleteAll:
    def test_delete_all(self, store, write_file):
        for path in [store.key_path, store.csr_path, store.cert_path, store.cert_path + ".tmp"]:
            write_file(path, b"x")
        write_file(store.cert_path + ".invalid", b"quarantined")

        removed = store.delete_all()

        assert sorted(removed) == sorted([store.key_path, store.csr_path, store.cert_path, store.cert_path + ".tmp"])
        assert os.path.exists(store.cert_path + ".invalid")

    def test_delete_all_is_idempotent(self, store, write_file):
        write_file(store.csr_path, b"x")
        assert store.delete_all() == [store.csr_path]
        assert store.delete_all() == []

    def test_delete_all_removes_interrupted_writes(self, store, write_file):
        key_dir, key_name = os.path.split(store.key_path)
        cert_dir, cert_name = os.path.split(store.cert_path)
        leftovers = [os.path.join(key_dir, f".{key_name}.a1b2c3"), os.path.join(cert_dir, f".{cert_name}.tmp.x9y8z7")]
        for path in leftovers:
            write_file(path, b"partial")
        write_file(store.cert_path + ".invalid", b"quarantined")

        assert sorted(store.leftover_temp_paths()) == sorted(leftovers)
        removed = store.delete_all()

        assert sorted(removed) == sorted(leftovers)
        assert not any(os.path.exists(p) for p in leftovers)
        assert os.path.exists(store.cert_path + ".invalid")
