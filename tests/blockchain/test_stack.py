"""Tests for devchain.blockchain.stack."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from devchain.blockchain.stack import EthereumAccount, Stack


class TestEthereumAccount:
    def test_key_name_is_lowercase_without_prefix(self):
        account = EthereumAccount(address="0x1f2A98889594024BFfdA3311CbE69728d392C06D", private_key="ab")
        assert account.key_name == "1f2a98889594024bffda3311cbe69728d392c06d"

    def test_private_key_prefix_stripped(self):
        account = EthereumAccount(address="0x" + "a" * 40, private_key="0xdeadbeef")
        assert account.private_key == "deadbeef"

    @pytest.mark.parametrize("address", ["", "1f2a98889594024bffda3311cbe69728d392c06d", "0x123", "0x" + "g" * 40])
    def test_invalid_address_rejected(self, address):
        with pytest.raises(ValidationError):
            EthereumAccount(address=address, private_key="00")

    def test_frozen(self):
        account = EthereumAccount(address="0x" + "a" * 40, private_key="00")
        with pytest.raises(ValidationError):
            account.address = "0x" + "b" * 40


class TestStack:
    def test_directories(self, stack, tmp_path):
        assert stack.init_dir == tmp_path / "dev" / "init"
        assert stack.runtime_dir == tmp_path / "dev" / "runtime"

    def test_defaults(self, tmp_path):
        stack = Stack(name="solo", stack_dir=tmp_path)
        assert stack.chain_id == 2021
        assert stack.exposed_blockchain_port == 5100
        assert stack.members == []

    @pytest.mark.parametrize("name", ["bad name!", "Dev", "my.stack", "-dev", ""])
    def test_name_must_be_compose_safe(self, tmp_path, name):
        with pytest.raises(ValidationError):
            Stack(name=name, stack_dir=tmp_path)

    @pytest.mark.parametrize("name", ["dev", "dev-2", "my_stack", "0chain"])
    def test_compose_safe_names_accepted(self, tmp_path, name):
        assert Stack(name=name, stack_dir=tmp_path).name == name

    def test_save_and_load(self, stack, tmp_path):
        path = stack.save(tmp_path / "stack.json")
        loaded = Stack.load(path)

        assert loaded == stack
        assert [m.account.address for m in loaded.members] == [m.account.address for m in stack.members]

    def test_members_validated_from_json(self, tmp_path):
        path = tmp_path / "stack.json"
        path.write_text(
            '{"name": "dev", "stack_dir": "/tmp/dev", "members": ['
            '{"id": "m0", "index": 0, "account": {"address": "nope", "private_key": "00"}}]}'
        )
        with pytest.raises(ValidationError):
            Stack.load(path)
