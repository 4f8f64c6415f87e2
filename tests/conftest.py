"""Shared pytest fixtures.

Makes ``src/`` importable when the package is not installed, and provides
an isolated LocalnetConfig plus a fake ``urlopen`` for RPC tests.
"""

import io
import json
import os
import socket
import sys
from unittest.mock import patch

import pytest

# Project root = parent directory of this tests/ folder
SRC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from stake_reward.config import STAKE_REWARD_PROGRAM_ID, LocalnetConfig  # noqa: E402
from stake_reward.core.accounts import AccountInfo  # noqa: E402


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def localnet_config(tmp_path):
    return LocalnetConfig(
        rpc_port=free_port(),
        program_dir=tmp_path / "program",
        keys_dir=tmp_path / "keys",
        state_dir=tmp_path / "state",
        ledger_dir=tmp_path / "test-ledger",
        startup_timeout=1.0,
        poll_interval=0.01,
    )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests from reading the developer's real state dir or env overrides."""
    for name in ("STAKE_REWARD_RPC_URL", "STAKE_REWARD_COMMITMENT", "STAKE_REWARD_PROGRAM_DIR",
                 "STAKE_REWARD_KEYS_DIR", "STAKE_REWARD_STARTUP_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STAKE_REWARD_STATE_DIR", str(tmp_path / "default-state"))


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeRPCServer:
    """Stands in for urlopen: answers JSON-RPC posts from a method table."""

    def __init__(self):
        self.results = {}
        self.errors = {}
        self.requests = []
        self.health = "ok"

    def __call__(self, request, timeout=None):
        if isinstance(request, str):
            if isinstance(self.health, Exception):
                raise self.health
            return FakeResponse(self.health.encode())

        payload = json.loads(request.data)
        self.requests.append(payload)
        method = payload["method"]
        if method in self.errors:
            body = {"jsonrpc": "2.0", "id": payload["id"], "error": self.errors[method]}
        else:
            result = self.results[method]
            if callable(result):
                result = result(payload.get("params"))
            body = {"jsonrpc": "2.0", "id": payload["id"], "result": result}
        return FakeResponse(json.dumps(body).encode())

    def last_params(self, method):
        for payload in reversed(self.requests):
            if payload["method"] == method:
                return payload.get("params")
        raise AssertionError(f"{method} was never called")


@pytest.fixture
def rpc_server(monkeypatch):
    server = FakeRPCServer()
    monkeypatch.setattr("stake_reward.networking.rpc.urlopen", server)
    return server


@pytest.fixture
def program_loaded():
    """Make the validator's readiness check see the program as deployed."""
    program = AccountInfo(pubkey=STAKE_REWARD_PROGRAM_ID, lamports=1, data=b"",
                          owner="BPFLoader2111111111111111111111111111111111", executable=True)
    with patch("stake_reward.localnet.validator.RPCClient.get_account_info",
               return_value=program) as get_account_info:
        yield get_account_info
