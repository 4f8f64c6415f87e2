from pathlib import Path

import pytest

from stake_reward.config import (
    DEFAULT_RPC_URL,
    STAKE_REWARD_PROGRAM_ID,
    ClusterConfig,
    LocalnetConfig,
)


def test_cluster_defaults_point_at_local_validator():
    config = ClusterConfig()
    assert config.rpc_url == DEFAULT_RPC_URL == "http://127.0.0.1:8899"
    assert config.commitment == "confirmed"
    assert config.health_url == "http://127.0.0.1:8899/health"


def test_cluster_env_overrides(monkeypatch):
    monkeypatch.setenv("STAKE_REWARD_RPC_URL", "http://10.0.0.5:9000/")
    monkeypatch.setenv("STAKE_REWARD_COMMITMENT", "finalized")
    config = ClusterConfig()
    assert config.rpc_url == "http://10.0.0.5:9000/"
    assert config.health_url == "http://10.0.0.5:9000/health"
    assert config.commitment == "finalized"


def test_cluster_rejects_unknown_commitment():
    with pytest.raises(ValueError, match="commitment"):
        ClusterConfig(commitment="max")


def test_cluster_rejects_non_http_url():
    with pytest.raises(ValueError):
        ClusterConfig(rpc_url="ws://127.0.0.1:8900")


def test_with_overrides_ignores_empty_values():
    base = ClusterConfig()
    assert base.with_overrides(None, None) is base
    changed = base.with_overrides("http://example:1", None)
    assert changed.rpc_url == "http://example:1"
    assert changed.commitment == base.commitment


def test_localnet_paths_and_cluster():
    config = LocalnetConfig(program_dir=Path("prog"), rpc_port=9999)
    assert config.program_id == STAKE_REWARD_PROGRAM_ID
    assert config.manifest_path == Path("prog/Cargo.toml")
    assert config.artifact_path == Path("prog/target/deploy/stake_reward.so")
    assert config.cluster_config() == ClusterConfig(rpc_url="http://127.0.0.1:9999",
                                                    commitment="confirmed")


def test_localnet_validates_timing():
    with pytest.raises(ValueError):
        LocalnetConfig(startup_timeout=0)
    with pytest.raises(ValueError):
        LocalnetConfig(slots_per_epoch=8)
