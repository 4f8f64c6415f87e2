"""
Toolkit Configuration

Two explicit configuration objects replace the global `solana config set`
calls a shell bootstrap would make:

- ClusterConfig: where RPC calls go and at which commitment level.
- LocalnetConfig: how the local test validator is built and launched.

Both are frozen dataclasses. Defaults can be overridden via environment
variables:
- STAKE_REWARD_RPC_URL
- STAKE_REWARD_COMMITMENT
- STAKE_REWARD_PROGRAM_DIR
- STAKE_REWARD_KEYS_DIR
- STAKE_REWARD_STATE_DIR
- STAKE_REWARD_STARTUP_TIMEOUT
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

# The address the program artifact is loaded at. Both the validator launch
# command and every client binding read this one constant.
STAKE_REWARD_PROGRAM_ID = "88gNHvxuPxaFTPELWBRYk59xCFqpjCt6MoBA1Lqk7qny"

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

DEFAULT_RPC_PORT = 8899
DEFAULT_RPC_URL = f"http://127.0.0.1:{DEFAULT_RPC_PORT}"
DEFAULT_COMMITMENT = "confirmed"


@dataclass(frozen=True)
class ClusterConfig:
    """RPC endpoint and commitment handed to every client call."""

    rpc_url: str = field(
        default_factory=lambda: os.getenv("STAKE_REWARD_RPC_URL", DEFAULT_RPC_URL)
    )
    commitment: str = field(
        default_factory=lambda: os.getenv("STAKE_REWARD_COMMITMENT", DEFAULT_COMMITMENT)
    )

    def __post_init__(self):
        if self.commitment not in COMMITMENT_LEVELS:
            raise ValueError(
                f"Unknown commitment '{self.commitment}', expected one of {COMMITMENT_LEVELS}"
            )
        if not self.rpc_url.startswith(("http://", "https://")):
            raise ValueError(f"RPC URL must be http(s): {self.rpc_url}")

    @property
    def health_url(self) -> str:
        return self.rpc_url.rstrip("/") + "/health"

    def with_overrides(self, rpc_url: str = None, commitment: str = None) -> "ClusterConfig":
        """Copy with any non-empty override applied."""
        changes = {}
        if rpc_url:
            changes["rpc_url"] = rpc_url
        if commitment:
            changes["commitment"] = commitment
        return replace(self, **changes) if changes else self

    def to_dict(self) -> dict:
        return {"rpc_url": self.rpc_url, "commitment": self.commitment}


@dataclass(frozen=True)
class LocalnetConfig:
    """Build and launch settings for the local test validator."""

    program_id: str = STAKE_REWARD_PROGRAM_ID
    program_dir: Path = field(
        default_factory=lambda: Path(os.getenv("STAKE_REWARD_PROGRAM_DIR", "program"))
    )
    artifact_name: str = "stake_reward.so"
    keys_dir: Path = field(
        default_factory=lambda: Path(os.getenv("STAKE_REWARD_KEYS_DIR", "keys"))
    )
    state_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("STAKE_REWARD_STATE_DIR", str(Path.home() / ".stake-reward-localnet"))
        )
    )
    ledger_dir: Path = Path("test-ledger")
    rpc_port: int = DEFAULT_RPC_PORT
    slots_per_epoch: int = 32
    quiet: bool = True
    startup_timeout: float = field(
        default_factory=lambda: float(os.getenv("STAKE_REWARD_STARTUP_TIMEOUT", "60"))
    )
    poll_interval: float = 0.5
    commitment: str = DEFAULT_COMMITMENT

    def __post_init__(self):
        if self.startup_timeout <= 0:
            raise ValueError("startup_timeout must be positive")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.slots_per_epoch < 32:
            # solana-test-validator refuses anything below MINIMUM_SLOTS_PER_EPOCH
            raise ValueError("slots_per_epoch must be at least 32")

    @property
    def manifest_path(self) -> Path:
        return self.program_dir / "Cargo.toml"

    @property
    def artifact_path(self) -> Path:
        return self.program_dir / "target" / "deploy" / self.artifact_name

    @property
    def rpc_url(self) -> str:
        return f"http://127.0.0.1:{self.rpc_port}"

    @property
    def payer_keypair_path(self) -> Path:
        return self.keys_dir / "payer.json"

    def cluster_config(self) -> ClusterConfig:
        """Cluster settings a client needs to talk to this localnet."""
        return ClusterConfig(rpc_url=self.rpc_url, commitment=self.commitment)
