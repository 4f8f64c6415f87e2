"""
Local Network Bootstrap

The whole local setup in one call:

    1. make sure the keys directory and payer keypair exist
    2. build the on-chain program
    3. launch solana-test-validator with the program at its fixed address
    4. wait until the node is healthy
    5. record the validator so other commands can find it

The caller gets back a session holding the validator handle and the
ClusterConfig every subsequent client should use.
"""

from dataclasses import dataclass
from pathlib import Path

from ..config import ClusterConfig, LocalnetConfig
from ..core.accounts import SolAmount, sol_to_lamports
from ..core.keys import Keypair, create_keypair_file
from ..networking.rpc import RPCClient
from .build import ProgramBuilder
from .state import ValidatorStateManager
from .validator import TestValidator


@dataclass
class LocalnetSession:
    """A running local cluster and the settings to reach it."""
    validator: TestValidator
    cluster: ClusterConfig
    payer: Keypair
    artifact_path: Path

    def client(self) -> RPCClient:
        return RPCClient(self.cluster)

    def stop(self) -> None:
        self.validator.stop()
        ValidatorStateManager(self.validator.config.state_dir).cleanup_state()


def setup_local(config: LocalnetConfig, skip_build: bool = False,
                airdrop_sol: SolAmount = 0) -> LocalnetSession:
    """
    Build the program and bring up a healthy local validator.

    Args:
        config: Localnet build and launch settings
        skip_build: Reuse the existing artifact instead of invoking cargo
        airdrop_sol: Fund the payer with this much SOL once the node is up;
                     a Decimal or string keeps the amount exact

    Raises:
        BuildError: if the program does not compile
        ValidatorStartupError: if the validator does not become healthy
        RPCError: if the airdrop fails
        ValueError: if airdrop_sol is negative or finer than one lamport
    """
    airdrop_lamports = sol_to_lamports(airdrop_sol)
    config.keys_dir.mkdir(parents=True, exist_ok=True)
    payer, created = create_keypair_file(config.payer_keypair_path)
    if created:
        print(f"🔑 Created payer keypair {payer.public_key} at {config.payer_keypair_path}")

    builder = ProgramBuilder.from_config(config)
    if skip_build:
        artifact_path = builder.artifact_path
        print(f"⏭️  Skipping build, using {artifact_path}")
    else:
        artifact_path = builder.build()

    print("Setting up local validator")
    validator = TestValidator(artifact_path, config.program_id, config)
    validator.start()
    try:
        validator.wait_until_ready()
    except BaseException:
        validator.stop()
        raise

    cluster = validator.cluster_config()
    state_manager = ValidatorStateManager(config.state_dir)
    state_manager.write_state(
        pid=validator.pid,
        rpc_url=cluster.rpc_url,
        commitment=cluster.commitment,
        program_id=config.program_id,
        artifact_path=str(artifact_path),
        payer=payer.public_key,
    )

    session = LocalnetSession(validator=validator, cluster=cluster,
                              payer=payer, artifact_path=artifact_path)

    if airdrop_lamports > 0:
        try:
            client = session.client()
            signature = client.request_airdrop(payer.public_key, airdrop_lamports)
            client.confirm_transaction(signature)
        except BaseException:
            session.stop()
            raise
        print(f"💰 Airdropped {airdrop_sol} SOL to {payer.public_key}")

    return session
