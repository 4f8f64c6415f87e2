#!/usr/bin/env python3
"""
Stake Reward CLI

Command-line interface for building the stake reward program, running it
on a local test validator, and inspecting the result over RPC.

Usage:
    stake-reward setup-local             # Build, start validator, wait until healthy
    stake-reward setup-local --detach    # Same, but leave the validator running
    stake-reward stop                    # Stop a detached validator
    stake-reward status                  # Health, version, slot, program account
    stake-reward keygen alice            # Create keys/alice.json
    stake-reward airdrop alice 2         # Fund alice with 2 SOL
    stake-reward transfer alice bob 0.5  # Send SOL
    stake-reward addresses               # Program id and derived addresses
    stake-reward pools                   # List stake pools
"""

import argparse
import sys
import time
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .config import COMMITMENT_LEVELS, ClusterConfig, LocalnetConfig
from .core.accounts import lamports_to_sol, parse_sol, sol_to_lamports
from .core.keys import Keypair, create_keypair_file, load_keypair, pubkey_to_bytes
from .core.transactions import TransactionBuilder, sign_transaction
from .errors import StakeRewardError
from .localnet.bootstrap import setup_local
from .localnet.build import ProgramBuilder
from .localnet.state import ValidatorStateManager
from .networking.rpc import RPCClient
from .programs import stake_reward, system


class StakeRewardCLI:
    """
    Command handlers.

    Cluster settings come from --url/--commitment, then from the record a
    running localnet left behind, then from the environment defaults.
    """

    def __init__(self, localnet: LocalnetConfig, url: Optional[str] = None,
                 commitment: Optional[str] = None):
        self.localnet = localnet
        self.state_manager = ValidatorStateManager(localnet.state_dir)
        self.cluster = self.resolve_cluster(url, commitment)

    def resolve_cluster(self, url: Optional[str], commitment: Optional[str]) -> ClusterConfig:
        cluster = ClusterConfig()
        recorded = self.state_manager.get_validator_info()
        if recorded:
            cluster = cluster.with_overrides(recorded.get('rpc_url'), recorded.get('commitment'))
        return cluster.with_overrides(url, commitment)

    def client(self) -> RPCClient:
        return RPCClient(self.cluster)

    def keypair_path(self, name: str) -> Path:
        return self.localnet.keys_dir / f"{name}.json"

    def resolve_address(self, name_or_address: str) -> str:
        """Accept either a keypair name from the keys dir or a base58 address."""
        path = self.keypair_path(name_or_address)
        if path.exists():
            return load_keypair(path).public_key
        try:
            pubkey_to_bytes(name_or_address)
        except ValueError:
            raise StakeRewardError(f"'{name_or_address}' is neither a keypair name nor an address") from None
        return name_or_address

    def load_signer(self, name: str) -> Keypair:
        return load_keypair(self.keypair_path(name))

    # Localnet lifecycle

    def build(self):
        ProgramBuilder.from_config(self.localnet).build()

    def setup_local(self, skip_build: bool = False, detach: bool = False,
                    airdrop_sol: Decimal = Decimal(0)):
        if self.state_manager.is_validator_running():
            info = self.state_manager.read_state()
            print(f"❌ Validator is already running (PID: {info['pid']}) at {info['rpc_url']}")
            print("   Stop it first with 'stake-reward stop'.")
            return 1

        print("🚀 Setting up stake reward localnet")
        print("=" * 50)
        session = setup_local(self.localnet, skip_build=skip_build, airdrop_sol=airdrop_sol)

        print(f"\n✅ Localnet ready")
        print(f"   RPC URL:    {session.cluster.rpc_url}")
        print(f"   Commitment: {session.cluster.commitment}")
        print(f"   Program:    {self.localnet.program_id}")
        print(f"   Payer:      {session.payer.public_key}")

        if detach:
            print(f"💡 Validator left running (PID: {session.validator.pid}); "
                  f"stop it with 'stake-reward stop'")
            return 0

        print("💡 Press Ctrl-C to stop the validator")
        try:
            while session.validator.is_running():
                time.sleep(1.0)
            print("❌ Validator exited unexpectedly")
            return 1
        except KeyboardInterrupt:
            print("\n🛑 Shutting down...")
            return 0
        finally:
            session.stop()

    def stop(self):
        if self.state_manager.stop_validator():
            print("✅ Validator stopped")
        else:
            print("🔍 No running validator recorded")

    def status(self):
        info = self.state_manager.get_validator_info()
        if info:
            print(f"📡 Local validator PID {info['pid']} serving {info['rpc_url']}")
        print(f"🌐 Cluster: {self.cluster.rpc_url} ({self.cluster.commitment})")

        client = self.client()
        if not client.check_health():
            print("❌ Node is not healthy or not reachable")
            return 1

        version = client.get_version()
        print(f"   Version: {version.get('solana-core', 'unknown')}")
        print(f"   Slot:    {client.get_slot()}")

        program = client.get_account_info(self.localnet.program_id)
        if program is not None and program.executable:
            print(f"   Program: {self.localnet.program_id} (loaded)")
        else:
            print(f"   Program: {self.localnet.program_id} (NOT loaded)")
            return 1
        return 0

    # Wallet operations

    def keygen(self, name: str):
        keypair, created = create_keypair_file(self.keypair_path(name))
        if created:
            print(f"🔑 Created keypair '{name}': {keypair.public_key}")
        else:
            print(f"🔑 Keypair '{name}' already exists: {keypair.public_key}")

    def airdrop(self, name: str, amount: Decimal):
        address = self.resolve_address(name)
        client = self.client()
        print(f"💧 Requesting {amount} SOL for {address}")
        signature = client.request_airdrop(address, sol_to_lamports(amount))
        client.confirm_transaction(signature)
        print(f"✅ Airdrop confirmed: {signature}")

    def balance(self, name: str):
        address = self.resolve_address(name)
        lamports = self.client().get_balance(address)
        print(f"💰 Balance for {name}:")
        print(f"   Address: {address}")
        print(f"   Balance: {lamports_to_sol(lamports):.9f} SOL ({lamports:,} lamports)")

    def transfer(self, from_name: str, to_name: str, amount: Decimal):
        sender = self.load_signer(from_name)
        recipient = self.resolve_address(to_name)
        client = self.client()

        print(f"💸 Transferring {amount} SOL from {from_name} to {to_name}")
        message = (TransactionBuilder(sender.public_key, client.get_latest_blockhash())
                   .add_instruction(system.transfer(sender.public_key, recipient,
                                                    sol_to_lamports(amount)))
                   .build())
        transaction = sign_transaction(message, [sender])
        signature = client.send_transaction(transaction)
        print(f"⏳ Submitted {signature}, waiting for confirmation...")
        client.confirm_transaction(signature)
        print("✅ Transaction confirmed")

    # Program inspection

    def addresses(self):
        program_id = self.localnet.program_id
        authority, authority_bump = stake_reward.token_account_authority_address(program_id)
        master, master_bump = stake_reward.master_staking_address(program_id)
        print(f"Program ID:              {program_id}")
        print(f"Token account authority: {authority} (bump {authority_bump})")
        print(f"Master staking:          {master} (bump {master_bump})")

    def master(self):
        address, _ = stake_reward.master_staking_address(self.localnet.program_id)
        account = self.client().get_account_info(address)
        if account is None:
            print(f"🔍 Master staking account {address} not initialized")
            return 1
        master = stake_reward.MasterStaking.from_bytes(account.data)
        print(f"Master staking {address}: {master.pool_counter} pools created")
        return 0

    def pool(self, address: str):
        account = self.client().get_account_info(address)
        if account is None:
            print(f"❌ Account {address} not found")
            return 1
        if account.owner != self.localnet.program_id:
            print(f"❌ Account {address} is owned by {account.owner}, not the stake reward program")
            return 1
        pool = stake_reward.StakePool.from_bytes(account.data)
        print(f"🏊 Stake pool {address}")
        for key, value in pool.summary().items():
            print(f"   {key}: {value}")
        return 0

    def pools(self, owner: Optional[str] = None):
        filters = stake_reward.pool_filters(owner=owner)
        accounts = self.client().get_program_accounts(self.localnet.program_id, filters)
        if not accounts:
            print("🔍 No stake pools found")
            return
        for account in accounts:
            pool = stake_reward.StakePool.from_bytes(account.data)
            state = "initialized" if pool.initialized else "uninitialized"
            print(f"  #{pool.pool_index} {account.pubkey} mint={pool.mint} ({state})")


def sol_amount(text: str) -> Decimal:
    """argparse type: an exact SOL amount that is a whole number of lamports."""
    try:
        sol_to_lamports(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None
    return parse_sol(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stake-reward",
        description="Stake reward program: local validator and client tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stake-reward setup-local --detach --airdrop 10
  stake-reward status
  stake-reward keygen alice
  stake-reward transfer payer alice 1.5
  stake-reward stop
        """
    )
    parser.add_argument('--url', help='RPC endpoint (default: running localnet or $STAKE_REWARD_RPC_URL)')
    parser.add_argument('--commitment', choices=COMMITMENT_LEVELS, help='Commitment level')
    parser.add_argument('--program-dir', type=Path, help='Directory holding the program Cargo.toml')
    parser.add_argument('--keys-dir', type=Path, help='Directory for keypair files')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('build', help='Compile the on-chain program')

    setup_parser = subparsers.add_parser('setup-local', help='Build and start a local validator')
    setup_parser.add_argument('--skip-build', action='store_true', help='Reuse the existing artifact')
    setup_parser.add_argument('--detach', action='store_true', help='Leave the validator running and exit')
    setup_parser.add_argument('--airdrop', type=sol_amount, default=Decimal(0), metavar='SOL', help='Fund the payer')
    setup_parser.add_argument('--rpc-port', type=int, help='RPC port for the validator')
    setup_parser.add_argument('--timeout', type=float, help='Seconds to wait for the validator to become healthy')

    subparsers.add_parser('stop', help='Stop a detached local validator')
    subparsers.add_parser('status', help='Show cluster and program status')

    keygen_parser = subparsers.add_parser('keygen', help='Create a named keypair')
    keygen_parser.add_argument('name', help='Keypair name')

    airdrop_parser = subparsers.add_parser('airdrop', help='Request SOL from the faucet')
    airdrop_parser.add_argument('account', help='Keypair name or address')
    airdrop_parser.add_argument('amount', type=sol_amount, help='Amount in SOL')

    balance_parser = subparsers.add_parser('balance', help='Check account balance')
    balance_parser.add_argument('account', help='Keypair name or address')

    transfer_parser = subparsers.add_parser('transfer', help='Transfer SOL between accounts')
    transfer_parser.add_argument('from_account', help='Source keypair name')
    transfer_parser.add_argument('to_account', help='Destination keypair name or address')
    transfer_parser.add_argument('amount', type=sol_amount, help='Amount in SOL')

    subparsers.add_parser('addresses', help='Show program id and derived addresses')
    subparsers.add_parser('master', help='Show the master staking account')

    pool_parser = subparsers.add_parser('pool', help='Decode one stake pool account')
    pool_parser.add_argument('address', help='Stake pool account address')

    pools_parser = subparsers.add_parser('pools', help='List stake pool accounts')
    pools_parser.add_argument('--owner', help='Only pools owned by this address')

    return parser


def localnet_config_from_args(args: argparse.Namespace) -> LocalnetConfig:
    config = LocalnetConfig()
    changes = {}
    if args.program_dir:
        changes['program_dir'] = args.program_dir
    if args.keys_dir:
        changes['keys_dir'] = args.keys_dir
    if getattr(args, 'rpc_port', None):
        changes['rpc_port'] = args.rpc_port
    if getattr(args, 'timeout', None):
        changes['startup_timeout'] = args.timeout
    if args.commitment:
        changes['commitment'] = args.commitment
    return replace(config, **changes) if changes else config


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        cli = StakeRewardCLI(localnet_config_from_args(args), url=args.url,
                             commitment=args.commitment)

        if args.command == 'build':
            result = cli.build()
        elif args.command == 'setup-local':
            result = cli.setup_local(args.skip_build, args.detach, args.airdrop)
        elif args.command == 'stop':
            result = cli.stop()
        elif args.command == 'status':
            result = cli.status()
        elif args.command == 'keygen':
            result = cli.keygen(args.name)
        elif args.command == 'airdrop':
            result = cli.airdrop(args.account, args.amount)
        elif args.command == 'balance':
            result = cli.balance(args.account)
        elif args.command == 'transfer':
            result = cli.transfer(args.from_account, args.to_account, args.amount)
        elif args.command == 'addresses':
            result = cli.addresses()
        elif args.command == 'master':
            result = cli.master()
        elif args.command == 'pool':
            result = cli.pool(args.address)
        else:
            result = cli.pools(args.owner)

    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        return 0

    except StakeRewardError as e:
        print(f"❌ {e}")
        output = getattr(e, 'output', '')
        if output:
            print(output.rstrip())
        return 1

    except Exception as e:
        print(f"❌ Error: {e}")
        return 1

    return result or 0


if __name__ == '__main__':
    sys.exit(main())
