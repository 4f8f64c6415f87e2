"""
Stake Reward Localnet Toolkit

Tools for developing against the stake reward program on Solana:

- Build the on-chain program and launch it on a local test validator
- Wait for the validator to become healthy instead of guessing a delay
- Keep cluster settings in an explicit config object, not global state
- Decode the program's accounts and build, sign and send transactions
"""

__version__ = "0.1.0"

from .config import STAKE_REWARD_PROGRAM_ID, ClusterConfig, LocalnetConfig
from .errors import (
    StakeRewardError,
    BuildError,
    ValidatorStartupError,
    RPCError,
    LayoutError,
    KeypairError,
)
from .core import *
from .networking import RPCClient
from .localnet import ProgramBuilder, TestValidator, ValidatorStateManager, LocalnetSession, setup_local

__all__ = [
    'STAKE_REWARD_PROGRAM_ID',
    'ClusterConfig',
    'LocalnetConfig',

    # Errors
    'StakeRewardError',
    'BuildError',
    'ValidatorStartupError',
    'RPCError',
    'LayoutError',
    'KeypairError',

    # Client
    'Keypair',
    'AccountInfo',
    'Struct',
    'Instruction',
    'AccountMeta',
    'TransactionBuilder',
    'Transaction',
    'RPCClient',

    # Localnet
    'ProgramBuilder',
    'TestValidator',
    'ValidatorStateManager',
    'LocalnetSession',
    'setup_local',
]
