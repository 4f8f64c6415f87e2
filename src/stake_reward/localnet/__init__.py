"""
Local Network

Build the program, run it on solana-test-validator, and keep track of
the running node:

- Build step: cargo build-bpf into a deterministic artifact path
- Validator: owned child process with poll-until-healthy startup
- State: on-disk record of a detached validator
- Bootstrap: the whole sequence in one call
"""

from .build import ProgramBuilder
from .validator import TestValidator
from .state import ValidatorStateManager
from .bootstrap import LocalnetSession, setup_local

__all__ = [
    'ProgramBuilder',
    'TestValidator',
    'ValidatorStateManager',
    'LocalnetSession',
    'setup_local',
]
