"""
Stake Reward Toolkit Errors

Every failure the toolkit can report is a StakeRewardError, so callers
(and the CLI) can catch one type and still tell build failures apart
from a validator that never came up or an RPC node that said no.
"""

from typing import Any, Optional


class StakeRewardError(Exception):
    """Base class for all toolkit errors."""


class BuildError(StakeRewardError):
    """The on-chain program could not be compiled."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ValidatorStartupError(StakeRewardError):
    """The local test validator failed to start or never became healthy."""


class RPCError(StakeRewardError):
    """JSON-RPC request failed, either in transport or on the node."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return super().__str__()
        return f"RPC error {self.code}: {super().__str__()}"


class LayoutError(StakeRewardError):
    """Binary data does not fit the expected account or instruction layout."""


class KeypairError(StakeRewardError):
    """Keypair file is missing, malformed, or inconsistent."""
