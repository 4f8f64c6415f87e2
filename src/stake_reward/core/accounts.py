"""
Solana Account Model

Everything on Solana lives in an account:
- lamports: balance (1 SOL = 1_000_000_000 lamports)
- data: opaque bytes, interpreted only by the owning program
- owner: the program allowed to modify the data
- executable: whether the account holds a loaded program

This module turns the JSON an RPC node returns for an account into a
typed object that program bindings can decode.

Based on: https://solana.com/docs/core/accounts
"""

import base64
from dataclasses import dataclass
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Any, Dict, Union

LAMPORTS_PER_SOL = 1_000_000_000

SolAmount = Union[Decimal, str, int, float]


def parse_sol(amount: SolAmount) -> Decimal:
    """Read a SOL amount as an exact decimal; floats go through their repr."""
    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise ValueError(f"Not a SOL amount: {amount!r}") from None
    if not value.is_finite():
        raise ValueError(f"Not a SOL amount: {amount!r}")
    if value < 0:
        raise ValueError(f"SOL amount cannot be negative: {amount}")
    return value


def sol_to_lamports(sol: SolAmount) -> int:
    """
    Convert SOL to lamports without rounding.

    Raises:
        ValueError: for negative amounts or fractions of a lamport
    """
    value = parse_sol(sol)
    with localcontext() as ctx:
        ctx.prec = 64
        ctx.traps[Inexact] = True
        try:
            lamports = value.scaleb(9)
        except Inexact:
            raise ValueError(f"{sol} SOL has more digits than a lamport amount can hold") from None
    if lamports != lamports.to_integral_value():
        raise ValueError(f"{sol} SOL is not a whole number of lamports")
    return int(lamports)


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports).scaleb(-9)


@dataclass
class AccountInfo:
    """Account state as reported by an RPC node."""
    pubkey: str
    lamports: int
    data: bytes
    owner: str
    executable: bool
    rent_epoch: int = 0

    def __post_init__(self):
        if self.lamports < 0:
            raise ValueError("Lamports cannot be negative")

    @property
    def sol_balance(self) -> Decimal:
        return lamports_to_sol(self.lamports)

    def data_size(self) -> int:
        return len(self.data)

    @classmethod
    def from_rpc(cls, pubkey: str, value: Dict[str, Any]) -> "AccountInfo":
        """
        Build from a getAccountInfo `value` requested with base64 encoding.

        The node returns data as [payload, "base64"].
        """
        payload, encoding = value["data"]
        if encoding != "base64":
            raise ValueError(f"Unsupported account data encoding: {encoding}")
        return cls(
            pubkey=pubkey,
            lamports=value["lamports"],
            data=base64.b64decode(payload),
            owner=value["owner"],
            executable=value["executable"],
            # rentEpoch can exceed 2**53, which some nodes send as a float
            rent_epoch=int(value.get("rentEpoch", 0)),
        )

    def __str__(self) -> str:
        kind = "program" if self.executable else "account"
        return (f"{kind} {self.pubkey}: {self.sol_balance:.9f} SOL, "
                f"{self.data_size()} bytes, owner {self.owner}")
