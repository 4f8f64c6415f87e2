"""
System Program Instructions

The System Program owns every fresh wallet account. Clients need it to
move lamports and to allocate accounts that another program will own.
Instruction data is a u32 instruction index followed by its arguments.
"""

from ..core.layout import Struct, public_key, u32, u64
from ..core.transactions import AccountMeta, Instruction

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

CREATE_ACCOUNT = 0
TRANSFER = 2

CREATE_ACCOUNT_LAYOUT = Struct([
    u32("instruction"),
    u64("lamports"),
    u64("space"),
    public_key("owner"),
])

TRANSFER_LAYOUT = Struct([
    u32("instruction"),
    u64("lamports"),
])


def transfer(from_pubkey: str, to_pubkey: str, lamports: int) -> Instruction:
    """Move lamports from a signing wallet to any account."""
    data = TRANSFER_LAYOUT.encode({"instruction": TRANSFER, "lamports": lamports})
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=[
            AccountMeta(from_pubkey, is_signer=True, is_writable=True),
            AccountMeta(to_pubkey, is_signer=False, is_writable=True),
        ],
        data=data,
    )


def create_account(payer: str, new_account: str, lamports: int,
                   space: int, owner: str) -> Instruction:
    """Allocate `space` bytes for a new account owned by `owner`."""
    data = CREATE_ACCOUNT_LAYOUT.encode({
        "instruction": CREATE_ACCOUNT,
        "lamports": lamports,
        "space": space,
        "owner": owner,
    })
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=[
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(new_account, is_signer=True, is_writable=True),
        ],
        data=data,
    )
