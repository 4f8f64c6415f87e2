"""
Client Core Components

Keys and addresses, fixed binary layouts, account records and the
transaction wire format.
"""

from .accounts import AccountInfo, LAMPORTS_PER_SOL, lamports_to_sol, parse_sol, sol_to_lamports
from .keys import (
    Keypair,
    b58encode,
    b58decode,
    load_keypair,
    save_keypair,
    create_keypair_file,
    create_program_address,
    find_program_address,
)
from .layout import Struct, COption, u8, u32, u64, u128, public_key, blob
from .transactions import (
    AccountMeta,
    Instruction,
    MessageHeader,
    CompiledInstruction,
    TransactionMessage,
    Transaction,
    TransactionBuilder,
    sign_transaction,
)

__all__ = [
    'AccountInfo', 'LAMPORTS_PER_SOL', 'lamports_to_sol', 'parse_sol', 'sol_to_lamports',
    'Keypair', 'b58encode', 'b58decode', 'load_keypair', 'save_keypair',
    'create_keypair_file', 'create_program_address', 'find_program_address',
    'Struct', 'COption', 'u8', 'u32', 'u64', 'u128', 'public_key', 'blob',
    'AccountMeta', 'Instruction', 'MessageHeader', 'CompiledInstruction',
    'TransactionMessage', 'Transaction', 'TransactionBuilder', 'sign_transaction',
]
