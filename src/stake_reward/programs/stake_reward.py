"""
Stake Reward Program Bindings

Client-side view of the stake reward program's accounts:
- MasterStaking: global counter of created pools (borsh u64)
- StakePool: one reward pool, packed into a fixed 321-byte account
- UserInfo: a staker's position in a pool (borsh struct)

Plus the program-derived addresses the program signs with. Everything
here is decoding and address math; nothing talks to the network.
"""

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

from ..config import STAKE_REWARD_PROGRAM_ID
from ..core.keys import b58encode, find_program_address, pubkey_to_bytes
from ..core.layout import COption, Struct, public_key, u8, u64, u128

PROGRAM_ID = STAKE_REWARD_PROGRAM_ID

# PDA seeds, as the program declares them
TOKEN_ACCOUNT_AUTHORITY_SEED = b"TOKEN_ACCOUNT_AUTHORITY_test_8"
MASTER_STAKING_SEED = b"MASTER_STAKING_test_8"
STATE_POOL_SEED = b"STATE_POOL"
WALLET_POOL_SEED = b"WALLET_POOL"
STAKED_SEED = b"STAKED"

REWARDS_DURATION = 7 * 24 * 60 * 60
REWARDS_LOCK_DURATION = 24 * 60 * 60

MASTER_STAKING_LAYOUT = Struct([u64("pool_counter")])

STAKE_POOL_LEN = 321
STAKE_POOL_LAYOUT = Struct([
    u64("pool_index"),
    public_key("owner"),
    public_key("mint"),
    u8("is_initialized"),
    u8("precision_factor_rank"),
    COption(u8("bonus_multiplier")),
    COption(u64("bonus_start_block")),
    COption(u64("bonus_end_block")),
    u64("last_reward_block"),
    u64("start_block"),
    u64("end_block"),
    u64("reward_amount"),
    u64("reward_per_block"),
    u128("accrued_token_per_share"),
    u64("period_finish"),
    u128("reward_rate"),
    u64("last_update_time"),
    u128("reward_per_token_stored"),
    u64("total_supply"),
], span=STAKE_POOL_LEN)

USER_INFO_LAYOUT = Struct([
    public_key("token_account_id"),
    u64("amount"),
    u64("reward_debt"),
    u64("reward_lock_finish"),
])

U64_MAX = (1 << 64) - 1


def token_account_authority_address(program_id: str = PROGRAM_ID) -> Tuple[str, int]:
    """PDA that owns the program's token accounts."""
    return find_program_address([TOKEN_ACCOUNT_AUTHORITY_SEED], program_id)


def master_staking_address(program_id: str = PROGRAM_ID) -> Tuple[str, int]:
    """PDA holding the MasterStaking counter."""
    return find_program_address([MASTER_STAKING_SEED], program_id)


@dataclass
class MasterStaking:
    pool_counter: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "MasterStaking":
        return cls(**MASTER_STAKING_LAYOUT.decode(data))

    def to_bytes(self) -> bytes:
        return MASTER_STAKING_LAYOUT.encode(asdict(self))

    def increase_counter(self) -> int:
        if self.pool_counter >= U64_MAX:
            raise OverflowError("Pool counter overflow")
        self.pool_counter += 1
        return self.pool_counter


@dataclass
class StakePool:
    """
    A reward pool.

    Block-based fields drive the accrued-per-share reward model; the
    time-based ones (period_finish, reward_rate, ...) drive the
    rate-per-second model. Optional bonus fields are None when unset.
    """
    pool_index: int
    owner: str
    mint: str
    is_initialized: int
    precision_factor_rank: int
    bonus_multiplier: Optional[int]
    bonus_start_block: Optional[int]
    bonus_end_block: Optional[int]
    last_reward_block: int
    start_block: int
    end_block: int
    reward_amount: int
    reward_per_block: int
    accrued_token_per_share: int
    period_finish: int
    reward_rate: int
    last_update_time: int
    reward_per_token_stored: int
    total_supply: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "StakePool":
        return cls(**STAKE_POOL_LAYOUT.decode(data))

    def to_bytes(self) -> bytes:
        return STAKE_POOL_LAYOUT.encode(asdict(self))

    @property
    def initialized(self) -> bool:
        return self.is_initialized != 0

    def get_multiplier(self, from_block: int, to_block: int) -> int:
        """
        Reward blocks between two slots, bonus blocks counted `bonus_multiplier` times.

        The range is clamped to [start_block, end_block]; an empty or
        inverted range yields 0.
        """
        from_block = max(from_block, self.start_block)
        to_block = min(to_block, self.end_block)
        if to_block <= from_block:
            return 0

        multiplier = self.bonus_multiplier if self.bonus_multiplier is not None else 1
        start = self.bonus_start_block or 0
        end = self.bonus_end_block or 0

        if from_block < start and to_block > end:
            return start - from_block + to_block - end + (end - start) * multiplier
        if from_block < start < to_block:
            return start - from_block + (to_block - start) * multiplier
        if from_block < end < to_block:
            return to_block - end + (end - from_block) * multiplier
        if from_block >= start and to_block <= end:
            return (to_block - from_block) * multiplier
        return to_block - from_block

    def summary(self) -> Dict[str, object]:
        return {
            "pool_index": self.pool_index,
            "owner": self.owner,
            "mint": self.mint,
            "initialized": self.initialized,
            "blocks": f"{self.start_block}..{self.end_block}",
            "reward_per_block": self.reward_per_block,
            "reward_amount": self.reward_amount,
            "total_supply": self.total_supply,
        }


@dataclass
class UserInfo:
    token_account_id: str
    amount: int
    reward_debt: int
    reward_lock_finish: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "UserInfo":
        return cls(**USER_INFO_LAYOUT.decode(data))

    def to_bytes(self) -> bytes:
        return USER_INFO_LAYOUT.encode(asdict(self))

    def is_reward_locked(self, unix_timestamp: int) -> bool:
        return unix_timestamp < self.reward_lock_finish


def pool_filters(owner: Optional[str] = None, mint: Optional[str] = None) -> List[dict]:
    """getProgramAccounts filters selecting StakePool accounts, optionally by owner/mint."""
    offsets = STAKE_POOL_LAYOUT.offsets()
    filters: List[dict] = [{"dataSize": STAKE_POOL_LEN}]
    for name, value in (("owner", owner), ("mint", mint)):
        if value is not None:
            filters.append({"memcmp": {
                "offset": offsets[name],
                "bytes": b58encode(pubkey_to_bytes(value)),
            }})
    return filters
