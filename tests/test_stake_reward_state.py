import pytest

from stake_reward.config import STAKE_REWARD_PROGRAM_ID
from stake_reward.core.keys import Keypair, is_on_curve
from stake_reward.errors import LayoutError
from stake_reward.programs import stake_reward
from stake_reward.programs.stake_reward import (
    STAKE_POOL_LAYOUT,
    STAKE_POOL_LEN,
    MasterStaking,
    StakePool,
    UserInfo,
)

OWNER = Keypair.from_seed(bytes(range(32))).public_key
MINT = Keypair.from_seed(bytes(range(1, 33))).public_key


def make_pool(**overrides) -> StakePool:
    values = dict(
        pool_index=3,
        owner=OWNER,
        mint=MINT,
        is_initialized=1,
        precision_factor_rank=12,
        bonus_multiplier=3,
        bonus_start_block=200,
        bonus_end_block=300,
        last_reward_block=100,
        start_block=100,
        end_block=1000,
        reward_amount=10 ** 12,
        reward_per_block=1_000,
        accrued_token_per_share=2 ** 100,
        period_finish=1_700_000_000,
        reward_rate=2 ** 70,
        last_update_time=1_690_000_000,
        reward_per_token_stored=0,
        total_supply=5_000,
    )
    values.update(overrides)
    return StakePool(**values)


def test_program_id_is_shared_with_bootstrap():
    assert stake_reward.PROGRAM_ID == STAKE_REWARD_PROGRAM_ID


def test_stake_pool_account_layout():
    assert STAKE_POOL_LAYOUT.packed_size == 215
    assert STAKE_POOL_LAYOUT.size == STAKE_POOL_LEN == 321
    offsets = STAKE_POOL_LAYOUT.offsets()
    assert offsets["owner"] == 8
    assert offsets["mint"] == 40
    assert offsets["bonus_multiplier"] == 74
    assert offsets["total_supply"] == 207


def test_stake_pool_bytes_decode_back():
    pool = make_pool()
    data = pool.to_bytes()
    assert len(data) == STAKE_POOL_LEN
    assert StakePool.from_bytes(data) == pool


def test_stake_pool_unset_bonus_fields():
    pool = make_pool(bonus_multiplier=None, bonus_start_block=None, bonus_end_block=None)
    data = pool.to_bytes()
    offset = STAKE_POOL_LAYOUT.offsets()["bonus_multiplier"]
    assert data[offset:offset + 29] == bytes(29)
    decoded = StakePool.from_bytes(data)
    assert decoded.bonus_multiplier is None
    assert decoded.bonus_end_block is None


def test_stake_pool_rejects_truncated_account():
    with pytest.raises(LayoutError):
        StakePool.from_bytes(bytes(100))


@pytest.mark.parametrize("from_block,to_block,expected", [
    (210, 290, 80 * 3),                    # entirely inside the bonus window
    (150, 250, 50 + 50 * 3),               # runs into the bonus window
    (250, 400, 100 + 50 * 3),              # runs out of the bonus window
    (50, 2000, 100 + 700 + 100 * 3),       # spans it, clamped to start/end blocks
    (400, 500, 100),                       # after the bonus window
    (1200, 1500, 0),                       # after the pool ended
])
def test_get_multiplier(from_block, to_block, expected):
    assert make_pool().get_multiplier(from_block, to_block) == expected


def test_get_multiplier_without_bonus():
    pool = make_pool(bonus_multiplier=None, bonus_start_block=None, bonus_end_block=None)
    assert pool.get_multiplier(150, 250) == 100


def test_master_staking_counter():
    master = MasterStaking.from_bytes((41).to_bytes(8, "little"))
    assert master.increase_counter() == 42
    assert master.to_bytes() == (42).to_bytes(8, "little")

    with pytest.raises(OverflowError):
        MasterStaking(pool_counter=2 ** 64 - 1).increase_counter()


def test_user_info_layout():
    info = UserInfo(token_account_id=OWNER, amount=10, reward_debt=4, reward_lock_finish=1_000)
    data = info.to_bytes()
    assert len(data) == 56
    assert UserInfo.from_bytes(data) == info
    assert info.is_reward_locked(999)
    assert not info.is_reward_locked(1_000)


def test_program_derived_addresses():
    authority, authority_bump = stake_reward.token_account_authority_address()
    master, master_bump = stake_reward.master_staking_address()
    assert authority != master
    assert not is_on_curve(authority)
    assert not is_on_curve(master)
    assert 0 <= authority_bump <= 255 and 0 <= master_bump <= 255


def test_pool_filters():
    assert stake_reward.pool_filters() == [{"dataSize": 321}]
    filters = stake_reward.pool_filters(owner=OWNER, mint=MINT)
    assert filters[1] == {"memcmp": {"offset": 8, "bytes": OWNER}}
    assert filters[2] == {"memcmp": {"offset": 40, "bytes": MINT}}
