"""
Program Bindings

- System Program: transfers and account creation
- Stake Reward Program: account layouts and derived addresses
"""

from . import stake_reward, system
from .stake_reward import MasterStaking, StakePool, UserInfo
from .system import SYSTEM_PROGRAM_ID

__all__ = [
    'stake_reward',
    'system',
    'MasterStaking',
    'StakePool',
    'UserInfo',
    'SYSTEM_PROGRAM_ID',
]
