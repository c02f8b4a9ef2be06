# Utils package initialization file
from utils.reward_selection import RewardTier, TierWeightingMode, select_reward_tier

__all__ = ['RewardTier', 'TierWeightingMode', 'select_reward_tier']
