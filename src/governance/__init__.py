"""
Governance — Предложения совета директоров и их применение.
"""

from src.governance.descriptions import describe
from src.governance.effects import EFFECT_HANDLERS, EffectContext, apply_effect
from src.governance.state_machine import Governance, GovernanceConfig, GovernanceResolution

__all__ = [
    "Governance",
    "GovernanceConfig",
    "GovernanceResolution",
    "EFFECT_HANDLERS",
    "EffectContext",
    "apply_effect",
    "describe",
]
