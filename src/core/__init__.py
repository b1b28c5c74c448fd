"""
Core reward-accounting algorithms
"""

from .holder_rewards import CommandParams, LedgerView, StepResult, step, step_or_raise

__all__ = [
    "CommandParams",
    "LedgerView",
    "StepResult",
    "step",
    "step_or_raise",
]
