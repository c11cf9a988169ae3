"""Desk — операторский слой: вход, форма сделки."""

from .deal_form import DealFormState, DealFormSync, RecomputeResult
from .operators import AuthenticationError, Operator, OperatorAccount, OperatorDirectory, OperatorRole

__all__ = [
    "AuthenticationError",
    "DealFormState",
    "DealFormSync",
    "Operator",
    "OperatorAccount",
    "OperatorDirectory",
    "OperatorRole",
    "RecomputeResult",
]
