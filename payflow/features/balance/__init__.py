"""Balance feature module for payflow."""

from payflow.features.balance.service import BalanceHold, BalanceReconciler

__all__ = ["BalanceHold", "BalanceReconciler"]
