"""PIN and OTP challenge module for payflow."""

from payflow.features.secret_gate.service import (
    BankDetails,
    GateState,
    SecretGate,
    Verified,
)

__all__ = ["BankDetails", "GateState", "SecretGate", "Verified"]
