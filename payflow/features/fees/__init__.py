"""Fee feature module for payflow."""

from payflow.features.fees.service import FeeResolver

__all__ = ["FeeResolver"]
