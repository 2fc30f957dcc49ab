"""Recipient feature module for payflow."""

from payflow.features.recipients.service import RecipientResolver

__all__ = ["RecipientResolver"]
