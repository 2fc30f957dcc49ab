"""Feature modules for payflow."""
