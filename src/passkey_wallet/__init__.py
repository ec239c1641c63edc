"""Passkey Wallet - resilient passkey smart-account wallet sessions."""

__version__ = "0.1.0"
