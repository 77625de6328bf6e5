"""Auth module - secure credential storage."""

from .keychain import KeychainManager, StoredCredentials

__all__ = ["KeychainManager", "StoredCredentials"]
