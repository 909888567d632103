"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import IdentityResolverDep, SettingsDep
from infrastructure.services.providers import get_identity_resolver, get_settings

__all__ = [
    "SettingsDep",
    "IdentityResolverDep",
    "get_settings",
    "get_identity_resolver",
]
