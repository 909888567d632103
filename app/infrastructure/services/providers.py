"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure
services. This module must only depend on configuration and identity:
logging setup imports ``get_settings`` from here.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.identity import IdentityResolver


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire
    application. The @lru_cache decorator ensures only ONE instance is
    created per process.

    Infrastructure packages should use this directly:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.localization.model_dump()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    """
    Get application-scoped identity resolver singleton.

    Usage:
        @router.get("/me")
        def me(request: Request, resolver: IdentityResolverDep):
            return resolver.resolve_from_headers(request.headers)
    """
    return IdentityResolver()
