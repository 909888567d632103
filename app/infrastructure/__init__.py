"""Infrastructure modules for the localization service.

Centralized infrastructure components:
- configuration: Settings management (Settings, LocalizationSettings, ...)
- logging: structlog configuration and request context
- operations: Operation results and error classification
- persistence: Document stores (in-memory, DynamoDB)
- resilience: Circuit breakers and the retrying work queue
- caching: Process-scoped TTL caches
- identity: Caller identity models and resolution
- services: Dependency injection services (SettingsDep, get_settings)
"""

# Configuration
from infrastructure.configuration import Settings

# Identity
from infrastructure.identity import User

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

# Dependency Injection Services
from infrastructure.services import (
    IdentityResolverDep,
    SettingsDep,
    get_identity_resolver,
    get_settings,
)

__all__ = [
    # Configuration
    "Settings",
    # Identity
    "User",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
    # Dependency Injection Services
    "SettingsDep",
    "IdentityResolverDep",
    "get_settings",
    "get_identity_resolver",
]
