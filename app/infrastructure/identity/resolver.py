"""Caller identity resolution.

Resolves the identity forwarded by the upstream authentication layer to a
normalized User. All dependencies are injected via constructor.
"""

from typing import Mapping, Optional

import structlog

from infrastructure.identity.models import IdentitySource, Role, User

logger = structlog.get_logger()

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
USER_NAME_HEADER = "x-user-name"
USER_ROLES_HEADER = "x-user-roles"


class IdentityResolver:
    """Resolve caller identity from request headers or for system tasks.

    Example:
        resolver = IdentityResolver()
        user = resolver.resolve_from_headers(request.headers)
    """

    def __init__(self, system_user_id: str = "system"):
        self.system_user_id = system_user_id
        self._logger = logger.bind(component="identity_resolver")

    def resolve_from_headers(self, headers: Mapping[str, str]) -> Optional[User]:
        """Resolve the authenticated caller from forwarded headers.

        Returns:
            User, or None when no caller id was forwarded
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        user_id = (lowered.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            self._logger.debug("identity_headers_missing")
            return None

        roles = [
            role.strip().lower()
            for role in (lowered.get(USER_ROLES_HEADER) or "").split(",")
            if role.strip()
        ]
        email = lowered.get(USER_EMAIL_HEADER, "")
        user = User(
            user_id=user_id,
            email=email,
            display_name=lowered.get(USER_NAME_HEADER) or email or user_id,
            source=IdentitySource.API_HEADERS,
            roles=roles,
        )
        self._logger.debug("identity_resolved", user_id=user.user_id, roles=roles)
        return user

    def resolve_system_identity(self) -> User:
        """Identity used by background workers (auto-translation, seeding)."""
        return User(
            user_id=self.system_user_id,
            display_name="System",
            source=IdentitySource.SYSTEM,
            roles=[Role.ADMIN.value],
        )
