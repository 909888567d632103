"""Caller identity resolution.

Usage:
    from infrastructure.identity import IdentityResolver, User, Role

    resolver = IdentityResolver()
    user = resolver.resolve_from_headers(request.headers)
    if not user.has_role(Role.REVIEWER):
        ...
"""

from infrastructure.identity.models import IdentitySource, Role, User
from infrastructure.identity.resolver import IdentityResolver

__all__ = ["IdentityResolver", "IdentitySource", "Role", "User"]
