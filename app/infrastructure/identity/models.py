"""Caller identity models and enums.

The authentication layer sits in front of this service; it forwards the
authenticated caller, which is normalized to a ``User`` here.
"""

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class IdentitySource(str, Enum):
    """Source of identity information."""

    API_HEADERS = "api_headers"
    SYSTEM = "system"


class Role(str, Enum):
    """Localization roles granted by the authentication layer."""

    ADMIN = "admin"
    TRANSLATOR = "translator"
    REVIEWER = "reviewer"


class User(BaseModel):
    """Normalized caller identity."""

    model_config = ConfigDict(use_enum_values=False)

    user_id: str = Field(..., description="Canonical user identifier")
    email: str = Field(default="", description="User's email address")
    display_name: str = Field(default="", description="User's display name")
    source: IdentitySource = Field(..., description="Source of identity information")
    roles: List[str] = Field(default_factory=list, description="Granted roles")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def has_role(self, *roles: Role | str) -> bool:
        """True when the caller holds any of ``roles`` (admins hold all)."""
        granted = {r.lower() for r in self.roles}
        if Role.ADMIN.value in granted:
            return True
        return any((r.value if isinstance(r, Role) else r).lower() in granted for r in roles)
