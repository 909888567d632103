"""FastAPI dependencies of the localization routes."""

from typing import Annotated, Optional

from fastapi import Depends, Request

from infrastructure.identity import User
from infrastructure.services import IdentityResolverDep
from modules.localization.service import LocalizationService


def get_current_user(request: Request, resolver: IdentityResolverDep) -> Optional[User]:
    """Caller forwarded by the authentication layer; None when anonymous."""
    return resolver.resolve_from_headers(request.headers)


def get_localization_service(request: Request) -> LocalizationService:
    """Service built by the application lifespan."""
    return request.app.state.localization_service


CurrentUserDep = Annotated[Optional[User], Depends(get_current_user)]
LocalizationServiceDep = Annotated[LocalizationService, Depends(get_localization_service)]
