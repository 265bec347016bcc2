"""
API Dependencies
Common dependencies for API routes
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gad_procurement.core.exceptions import AuthenticationException
from gad_procurement.core.security import verify_access_token
from gad_procurement.db.session import get_db_session
from gad_procurement.services.permissions import PermissionService, build_permission_service
from gad_procurement.services.permissions.models import ActorContext


async def get_current_actor(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_request_id: Optional[str] = Header(None),
) -> ActorContext:
    """
    Dependency to resolve the acting user from a JWT token

    Raises:
        AuthenticationException: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ")[1]
    payload = verify_access_token(token)

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationException(message="Token subject is not a valid user ID")

    return ActorContext(
        user_id=user_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        request_id=x_request_id,
    )


async def get_permission_service(
    db: AsyncSession = Depends(get_db_session),
) -> PermissionService:
    """Permission service bound to the request's database session"""
    return build_permission_service(db)
