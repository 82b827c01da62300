"""
Request identity taken from upstream-authenticated headers.

Token verification happens before requests reach this service; here we only
require a bearer token to be present and read the tenant, user and role
headers the gateway forwards.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

security = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    company_id: UUID
    user_id: Optional[UUID] = None
    role: Optional[str] = None


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{header} header must be a valid UUID"
        )


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_company_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> RequestContext:
    """Build the request context from the Authorization and X-* headers"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="x-company-id header is required"
        )

    return RequestContext(
        company_id=_parse_uuid(x_company_id, "x-company-id"),
        user_id=_parse_uuid(x_user_id, "x-user-id") if x_user_id else None,
        role=x_user_role or None,
    )


def require_user_id(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Request context for endpoints that record who acted"""
    if context.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="x-user-id header is required"
        )
    return context
