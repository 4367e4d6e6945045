from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from partsledger.auth.jwt_handler import decode_access_token
from partsledger.core.config import settings
import logging

security = HTTPBearer()
logger = logging.getLogger(__name__)


class Operator(BaseModel):
    """Identity resolved from the bearer token; used for audit attribution"""
    sub: str
    name: str
    role: Optional[str] = None
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == settings.ADMIN_ROLE


async def get_current_operator(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Operator:
    """Get current authenticated operator"""
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    operator = Operator(
        sub=str(payload["sub"]),
        name=payload.get("name") or str(payload["sub"]),
        role=payload.get("role"),
    )

    # Add request info to context
    request.state.current_operator = operator
    return operator


async def require_admin(
    current_operator: Operator = Depends(get_current_operator)
) -> Operator:
    """Admin-only endpoints (manual sweeps, destructive catalog changes)"""
    if not current_operator.is_admin:
        logger.warning(f"Operator {current_operator.name} denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_operator
