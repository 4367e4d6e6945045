from typing import Optional
from datetime import timedelta
from jose import JWTError, jwt
from partsledger.core.config import settings
from partsledger.utils.date_time import utc_now

def create_access_token(subject: str, name: Optional[str] = None, role: Optional[str] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Issue an access token for an operator"""
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(subject),
        "name": name or str(subject),
        "role": role,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate access token"""
    try:
        # jose checks "exp" itself
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    # Check token type
    if payload.get("type") != "access":
        return None
    if not payload.get("sub"):
        return None

    return payload
