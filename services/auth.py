from typing import Optional, Dict, Any
from jose import jwt, JWTError
from fastapi import HTTPException, Security, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
import structlog

from services.config import Settings, get_settings

logger = structlog.get_logger()
security = HTTPBearer()


class User(BaseModel):
    id: str
    email: Optional[str] = None
    role: str


class AuthService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm]
            )
        except JWTError as e:
            logger.error("Token verification failed", error=str(e), token_preview=token[:10] + "..." if token else "None")
            raise HTTPException(status_code=401, detail=f"Could not validate credentials: {str(e)}")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    settings: Settings = Depends(get_settings)
) -> User:
    payload = AuthService(settings).verify_token(credentials.credentials)

    sub = payload.get("sub") or payload.get("id")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token payload: missing subject")

    return User(
        id=str(sub),
        email=payload.get("email"),
        role=payload.get("role", "viewer")
    )


async def require_authenticated(user: User = Depends(get_current_user)) -> User:
    """Require any authenticated user"""
    return user
