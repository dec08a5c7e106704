"""FastAPI dependencies for auth, DB session, and RBAC."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.enums import TokenType, UserRole
from app.models.user import User
from app.services.auth import AuthService

security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Validate the bearer access token against its signature and the token table."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided.",
        )

    token = credentials.credentials
    user = await AuthService(db).verify_token(token, TokenType.ACCESS)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )

    # Store token on request for logout
    request.state.access_token = token
    request.state.current_user = user
    return user


def require_role(*allowed_roles: UserRole):
    """Dependency factory: restrict endpoint to specific roles."""
    async def role_checker(
        user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You don't have permission to access this resource.",
            )
        return user
    return role_checker


require_admin = require_role(UserRole.ADMIN)
