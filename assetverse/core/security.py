# assetverse/core/security.py
from typing import Any, Dict, List, Optional
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from assetverse.core.config import SECRET_KEY, ALGORITHM, IDENTITY_AUDIENCE
from assetverse.core.directory import UserDirectory
from assetverse.db.database import get_directory
from assetverse.models.enum import UserRole

logger = logging.getLogger(__name__)

# Only used for the OpenAPI "Authorize" button; AuthMiddleware does the real check
bearer_scheme = HTTPBearer(auto_error=False)


def verify_identity_token(token: str) -> str:
    """Verify a bearer token issued by the identity provider and return its subject email."""
    options = {"verify_aud": bool(IDENTITY_AUDIENCE)}
    payload: Dict[str, Any] = jwt.decode(
        token,
        SECRET_KEY,
        algorithms=[ALGORITHM],
        audience=IDENTITY_AUDIENCE or None,
        options=options,
    )
    email: Optional[str] = payload.get("email") or payload.get("sub")
    if not email:
        raise JWTError("Token carries no 'email' or 'sub' claim.")
    return email


# --- Dependencies ---
async def get_token_email(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Email verified by AuthMiddleware, or decoded here when the middleware did not run."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized Access!",
        headers={"WWW-Authenticate": "Bearer"},
    )
    email: Optional[str] = getattr(request.state, "email", None)
    if email:
        return email
    if credentials is None:
        raise credentials_exception
    try:
        return verify_identity_token(credentials.credentials)
    except JWTError:
        logger.warning("Token decode failed in get_token_email dependency.")
        raise credentials_exception


async def get_current_user(
    email: str = Depends(get_token_email),
    directory: UserDirectory = Depends(get_directory),
) -> Dict[str, Any]:
    """Profile record of the authenticated caller."""
    user = await directory.find_user(email)
    if user is None:
        logger.warning(f"Authenticated email '{email}' has no user profile.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found. Register first.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(required_role: UserRole):
    """Factory for a dependency that checks the caller has exactly this role."""
    async def role_checker(current_user: Dict[str, Any] = Depends(get_current_user)):
        if current_user["role"] != required_role.value:
            logger.warning(
                f"Forbidden: User '{current_user['email']}' with role '{current_user['role']}' "
                f"attempted action requiring role '{required_role.value}'."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required role: {required_role.value}",
            )
        return current_user
    return role_checker


def require_roles(required_roles: List[UserRole]):
    """Factory for a dependency that checks the caller has one of the roles."""
    allowed = [r.value for r in required_roles]

    async def roles_checker(current_user: Dict[str, Any] = Depends(get_current_user)):
        if current_user["role"] not in allowed:
            logger.warning(
                f"Forbidden: User '{current_user['email']}' with role '{current_user['role']}' "
                f"attempted action requiring one of roles: {allowed}."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required roles: {allowed}",
            )
        return current_user
    return roles_checker


# Convenience dependencies for common roles
require_hr = require_role(UserRole.HR)
require_hr_or_admin = require_roles([UserRole.HR, UserRole.ADMIN])
