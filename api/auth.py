"""
Role-based access control for the FastAPI API.

Callers authenticate with a bearer API key. Keys listed in API_KEYS carry
ROLE_USER, keys listed in ADMIN_API_KEYS carry ROLE_ADMIN as well. Routes
that need a role declare require_role(...) in their dependencies.
"""

from typing import Optional, Set

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.config import config

logger = structlog.get_logger(__name__)

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"

ACCESS_DENIED_MESSAGE = "You don't have access."

# Reads are public, so a missing header must not fail the request here
security = HTTPBearer(auto_error=False)


def roles_for_key(api_key: str) -> Set[str]:
    """
    Resolve the roles granted to an API key.

    Args:
        api_key: API key presented by the caller

    Returns:
        Set of role names, empty for unknown keys
    """
    if api_key in config.get_admin_api_keys():
        return {ROLE_USER, ROLE_ADMIN}
    if api_key in config.get_api_keys():
        return {ROLE_USER}
    return set()


async def get_current_roles(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Set[str]:
    """
    Roles of the current caller.

    Args:
        credentials: HTTP authorization credentials, if any were sent

    Returns:
        Set of role names
    """
    if credentials is None:
        return set()

    roles = roles_for_key(credentials.credentials)
    if not roles:
        logger.warning("Unknown API key presented", api_key=credentials.credentials[:10] + "...")
    return roles


def require_role(role: str):
    """
    Build a dependency that rejects callers lacking a role.

    Args:
        role: Role name the caller must hold

    Returns:
        Dependency callable for use in a route's ``dependencies``
    """
    async def check_role(roles: Set[str] = Depends(get_current_roles)) -> None:
        if role not in roles:
            logger.info("Access denied", required_role=role)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ACCESS_DENIED_MESSAGE
            )

    return check_role


require_admin = require_role(ROLE_ADMIN)
