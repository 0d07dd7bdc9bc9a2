"""
API-specific dependencies for v1 endpoints
"""
from typing import Callable, Dict, Optional
from fastapi import Header, HTTPException, status

from leadpulse.core.config import settings

ROLE_PERMISSIONS: Dict[str, Dict[str, bool]] = {
    "admin": {
        "viewSubmissions": True,
        "exportData": True,
        "manageUsers": True,
        "viewAnalytics": True,
    },
    "manager": {
        "viewSubmissions": True,
        "exportData": True,
        "manageUsers": False,
        "viewAnalytics": True,
    },
    "analyst": {
        "viewSubmissions": True,
        "exportData": False,
        "manageUsers": False,
        "viewAnalytics": True,
    },
}


def verify_api_key(x_api_key: Optional[str] = Header(None)) -> str:
    """
    Verify the API key from the request header and return the caller's role.
    """
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required"
        )
    role = settings.security.api_keys.get(x_api_key)
    if role not in ROLE_PERMISSIONS:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
    return role


def require_permission(permission: str) -> Callable[..., str]:
    """Build a dependency that admits only roles holding `permission`"""

    def checker(x_api_key: Optional[str] = Header(None)) -> str:
        role = verify_api_key(x_api_key)
        if not ROLE_PERMISSIONS[role].get(permission, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission '{permission}' required"
            )
        return role

    return checker
