"""
Request dependencies for the admin API.

The authentication gateway in front of the admin service verifies the
caller and forwards the principal id in ``settings.PRINCIPAL_HEADER``.
"""

from typing import Optional

from fastapi import Depends, Request

from clicktrail.core.exceptions import UnauthorizedError
from clicktrail.core.setting import settings


def get_optional_principal(request: Request) -> Optional[str]:
    principal = request.headers.get(settings.PRINCIPAL_HEADER)
    if principal is None:
        return None
    principal = principal.strip()
    return principal or None


def require_principal(principal: Optional[str] = Depends(get_optional_principal)) -> str:
    """
    Raises:
        UnauthorizedError: If the request carries no principal
    """
    if principal is None:
        raise UnauthorizedError()
    return principal
