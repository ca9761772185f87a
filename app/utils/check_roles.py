# app/utils/check_roles.py
from typing import Callable, Iterable
from functools import wraps

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.models.user_models import ROLES


def require_role(roles: Iterable[str]):
    """
    Route decorator limiting access to ``roles``. The route must declare
    ``_user=Depends(get_current_user)``.
    """
    allowed = {r.lower() for r in roles}
    unknown = allowed - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {sorted(unknown)}")

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, _user, **kwargs):
            if _user is None:
                raise UnauthorizedException()
            if _user.role.lower() not in allowed:
                raise ForbiddenException()
            return await func(*args, _user=_user, **kwargs)
        return wrapper
    return decorator
