from fastapi import Depends, HTTPException, status, Request
from examportal.models.user_model import User, UserRole
from .security import current_active_user


def require_role(*roles: UserRole):
    """Dependency factory: the active user must hold one of ``roles``."""
    async def _guard(user: User = Depends(current_active_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted",
            )
        return user
    return _guard


current_admin = require_role(UserRole.ADMIN)
current_teacher = require_role(UserRole.TEACHER)
current_student = require_role(UserRole.STUDENT)
# teachers and admins both manage exams and read submissions
current_staff = require_role(UserRole.TEACHER, UserRole.ADMIN)


async def users_router_permission(request: Request, user: User = Depends(current_active_user)):
    # admins manage every account; anyone else may only read or patch their own profile
    if user.role == UserRole.ADMIN:
        return True
    own_profile = request.url.path.rstrip("/").endswith("/users/me")
    if request.method.upper() == "GET" and own_profile:
        return True
    if request.method.upper() == "PATCH" and own_profile:
        return True
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
