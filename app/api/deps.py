from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.models.user import User, UserRole


def get_current_user(
    x_user_id: int = Header(..., description="ID of the authenticated user"),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the caller from the X-User-Id header.

    Token verification happens upstream; the header is trusted as is.
    """
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user"
        )
    return user


def get_optional_user(
    x_user_id: Optional[int] = Header(None, description="ID of the authenticated user, if any"),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous callers resolve to None."""
    if x_user_id is None:
        return None
    return get_current_user(x_user_id, db)


def require_role(role: UserRole):
    """Dependency factory rejecting callers without ``role``."""
    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires the {role.value} role"
            )
        return user
    return checker


require_admin = require_role(UserRole.ADMIN)
require_client = require_role(UserRole.CLIENT)
