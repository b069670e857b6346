from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from app.api.deps import get_current_user, get_optional_user, require_admin
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserUpdate, UserResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    description="Anyone may register a client. Administrators are created by another "
                "administrator, except the very first one."
)
def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    caller: Optional[User] = Depends(get_optional_user)
):
    """
    Register a new user.

    - **409**: Email already registered
    - **403**: Administrator requested by a non-administrator while one exists
    """
    service = UserService(db)

    if user_data.role == UserRole.ADMIN:
        caller_is_admin = caller is not None and caller.role == UserRole.ADMIN
        if not caller_is_admin and service.has_admin():
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only administrators can create administrators"
            )

    return service.register(user_data)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get my profile"
)
def get_me(user: User = Depends(get_current_user)):
    return user


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update my profile",
    description="Change name or phone. Email and role are fixed."
)
def update_me(
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return UserService(db).update_profile(user, user_data)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user by ID",
    description="Administrators only."
)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    return UserService(db).get_by_id(user_id)
