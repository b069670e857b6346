from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import transaction_scope
from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserUpdate
from app.services.exceptions import DuplicateEmailError, PersistenceError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    """
    Service class for user accounts.

    Passwords and tokens belong to the authentication layer in front of the
    API; this service only keeps the records purchases and invoices point to.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> User:
        """
        Raises:
            UserNotFoundError: If no user has this ID
        """
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def has_admin(self) -> bool:
        query = self.db.query(User.id).filter(User.role == UserRole.ADMIN, User.active.is_(True))
        return bool(self.db.query(query.exists()).scalar())

    def register(self, user_data: UserCreate) -> User:
        """
        Create a user account.

        Emails are stored lower-cased. As with lot codes, the lookup is a fast
        path and the unique index is what settles concurrent registrations.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        email = user_data.email.strip().lower()
        if self.find_by_email(email):
            raise DuplicateEmailError(email)

        user = User(
            name=user_data.name,
            email=email,
            phone=user_data.phone,
            role=user_data.role,
            active=True,
        )
        with transaction_scope(self.db):
            self.db.add(user)
            try:
                self.db.flush()
            except IntegrityError as e:
                if "email" in str(e.orig):
                    raise DuplicateEmailError(email) from e
                raise PersistenceError(f"Could not create user: {e.orig}") from e
        self.db.refresh(user)

        logger.info(f"User #{user.id} registered with role {user.role.value}")
        return user

    def update_profile(self, user: User, user_data: UserUpdate) -> User:
        update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
        with transaction_scope(self.db):
            for field, value in update_data.items():
                setattr(user, field, value)
        self.db.refresh(user)

        logger.info(f"User #{user.id} updated: {sorted(update_data)}")
        return user
