import logging
from functools import lru_cache

from sqlalchemy.orm import Session

from tutor_admin.auth.security import check_password, hash_password
from tutor_admin.models.user import User
from tutor_admin.schemas import SessionUser

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = 'Invalid email or password.'


class InvalidCredentials(Exception):
    """Raised for both an unknown email and a wrong password."""

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)
        self.message = INVALID_CREDENTIALS_MESSAGE


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password('not-a-real-password')


def normalize_email(email: str | None) -> str:
    return (email or '').strip().lower()


def verify_credentials(email: str, password: str, db: Session) -> SessionUser:
    normalized_email = normalize_email(email)
    user = db.query(User).filter(User.email == normalized_email).first()

    if user is None:
        # Pay for one bcrypt comparison either way.
        check_password(password, _dummy_hash())
        logger.info('Login rejected for %s', normalized_email)
        raise InvalidCredentials()

    if not check_password(password, user.password_hash):
        logger.info('Login rejected for %s', normalized_email)
        raise InvalidCredentials()

    return SessionUser(id=user.id, name=user.name, email=user.email, role=user.role)
