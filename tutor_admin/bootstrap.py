import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.core import config
from tutor_admin.models.user import User

logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session) -> User | None:
    """Create the first administrator when the users table is empty.

    Several workers may start on the same fresh database. The one whose insert
    loses the unique-email race leaves provisioning to the winner.
    """
    if repository.count_users(db) > 0:
        logger.debug('Users exist, skipping default administrator creation')
        return None

    try:
        admin = repository.create_user(
            name=config.DEFAULT_ADMIN_NAME,
            email=config.DEFAULT_ADMIN_EMAIL,
            password=config.DEFAULT_ADMIN_PASSWORD,
            role='admin',
            db=db,
        )
    except IntegrityError:
        db.rollback()
        logger.info('Default administrator was provisioned by another process')
        return None

    logger.warning(
        'Created default administrator %s with a temporary password. Change it now.',
        admin.email,
    )
    return admin
