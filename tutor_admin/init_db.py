"""Database provisioning commands.

Usage:
    python -m tutor_admin.init_db init
    python -m tutor_admin.init_db create-user --name NAME --email EMAIL --password PASSWORD [--role ROLE]
    python -m tutor_admin.init_db set-password --email EMAIL --password PASSWORD
    python -m tutor_admin.init_db purge-sessions
"""
import argparse
import logging
import sys

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tutor_admin import repository
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.bootstrap import ensure_default_admin
from tutor_admin.core import config
from tutor_admin.database import build_session_factory, create_db_engine, ensure_schema

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='python -m tutor_admin.init_db')
    parser.add_argument('--database-url', default=config.DATABASE_URL)
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('init', help='create tables and the default administrator')

    create_user = commands.add_parser('create-user', help='add a staff account')
    create_user.add_argument('--name', required=True)
    create_user.add_argument('--email', required=True)
    create_user.add_argument('--password', required=True)
    create_user.add_argument('--role', default=repository.DEFAULT_ROLE, choices=['teacher', 'admin'])

    set_password = commands.add_parser('set-password', help='replace a staff password')
    set_password.add_argument('--email', required=True)
    set_password.add_argument('--password', required=True)

    commands.add_parser('purge-sessions', help='delete expired sessions')
    return parser


def run(args: argparse.Namespace) -> int:
    if not args.database_url:
        logger.error('DATABASE_URL is not set.')
        return 1

    engine = create_db_engine(args.database_url)
    session_factory = build_session_factory(engine)

    try:
        ensure_schema(engine)
        if args.command == 'init':
            with session_factory() as db:
                ensure_default_admin(db)
            logger.info('Database initialised')
        elif args.command == 'create-user':
            with session_factory() as db:
                user = repository.create_user(args.name, args.email, args.password, db, role=args.role)
            logger.info('Created %s %s', user.role, user.email)
        elif args.command == 'set-password':
            with session_factory() as db:
                user = repository.get_user_by_email(args.email, db)
                if user is None:
                    logger.error('No user with email %s', args.email)
                    return 1
                repository.set_user_password(user, args.password, db)
            logger.info('Password updated for %s', args.email)
        elif args.command == 'purge-sessions':
            purged = SessionStore(session_factory).purge_expired()
            logger.info('Removed %s expired sessions', purged)
    except IntegrityError:
        logger.error('A user with email %s already exists', args.email)
        return 1
    except SQLAlchemyError:
        logger.exception('Database command failed')
        return 1
    finally:
        engine.dispose()

    return 0


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=config.LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')
    sys.exit(run(build_parser().parse_args(argv)))


if __name__ == '__main__':
    main()
