"""Database-backed server-side sessions.

A session is an opaque random id handed to the client as a cookie, mapped to a
JSON payload and a fixed expiry. The payload holds the authenticated user
summary under ``"user"`` and the one-shot flash queue under ``"flash"``.
Expired rows are treated as absent when read and reaped by ``purge_expired``.
"""
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tutor_admin.core import config
from tutor_admin.models.session import SessionRecord

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 32
FLASH_KEY = 'flash'
USER_KEY = 'user'


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStoreUnavailable(RuntimeError):
    pass


class SessionStore:
    def __init__(
        self,
        session_factory: sessionmaker,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.ttl = ttl or timedelta(days=config.SESSION_TTL_DAYS)
        self._clock = clock

    def _live_record(self, sid: str | None, db: Session) -> SessionRecord | None:
        if not sid:
            return None
        record = db.get(SessionRecord, sid)
        if record is None or record.expire <= self._clock():
            return None
        return record

    def verify(self) -> None:
        try:
            with self._session_factory() as db:
                db.execute(select(SessionRecord.sid).limit(1))
        except SQLAlchemyError as exc:
            raise SessionStoreUnavailable('Session store is unreachable.') from exc

    def create(self, payload: dict) -> str:
        sid = secrets.token_urlsafe(SESSION_ID_BYTES)
        with self._session_factory() as db:
            db.add(SessionRecord(sid=sid, sess=dict(payload), expire=self._clock() + self.ttl))
            db.commit()
        return sid

    def read(self, sid: str | None) -> dict | None:
        with self._session_factory() as db:
            record = self._live_record(sid, db)
            return dict(record.sess) if record else None

    def save(self, sid: str | None, payload: dict) -> bool:
        """Replace the payload; the expiry set at creation is kept."""
        with self._session_factory() as db:
            record = self._live_record(sid, db)
            if record is None:
                return False
            record.sess = dict(payload)
            db.commit()
            return True

    def destroy(self, sid: str | None) -> None:
        if not sid:
            return
        with self._session_factory() as db:
            db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
            db.commit()

    def purge_expired(self) -> int:
        with self._session_factory() as db:
            result = db.execute(delete(SessionRecord).where(SessionRecord.expire <= self._clock()))
            db.commit()
        if result.rowcount:
            logger.info('Purged %s expired sessions', result.rowcount)
        return result.rowcount or 0

    def push_flash(self, sid: str | None, category: str, message: str) -> bool:
        with self._session_factory() as db:
            record = self._live_record(sid, db)
            if record is None:
                return False
            payload = dict(record.sess)
            payload[FLASH_KEY] = [*payload.get(FLASH_KEY, []), {'category': category, 'message': message}]
            record.sess = payload
            db.commit()
            return True

    def pop_flashes(self, sid: str | None) -> list[dict]:
        with self._session_factory() as db:
            record = self._live_record(sid, db)
            if record is None:
                return []
            payload = dict(record.sess)
            flashes = payload.pop(FLASH_KEY, [])
            if flashes:
                record.sess = payload
                db.commit()
            return flashes


def session_id_from(request: Request) -> str | None:
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, sid: str, store: SessionStore) -> None:
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        sid,
        max_age=int(store.ttl.total_seconds()),
        httponly=True,
        samesite='lax',
        secure=config.SESSION_COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        config.SESSION_COOKIE_NAME,
        httponly=True,
        samesite='lax',
        secure=config.SESSION_COOKIE_SECURE,
    )
