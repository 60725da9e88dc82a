from types import SimpleNamespace

import pytest

from tutor_admin.auth.sessions import SessionStore
from tutor_admin.core import config
from tutor_admin.database import build_session_factory, create_db_engine, ensure_schema
from tutor_admin.uploads import UploadStore


class FakeRequest:
    def __init__(self, *, cookies=None, state=None, method: str = 'GET', path: str = '/'):
        self.cookies = cookies or {}
        self.app = SimpleNamespace(state=state or SimpleNamespace())
        self.method = method
        self.url = SimpleNamespace(path=path)


def set_cookies(response) -> dict[str, str]:
    cookies = {}
    for key, value in response.raw_headers:
        if key.lower() != b'set-cookie':
            continue
        name, _, rest = value.decode().partition('=')
        cookies[name] = rest.split(';', 1)[0]
    return cookies


@pytest.fixture(autouse=True)
def _fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'PASSWORD_SALT_ROUNDS', 4)


@pytest.fixture
def session_factory():
    engine = create_db_engine('sqlite://')
    ensure_schema(engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(session_factory) -> SessionStore:
    return SessionStore(session_factory)


@pytest.fixture
def uploads(tmp_path) -> UploadStore:
    upload_store = UploadStore(str(tmp_path / 'uploads'))
    upload_store.ensure_directory()
    return upload_store


@pytest.fixture
def make_request(store, uploads, session_factory):
    state = SimpleNamespace(session_store=store, upload_store=uploads, session_factory=session_factory)

    def _make(sid: str | None = None, **kwargs) -> FakeRequest:
        cookies = {config.SESSION_COOKIE_NAME: sid} if sid else {}
        return FakeRequest(cookies=cookies, state=state, **kwargs)

    return _make


@pytest.fixture
def response_cookies():
    return set_cookies
