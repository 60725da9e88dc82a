import pytest

from tutor_admin import repository
from tutor_admin.auth.credentials import INVALID_CREDENTIALS_MESSAGE
from tutor_admin.auth.dependencies import AuthenticationRequired, require_user
from tutor_admin.core import config
from tutor_admin.routes import auth_routes


@pytest.fixture
def admin(db):
    return repository.create_user('Admin', 'admin@example.com', 'adminpass', db, role='admin')


def _login(make_request, db, store, email: str, password: str, sid: str | None = None):
    return auth_routes.login(request=make_request(sid, method='POST'), email=email, password=password, db=db, store=store)


def test_login_creates_session_with_user_summary(admin, db, store, make_request, response_cookies) -> None:
    response = _login(make_request, db, store, 'admin@example.com', 'adminpass')

    assert response.status_code == 303
    assert response.headers['location'] == '/'
    sid = response_cookies(response)[config.SESSION_COOKIE_NAME]
    payload = store.read(sid)
    assert payload['user'] == {'id': admin.id, 'name': 'Admin', 'email': 'admin@example.com', 'role': 'admin'}


def test_login_cookie_is_http_only_with_session_lifetime(admin, db, store, make_request) -> None:
    response = _login(make_request, db, store, 'admin@example.com', 'adminpass')

    cookie = response.headers['set-cookie'].lower()
    assert 'httponly' in cookie
    assert f'max-age={30 * 24 * 60 * 60}' in cookie
    assert 'samesite=lax' in cookie


def test_login_replaces_previous_anonymous_session(admin, db, store, make_request, response_cookies) -> None:
    anonymous_sid = store.create({'flash': []})

    response = _login(make_request, db, store, 'admin@example.com', 'adminpass', sid=anonymous_sid)

    assert store.read(anonymous_sid) is None
    assert response_cookies(response)[config.SESSION_COOKIE_NAME] != anonymous_sid


@pytest.mark.parametrize(
    ('email', 'password'),
    [('admin@example.com', 'wrong-password'), ('nobody@example.com', 'adminpass')],
)
def test_failed_login_shows_generic_message(admin, db, store, make_request, response_cookies, email, password) -> None:
    response = _login(make_request, db, store, email, password)

    assert response.status_code == 303
    assert response.headers['location'] == '/login'
    sid = response_cookies(response)[config.SESSION_COOKIE_NAME]
    assert store.read(sid).get('user') is None
    assert store.pop_flashes(sid) == [{'category': 'error', 'message': INVALID_CREDENTIALS_MESSAGE}]


def test_login_requires_both_fields(db, store, make_request, response_cookies) -> None:
    response = _login(make_request, db, store, '  ', '')

    sid = response_cookies(response)[config.SESSION_COOKIE_NAME]
    assert store.pop_flashes(sid) == [{'category': 'error', 'message': 'Enter your email and password.'}]


def test_login_page_consumes_flashes(store, make_request) -> None:
    sid = store.create({'flash': [{'category': 'error', 'message': 'Authentication required.'}]})
    request = make_request(sid)

    first = auth_routes.login_page(request=request, store=store, current_user=None)
    second = auth_routes.login_page(request=request, store=store, current_user=None)

    assert first['flash'] == [{'category': 'error', 'message': 'Authentication required.'}]
    assert second['flash'] == []


def test_logout_destroys_session(admin, db, store, make_request, response_cookies) -> None:
    login_response = _login(make_request, db, store, 'admin@example.com', 'adminpass')
    sid = response_cookies(login_response)[config.SESSION_COOKIE_NAME]
    request = make_request(sid, method='POST')
    current_user = require_user(request, store)

    response = auth_routes.logout(request=request, current_user=current_user, store=store)

    assert response.status_code == 303
    assert response.headers['location'] == '/login'
    assert store.read(sid) is None
    assert 'max-age=0' in response.headers['set-cookie'].lower()
    with pytest.raises(AuthenticationRequired):
        require_user(make_request(sid), store)
