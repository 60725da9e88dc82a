from fastapi import Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from tutor_admin.auth.flash import redirect_with_flash
from tutor_admin.auth.sessions import USER_KEY, SessionStore, session_id_from
from tutor_admin.schemas import SessionUser

LOGIN_URL = '/login'
AUTHENTICATION_REQUIRED_MESSAGE = 'Authentication required.'


class AuthenticationRequired(Exception):
    pass


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_optional_user(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionUser | None:
    payload = store.read(session_id_from(request))
    if not payload or not payload.get(USER_KEY):
        return None
    try:
        return SessionUser.model_validate(payload[USER_KEY])
    except ValidationError:
        return None


def require_user(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionUser:
    user = get_optional_user(request, store)
    if user is None:
        raise AuthenticationRequired()
    return user


def authentication_required_handler(request: Request, _exc: AuthenticationRequired) -> RedirectResponse:
    store = get_session_store(request)
    return redirect_with_flash(request, store, LOGIN_URL, 'error', AUTHENTICATION_REQUIRED_MESSAGE)
