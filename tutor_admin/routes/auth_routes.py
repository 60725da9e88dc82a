import logging

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from tutor_admin.auth.credentials import InvalidCredentials, verify_credentials
from tutor_admin.auth.dependencies import LOGIN_URL, get_optional_user, get_session_store, require_user
from tutor_admin.auth.flash import redirect_with_flash
from tutor_admin.auth.sessions import (
    FLASH_KEY,
    USER_KEY,
    SessionStore,
    clear_session_cookie,
    session_id_from,
    set_session_cookie,
)
from tutor_admin.database import get_db
from tutor_admin.routes.pages import page_context
from tutor_admin.schemas import SessionUser

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


@router.get('/login')
def login_page(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    current_user: SessionUser | None = Depends(get_optional_user),
):
    return page_context(request, store, 'Sign in', current_user)


@router.post('/login')
def login(
    request: Request,
    email: str = Form(''),
    password: str = Form(''),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    if not email.strip() or not password:
        return redirect_with_flash(request, store, LOGIN_URL, 'error', 'Enter your email and password.')

    try:
        user = verify_credentials(email, password, db)
    except InvalidCredentials as exc:
        return redirect_with_flash(request, store, LOGIN_URL, 'error', exc.message)

    # A fresh id on every sign-in; the anonymous session (if any) is dropped.
    store.destroy(session_id_from(request))
    sid = store.create({
        USER_KEY: user.model_dump(),
        FLASH_KEY: [{'category': 'success', 'message': 'Signed in.'}],
    })

    response = RedirectResponse(url='/', status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, sid, store)
    logger.info('User %s signed in', user.email)
    return response


@router.post('/logout')
def logout(
    request: Request,
    current_user: SessionUser = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
):
    store.destroy(session_id_from(request))
    response = RedirectResponse(url=LOGIN_URL, status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    logger.info('User %s signed out', current_user.email)
    return response
