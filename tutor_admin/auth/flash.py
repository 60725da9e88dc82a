from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse

from tutor_admin.auth.sessions import FLASH_KEY, SessionStore, session_id_from, set_session_cookie


def flash(request: Request, response: Response, store: SessionStore, category: str, message: str) -> None:
    """Queue a one-shot notice for the next page this client renders.

    Clients without a live session get an anonymous one carrying only the queue.
    """
    if store.push_flash(session_id_from(request), category, message):
        return
    sid = store.create({FLASH_KEY: [{'category': category, 'message': message}]})
    set_session_cookie(response, sid, store)


def redirect_with_flash(
    request: Request,
    store: SessionStore,
    url: str,
    category: str,
    message: str,
) -> RedirectResponse:
    response = RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)
    flash(request, response, store, category, message)
    return response


def consume_flashes(request: Request, store: SessionStore) -> list[dict]:
    return store.pop_flashes(session_id_from(request))
