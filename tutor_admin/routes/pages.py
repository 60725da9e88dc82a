from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.auth.flash import consume_flashes
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.models.student import Student
from tutor_admin.schemas import SessionUser


def page_context(
    request: Request,
    store: SessionStore,
    title: str,
    current_user: SessionUser | None = None,
    **data,
) -> dict:
    """Everything a template needs to render a page; pending flashes are consumed here."""
    return {
        'title': title,
        'flash': consume_flashes(request, store),
        'current_user': current_user,
        **data,
    }


def get_student_or_404(student_id: int, db: Session) -> Student:
    student = repository.get_student(student_id, db)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Student not found.')
    return student
