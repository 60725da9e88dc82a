import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.auth.dependencies import get_session_store
from tutor_admin.auth.flash import redirect_with_flash
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.database import get_db
from tutor_admin.routes.pages import page_context
from tutor_admin.routes.student_routes import build_student_form, save_with_photo
from tutor_admin.schemas import first_error_message
from tutor_admin.uploads import UploadStore, get_upload_store

router = APIRouter(tags=['register'])

logger = logging.getLogger(__name__)

REGISTER_URL = '/register'


@router.get('/register')
def register_page(request: Request, store: SessionStore = Depends(get_session_store)):
    return page_context(request, store, 'Student registration')


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    full_name: str = Form(''),
    age: str = Form(''),
    phone: str = Form(''),
    email: str = Form(''),
    level: str = Form(''),
    initial_note: str = Form(''),
    photo: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    # Self-registration does not set "paid until"; staff fill it in later.
    try:
        form = build_student_form(full_name, age, phone, email, level, '')
    except ValidationError as exc:
        return redirect_with_flash(request, store, REGISTER_URL, 'error', first_error_message(exc))

    student, photo_error = save_with_photo(
        uploads,
        photo,
        lambda photo_name: repository.register_student(form, photo_name, initial_note, db),
    )
    logger.info('Student %s self-registered', student.id)

    return {
        'title': 'Thank you',
        'student': {'id': student.id, 'full_name': student.full_name},
        'warnings': [f'Photo not saved: {photo_error}'] if photo_error else [],
    }
