import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.auth.dependencies import get_session_store, require_user
from tutor_admin.auth.flash import flash, redirect_with_flash
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.database import get_db
from tutor_admin.models.student import Student
from tutor_admin.routes.pages import get_student_or_404, page_context
from tutor_admin.schemas import SessionUser, StudentForm, StudentResponse, first_error_message
from tutor_admin.uploads import UploadRejected, UploadStore, get_upload_store

router = APIRouter(tags=['students'])

logger = logging.getLogger(__name__)


def save_with_photo(
    uploads: UploadStore,
    photo: UploadFile | None,
    save: Callable[[str | None], Student],
) -> tuple[Student, str | None]:
    """Run ``save`` with the stored photo name.

    A rejected photo does not block the student: ``save`` runs again without it
    and the rejection message is returned for the form to show.
    """
    try:
        with uploads.receive_optional(photo) as photo_name:
            return save(photo_name), None
    except UploadRejected as exc:
        return save(None), exc.message


def build_student_form(
    full_name: str,
    age: str,
    phone: str,
    email: str,
    level: str,
    paid_until: str,
) -> StudentForm:
    return StudentForm(
        full_name=full_name,
        age=age,
        phone=phone,
        email=email,
        level=level,
        paid_until=paid_until,
    )


@router.get('/students')
def list_students(
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    students = [StudentResponse.model_validate(student) for student in repository.list_students(db)]
    return page_context(request, store, 'Students', current_user, students=students)


@router.get('/students/add')
def add_student_page(
    request: Request,
    current_user: SessionUser = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
):
    return page_context(request, store, 'Add student', current_user)


@router.post('/students/add')
def add_student(
    request: Request,
    full_name: str = Form(''),
    age: str = Form(''),
    phone: str = Form(''),
    email: str = Form(''),
    level: str = Form(''),
    paid_until: str = Form(''),
    photo: UploadFile | None = File(None),
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    try:
        form = build_student_form(full_name, age, phone, email, level, paid_until)
    except ValidationError as exc:
        return redirect_with_flash(request, store, '/students/add', 'error', first_error_message(exc))

    student, photo_error = save_with_photo(
        uploads,
        photo,
        lambda photo_name: repository.create_student(form, photo_name, db),
    )
    logger.info('Student %s added by %s', student.id, current_user.email)

    response = RedirectResponse(url='/students', status_code=status.HTTP_303_SEE_OTHER)
    if photo_error:
        flash(request, response, store, 'warning', f'Photo not saved: {photo_error}')
    flash(request, response, store, 'success', 'Student added.')
    return response


@router.get('/students/{student_id}')
def student_detail(
    student_id: int,
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    student = get_student_or_404(student_id, db)
    notes = repository.list_notes_for_student(student.id, db)
    return page_context(
        request,
        store,
        student.full_name,
        current_user,
        student=StudentResponse.model_validate(student),
        notes=notes,
    )


@router.get('/students/{student_id}/edit')
def edit_student_page(
    student_id: int,
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    student = get_student_or_404(student_id, db)
    return page_context(
        request,
        store,
        'Edit student',
        current_user,
        student=StudentResponse.model_validate(student),
    )


@router.post('/students/{student_id}/edit')
def edit_student(
    student_id: int,
    request: Request,
    full_name: str = Form(''),
    age: str = Form(''),
    phone: str = Form(''),
    email: str = Form(''),
    level: str = Form(''),
    paid_until: str = Form(''),
    photo: UploadFile | None = File(None),
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    student = get_student_or_404(student_id, db)

    try:
        form = build_student_form(full_name, age, phone, email, level, paid_until)
    except ValidationError as exc:
        return redirect_with_flash(
            request, store, f'/students/{student.id}/edit', 'error', first_error_message(exc)
        )

    _, photo_error = save_with_photo(
        uploads,
        photo,
        lambda photo_name: repository.update_student(student, form, photo_name, db),
    )
    logger.info('Student %s updated by %s', student.id, current_user.email)

    response = RedirectResponse(url=f'/students/{student.id}', status_code=status.HTTP_303_SEE_OTHER)
    if photo_error:
        flash(request, response, store, 'warning', f'Photo not saved: {photo_error}')
    flash(request, response, store, 'success', 'Student updated.')
    return response


@router.delete('/students/{student_id}')
@router.post('/students/{student_id}/delete')
def delete_student(
    student_id: int,
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    student = get_student_or_404(student_id, db)
    note_count = repository.delete_student(student, db)
    logger.info('Student %s and %s notes deleted by %s', student_id, note_count, current_user.email)
    return redirect_with_flash(request, store, '/students', 'info', 'Student deleted.')
