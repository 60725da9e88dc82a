import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.auth.dependencies import get_session_store, require_user
from tutor_admin.auth.flash import redirect_with_flash
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.database import get_db
from tutor_admin.routes.pages import get_student_or_404, page_context
from tutor_admin.schemas import SessionUser, StudentResponse
from tutor_admin.uploads import UploadRejected, UploadStore, get_upload_store

router = APIRouter(tags=['notes'])

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 10_000


@router.get('/students/{student_id}/notes/add')
def add_note_page(
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
        'Add note',
        current_user,
        student=StudentResponse.model_validate(student),
    )


@router.post('/students/{student_id}/notes/add')
def add_note(
    student_id: int,
    request: Request,
    content: str = Form(''),
    attachment: UploadFile | None = File(None),
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    student = get_student_or_404(student_id, db)
    form_url = f'/students/{student.id}/notes/add'

    normalized = content.strip()
    if not normalized:
        return redirect_with_flash(request, store, form_url, 'error', 'Note text is required.')
    if len(normalized) > MAX_NOTE_LENGTH:
        return redirect_with_flash(
            request, store, form_url, 'error', f'Notes must be {MAX_NOTE_LENGTH} characters or fewer.'
        )

    try:
        with uploads.receive_optional(attachment) as attachment_name:
            note = repository.create_note(student.id, normalized, attachment_name, current_user.id, db)
    except UploadRejected as exc:
        return redirect_with_flash(request, store, form_url, 'error', exc.message)

    logger.info('Note %s added to student %s by %s', note.id, student.id, current_user.email)
    return redirect_with_flash(request, store, f'/students/{student.id}', 'success', 'Note added.')


@router.delete('/notes/{note_id}')
@router.post('/notes/{note_id}/delete')
def delete_note(
    note_id: int,
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    note = repository.get_note(note_id, db)
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Note not found.')

    student_id = note.student_id
    repository.delete_note(note, db)
    logger.info('Note %s deleted by %s', note_id, current_user.email)
    return redirect_with_flash(request, store, f'/students/{student_id}', 'info', 'Note deleted.')
