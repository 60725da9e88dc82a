import os

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from tutor_admin import repository
from tutor_admin.auth.dependencies import get_session_store, require_user
from tutor_admin.auth.sessions import SessionStore
from tutor_admin.database import get_db
from tutor_admin.routes.pages import page_context
from tutor_admin.schemas import SessionUser, StudentResponse
from tutor_admin.uploads import UploadStore, get_upload_store

router = APIRouter(tags=['dashboard'])


@router.get('/')
def dashboard(
    request: Request,
    current_user: SessionUser = Depends(require_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    # Counted on every request, nothing is cached.
    return page_context(
        request,
        store,
        'Dashboard',
        current_user,
        total_students=repository.count_students(db),
        total_notes=repository.count_notes(db),
        recent=[StudentResponse.model_validate(student) for student in repository.recent_students(db)],
    )


@router.get('/uploads/{storage_name}')
def download_upload(
    storage_name: str,
    current_user: SessionUser = Depends(require_user),
    uploads: UploadStore = Depends(get_upload_store),
):
    del current_user
    try:
        path = uploads.path_for(storage_name)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='File not found.') from exc

    if not os.path.isfile(path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='File not found.')

    return FileResponse(path)
