import io
import os

from fastapi import UploadFile

from tutor_admin.core import config
from tutor_admin.models.note import Note
from tutor_admin.models.student import Student
from tutor_admin.routes import register_routes


def _register(make_request, db, store, uploads, photo=None, **fields):
    data = {'full_name': 'Ana P.', 'age': '', 'phone': '', 'email': '', 'level': '', 'initial_note': ''}
    data.update(fields)
    return register_routes.register(
        request=make_request(method='POST'),
        photo=photo,
        db=db,
        store=store,
        uploads=uploads,
        **data,
    )


def test_register_creates_student_and_note_without_author(make_request, db, store, uploads) -> None:
    result = _register(make_request, db, store, uploads, initial_note='trial class')

    student = db.query(Student).one()
    notes = db.query(Note).all()
    assert result['student'] == {'id': student.id, 'full_name': 'Ana P.'}
    assert result['warnings'] == []
    assert student.photo is None
    assert len(notes) == 1
    assert notes[0].content == 'trial class'
    assert notes[0].author_id is None


def test_register_without_note_creates_no_note(make_request, db, store, uploads) -> None:
    _register(make_request, db, store, uploads, phone='555-0101')

    assert db.query(Student).one().phone == '555-0101'
    assert db.query(Note).count() == 0


def test_register_with_disallowed_photo_still_registers(make_request, db, store, uploads) -> None:
    photo = UploadFile(file=io.BytesIO(b'MZ'), filename='song.exe')

    result = _register(make_request, db, store, uploads, photo=photo)

    assert db.query(Student).one().photo is None
    assert result['warnings'] == ['Photo not saved: File type not allowed.']
    assert os.listdir(uploads.directory) == []


def test_register_with_photo(make_request, db, store, uploads) -> None:
    photo = UploadFile(file=io.BytesIO(b'\xff\xd8\xff'), filename='me.JPEG')

    _register(make_request, db, store, uploads, photo=photo)

    stored = db.query(Student).one().photo
    assert stored.endswith('.JPEG')
    assert os.path.isfile(uploads.path_for(stored))


def test_register_without_name_redirects_back(make_request, db, store, uploads, response_cookies) -> None:
    response = _register(make_request, db, store, uploads, full_name='')

    assert response.status_code == 303
    assert response.headers['location'] == '/register'
    assert db.query(Student).count() == 0
    sid = response_cookies(response)[config.SESSION_COOKIE_NAME]
    assert store.pop_flashes(sid) == [{'category': 'error', 'message': 'Full name is required.'}]


def test_register_page_is_public(make_request, store) -> None:
    page = register_routes.register_page(request=make_request(), store=store)

    assert page['title'] == 'Student registration'
    assert page['current_user'] is None
