from sqlalchemy import func
from sqlalchemy.orm import Session

from tutor_admin.auth.credentials import normalize_email
from tutor_admin.auth.security import hash_password
from tutor_admin.models.note import Note
from tutor_admin.models.student import Student
from tutor_admin.models.user import User
from tutor_admin.schemas import NoteResponse, StudentForm

RECENT_STUDENTS_LIMIT = 5
DEFAULT_ROLE = 'teacher'


# Users

def get_user_by_email(email: str, db: Session) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(name: str | None, email: str, password: str, db: Session, role: str = DEFAULT_ROLE) -> User:
    user = User(
        name=name,
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=role or DEFAULT_ROLE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_user_password(user: User, password: str, db: Session) -> None:
    user.password_hash = hash_password(password)
    db.commit()


def count_users(db: Session) -> int:
    return db.query(func.count(User.id)).scalar() or 0


# Students

def list_students(db: Session) -> list[Student]:
    return db.query(Student).order_by(Student.full_name.asc(), Student.id.asc()).all()


def recent_students(db: Session, limit: int = RECENT_STUDENTS_LIMIT) -> list[Student]:
    return db.query(Student).order_by(Student.created_at.desc(), Student.id.desc()).limit(limit).all()


def get_student(student_id: int, db: Session) -> Student | None:
    return db.get(Student, student_id)


def count_students(db: Session) -> int:
    return db.query(func.count(Student.id)).scalar() or 0


def _apply_form(student: Student, form: StudentForm) -> None:
    student.full_name = form.full_name
    student.age = form.age
    student.phone = form.phone
    student.email = form.email
    student.level = form.level
    student.paid_until = form.paid_until


def create_student(form: StudentForm, photo: str | None, db: Session) -> Student:
    student = Student(photo=photo)
    _apply_form(student, form)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def update_student(student: Student, form: StudentForm, photo: str | None, db: Session) -> Student:
    """Whole-row replacement of the editable fields; the photo is kept unless a new one is given."""
    _apply_form(student, form)
    if photo is not None:
        student.photo = photo
    db.commit()
    db.refresh(student)
    return student


def delete_student(student: Student, db: Session) -> int:
    """Delete a student and all of its notes in one transaction. Returns the note count."""
    # Reload so notes added since the student was fetched are cascaded too.
    db.expire(student, ['notes'])
    note_count = len(student.notes)
    db.delete(student)
    db.commit()
    return note_count


def register_student(form: StudentForm, photo: str | None, initial_note: str | None, db: Session) -> Student:
    student = Student(photo=photo)
    _apply_form(student, form)
    db.add(student)

    content = (initial_note or '').strip()
    if content:
        student.notes.append(Note(content=content, author_id=None))

    db.commit()
    db.refresh(student)
    return student


# Notes

def list_notes_for_student(student_id: int, db: Session) -> list[NoteResponse]:
    rows = (
        db.query(Note, User.name)
        .outerjoin(User, Note.author_id == User.id)
        .filter(Note.student_id == student_id)
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )
    return [
        NoteResponse(
            id=note.id,
            student_id=note.student_id,
            author_id=note.author_id,
            author_name=author_name,
            content=note.content,
            attachment=note.attachment,
            created_at=note.created_at,
        )
        for note, author_name in rows
    ]


def get_note(note_id: int, db: Session) -> Note | None:
    return db.get(Note, note_id)


def create_note(student_id: int, content: str, attachment: str | None, author_id: int | None, db: Session) -> Note:
    note = Note(student_id=student_id, content=content, attachment=attachment, author_id=author_id)
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def delete_note(note: Note, db: Session) -> None:
    db.delete(note)
    db.commit()


def count_notes(db: Session) -> int:
    return db.query(func.count(Note.id)).scalar() or 0
