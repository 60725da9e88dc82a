from datetime import datetime

from pydantic import BaseModel, field_validator


MAX_FULL_NAME_LENGTH = 200
MAX_AGE = 150


class SessionUser(BaseModel):
    """The authenticated-user summary kept in a session payload."""
    id: int
    name: str | None = None
    email: str
    role: str


class StudentForm(BaseModel):
    """Student fields as submitted by the add, edit and registration forms.

    Blank optional fields become ``None`` so that "unset" stays distinguishable
    from an empty string in storage.
    """
    full_name: str
    age: int | None = None
    phone: str | None = None
    email: str | None = None
    level: str | None = None
    paid_until: str | None = None

    @field_validator('full_name', mode='before')
    @classmethod
    def validate_full_name(cls, value: str | None) -> str:
        normalized = (value or '').strip()
        if not normalized:
            raise ValueError('Full name is required.')
        if len(normalized) > MAX_FULL_NAME_LENGTH:
            raise ValueError(f'Full name must be {MAX_FULL_NAME_LENGTH} characters or fewer.')
        return normalized

    @field_validator('age', mode='before')
    @classmethod
    def validate_age(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if not value.isdigit():
                raise ValueError('Age must be a whole number.')
            value = int(value)
        if isinstance(value, int) and not 0 <= value <= MAX_AGE:
            raise ValueError(f'Age must be between 0 and {MAX_AGE}.')
        return value

    @field_validator('phone', 'email', 'level', 'paid_until', mode='before')
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = str(value).strip()
        return normalized or None


class StudentResponse(BaseModel):
    id: int
    full_name: str
    age: int | None = None
    phone: str | None = None
    email: str | None = None
    level: str | None = None
    photo: str | None = None
    paid_until: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class NoteResponse(BaseModel):
    id: int
    student_id: int
    author_id: int | None = None
    author_name: str | None = None
    content: str
    attachment: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class FlashMessage(BaseModel):
    category: str
    message: str


def first_error_message(exc) -> str:
    """Human-readable message of the first error in a pydantic ``ValidationError``."""
    errors = exc.errors()
    if not errors:
        return 'Invalid input.'
    message = errors[0].get('msg', 'Invalid input.')
    return message.removeprefix('Value error, ')
