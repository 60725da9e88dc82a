import pytest

from tutor_admin import repository
from tutor_admin.auth.credentials import INVALID_CREDENTIALS_MESSAGE, InvalidCredentials, verify_credentials
from tutor_admin.auth.security import check_password, hash_password


def test_hash_password_is_salted_and_never_plaintext() -> None:
    first = hash_password('adminpass')
    second = hash_password('adminpass')

    assert first != second
    assert 'adminpass' not in first
    assert check_password('adminpass', first)
    assert check_password('adminpass', second)
    assert not check_password('wrong', first)


def test_check_password_treats_malformed_hash_as_mismatch() -> None:
    assert not check_password('adminpass', 'not-a-bcrypt-hash')


def test_verify_credentials_returns_session_summary(db) -> None:
    user = repository.create_user('Marta', 'marta@example.com', 'secret-1', db)

    summary = verify_credentials('  MARTA@example.com ', 'secret-1', db)

    assert summary.model_dump() == {'id': user.id, 'name': 'Marta', 'email': 'marta@example.com', 'role': 'teacher'}


def test_wrong_password_and_unknown_email_fail_identically(db) -> None:
    repository.create_user('Marta', 'marta@example.com', 'secret-1', db)

    with pytest.raises(InvalidCredentials) as wrong_password:
        verify_credentials('marta@example.com', 'secret-2', db)
    with pytest.raises(InvalidCredentials) as unknown_email:
        verify_credentials('nobody@example.com', 'secret-1', db)

    assert wrong_password.value.message == unknown_email.value.message == INVALID_CREDENTIALS_MESSAGE
    assert str(wrong_password.value) == str(unknown_email.value)


def test_unknown_email_still_runs_a_password_comparison(db, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_check(plain: str, hashed: str) -> bool:
        calls.append(plain)
        return False

    monkeypatch.setattr('tutor_admin.auth.credentials.check_password', fake_check)

    with pytest.raises(InvalidCredentials):
        verify_credentials('nobody@example.com', 'guess', db)

    assert calls == ['guess']
