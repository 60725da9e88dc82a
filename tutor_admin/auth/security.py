import bcrypt

from tutor_admin.core import config


def hash_password(plain: str, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or config.PASSWORD_SALT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode()


def check_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
