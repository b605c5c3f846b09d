import bcrypt

# bcrypt ignores input past 72 bytes and newer releases reject it outright.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed or empty stored hash.
        return False
