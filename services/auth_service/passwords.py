import bcrypt

# Verified against when the email is unknown, so both failure paths cost the same
_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt()).decode("utf-8")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    candidate = (password_hash or _DUMMY_HASH).encode("utf-8")
    try:
        ok = bcrypt.checkpw(password.encode("utf-8"), candidate)
    except ValueError:
        return False
    return ok and password_hash is not None
