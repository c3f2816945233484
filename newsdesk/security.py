import bcrypt

from newsdesk.config import settings

# bcrypt only looks at the first 72 bytes; truncate explicitly so hashing
# and verification always agree.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of *password* (rounds from settings.BCRYPT_ROUNDS)."""
    if not password or not password.strip():
        raise ValueError("Password cannot be empty")
    password_bytes = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check *password* against a stored hash; malformed or empty input is a mismatch."""
    if not password or not hashed_password:
        return False
    password_bytes = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash (e.g. a legacy plaintext row).
        return False
