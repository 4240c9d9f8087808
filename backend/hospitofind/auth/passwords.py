"""bcrypt password hashing."""
import logging

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error("telemetry password_verify_error error=%s", str(e))
        return False
