"""Password hashing"""
from werkzeug.security import check_password_hash, generate_password_hash


def get_password_hash(password: str) -> str:
    return generate_password_hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return check_password_hash(hashed_password, plain_password)
