from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_LENGTH = 72


def hash_password(password: str) -> str:
    return _pwd_context.hash(password[:_MAX_PASSWORD_LENGTH])


def verify_password(password: str, password_hash: str) -> bool:
    return _pwd_context.verify(password[:_MAX_PASSWORD_LENGTH], password_hash)


def needs_rehash(password_hash: str) -> bool:
    return _pwd_context.needs_update(password_hash)
