from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from boutique.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def hash_pin_code(pin: str) -> str:
    return pwd_context.hash(f"pin:{pin}")


def verify_pin_code(pin: str, pin_hash: str | None) -> bool:
    if not pin_hash:
        return False
    return pwd_context.verify(f"pin:{pin}", pin_hash)


def create_access_token(subject: str, role: str) -> str:
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "role": role, "type": "access", "iss": settings.issuer, "exp": expires_at}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm], issuer=settings.issuer)
