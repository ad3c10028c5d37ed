from __future__ import annotations

from passlib.context import CryptContext
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from lppm_forms.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Signed bearer token for the admin panel (stateless, expiry is the only revocation)
serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="lppm_admin_token")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Malformed hash stored for the account
        return False


def sign_token(payload: dict) -> str:
    return serializer.dumps(payload)


def verify_token(token: str, max_age_seconds: int | None = None) -> dict | None:
    try:
        return serializer.loads(token, max_age=max_age_seconds or settings.TOKEN_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return None
