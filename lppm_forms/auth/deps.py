from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lppm_forms.core.security import verify_token

bearer = HTTPBearer(auto_error=False)

_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def get_current_admin(credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> str:
    """Username carried by a valid admin token.

    Tokens are stateless: only the signature and age are checked, the store
    is not consulted.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Token tidak ditemukan", headers=_CHALLENGE)
    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("username"):
        raise HTTPException(status_code=401, detail="Token tidak valid atau kedaluwarsa", headers=_CHALLENGE)
    return payload["username"]
