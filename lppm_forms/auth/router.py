from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from lppm_forms.core.config import settings
from lppm_forms.core.errors import require
from lppm_forms.core.security import sign_token, verify_password
from lppm_forms.db.models.admin import Admin
from lppm_forms.db.session import get_db

logger = logging.getLogger("lppm_forms.auth")

router = APIRouter(prefix="/api", tags=["auth"])


class LoginIn(BaseModel):
    username: str = ""
    password: str = ""


@router.post("/admin-login")
def login(body: LoginIn, db: Session = Depends(get_db)):
    username = body.username.strip()
    password = body.password.strip()
    require(bool(username and password), "Username dan password wajib diisi", 400)

    admin = db.scalar(select(Admin).where(Admin.username == username))
    ok = admin is not None and verify_password(password, admin.password_hash)
    if not ok:
        logger.info("Failed admin login for %r", username)
    require(ok, "Username atau password salah", 401)

    return {"token": sign_token({"username": admin.username}), "expiresIn": settings.TOKEN_MAX_AGE_SECONDS}
