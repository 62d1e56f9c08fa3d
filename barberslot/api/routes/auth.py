from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...core import security
from ...db.session import get_db
from ...db import models
from ...config import get_settings
from ...services import admin as admin_service
from .. import deps


router = APIRouter(prefix="/auth", tags=["auth"])


class AdminProfile(BaseModel):
    id: int
    login: str
    role: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AdminProfile


def _profile(admin: models.AdminUser) -> AdminProfile:
    return AdminProfile(id=admin.id, login=admin.login, role=models.AdminRole(admin.role).value)


@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    admin = admin_service.authenticate(db, form_data.username, form_data.password)
    if admin is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    settings = get_settings()
    profile = _profile(admin)
    token = security.create_access_token(
        {"sub": str(admin.id), "role": profile.role},
        timedelta(minutes=settings.jwt_expire_min),
    )
    admin.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return TokenResponse(access_token=token, user=profile)


@router.get("/me", response_model=AdminProfile)
def me(current: models.AdminUser = Depends(deps.get_current_admin)):
    return _profile(current)
