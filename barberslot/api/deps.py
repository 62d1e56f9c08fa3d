from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session
from ..core.security import decode_access_token
from ..db.session import get_db
from ..db.models import AdminUser


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_current_admin(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> AdminUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise credentials_exception from exc
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise credentials_exception
    admin = db.get(AdminUser, int(subject))
    if admin is None:
        raise credentials_exception
    return admin


def get_customer_id(
    token: Annotated[str | None, Depends(optional_oauth2_scheme)],
) -> str | None:
    """Identity-provider subject of a signed-in customer; guests send no token."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    # staff tokens carry a role and never stand for a customer
    if payload.get("role"):
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


def require_roles(*roles: str):
    def dependency(admin: Annotated[AdminUser, Depends(get_current_admin)]) -> AdminUser:
        if admin.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return admin

    return dependency


# Shorthands used by the admin routers
staff = require_roles("admin", "manager", "viewer")
editor = require_roles("admin", "manager")
owner = require_roles("admin")
