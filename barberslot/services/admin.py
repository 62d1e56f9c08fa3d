import logging
from sqlalchemy.orm import Session

from ..core import security
from ..db import models

logger = logging.getLogger(__name__)


def ensure_admin_exists(session: Session, login: str, password: str) -> models.AdminUser:
    """Seed the shop owner's account, repairing its password and role if they drifted."""
    admin = session.query(models.AdminUser).filter_by(login=login).first()
    if admin is None:
        admin = models.AdminUser(
            login=login,
            password_hash=security.get_password_hash(password),
            role=models.AdminRole.admin,
        )
        session.add(admin)
        session.commit()
        logger.info("Seeded admin account '%s'", login)
        return admin

    changed = []
    if not security.verify_password(password, admin.password_hash):
        admin.password_hash = security.get_password_hash(password)
        changed.append("password")
    if admin.role != models.AdminRole.admin:
        admin.role = models.AdminRole.admin
        changed.append("role")
    if changed:
        session.commit()
        logger.info("Reset %s for admin account '%s'", ", ".join(changed), login)
    return admin


def authenticate(session: Session, login: str, password: str) -> models.AdminUser | None:
    admin = session.query(models.AdminUser).filter_by(login=login).first()
    if admin is None or not security.verify_password(password, admin.password_hash):
        return None
    return admin
