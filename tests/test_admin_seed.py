from barberslot.db import models
from barberslot.services.admin import authenticate, ensure_admin_exists
from barberslot.core import security


def test_creates_default_admin(db_session):
    ensure_admin_exists(db_session, "owner", "strong_password")

    created = db_session.query(models.AdminUser).filter_by(login="owner").one()

    assert created.role == models.AdminRole.admin
    assert security.verify_password("strong_password", created.password_hash)


def test_resets_password_and_role_for_existing_admin(db_session):
    admin = ensure_admin_exists(db_session, "owner", "old_password")
    admin.role = models.AdminRole.viewer
    db_session.commit()

    ensure_admin_exists(db_session, "owner", "new_password")

    admins = db_session.query(models.AdminUser).filter_by(login="owner").all()
    assert len(admins) == 1
    assert admins[0].role == models.AdminRole.admin
    assert security.verify_password("new_password", admins[0].password_hash)


def test_authenticate(db_session):
    ensure_admin_exists(db_session, "owner", "secret")

    assert authenticate(db_session, "owner", "secret").login == "owner"
    assert authenticate(db_session, "owner", "wrong") is None
    assert authenticate(db_session, "nobody", "secret") is None
