from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...api import deps
from ...core.exceptions import BookingError
from ...db import models, schemas
from ...db.session import get_db
from ...services import capacity_console, settings_service
from ..errors import http_error

router = APIRouter(tags=["settings"])

_CAPACITY_KEYS = ("capacity_mon_wed", "capacity_thu_sun")


@router.get("/settings", response_model=schemas.ShopSettings)
def get_public_settings(db: Session = Depends(get_db)) -> schemas.ShopSettings:
    return schemas.ShopSettings(**settings_service.get_shop_settings(db))


@router.get("/admin/settings", response_model=schemas.ShopSettings)
def get_admin_settings(
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
) -> schemas.ShopSettings:
    return schemas.ShopSettings(**settings_service.get_shop_settings(db))


@router.patch("/admin/settings", response_model=schemas.ShopSettings)
def update_settings(
    payload: schemas.ShopSettingsUpdate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.owner),
) -> schemas.ShopSettings:
    values = payload.model_dump(exclude_unset=True, exclude={"acknowledge_conflict"})
    capacity_changes = {key: values.pop(key) for key in _CAPACITY_KEYS if values.get(key) is not None}
    try:
        # staged, committed together with the capacity change
        if values:
            settings_service.update_settings(db, values, commit=False)
        if capacity_changes:
            current = settings_service.get_schedule_settings(db)
            result = capacity_console.update_default_capacity(
                db,
                capacity_changes.get("capacity_mon_wed", current.capacity_mon_wed),
                capacity_changes.get("capacity_thu_sun", current.capacity_thu_sun),
                acknowledge_conflict=payload.acknowledge_conflict,
                actor=admin.login,
            )
            if not result.applied:
                db.rollback()
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={
                        "message": "Existing bookings exceed the new default capacity",
                        "conflicts": [
                            schemas.ConflictingDate.model_validate(conflict).model_dump(mode="json")
                            for conflict in result.conflicts
                        ],
                    },
                )
        else:
            db.commit()
    except BookingError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return schemas.ShopSettings(**settings_service.get_shop_settings(db))
