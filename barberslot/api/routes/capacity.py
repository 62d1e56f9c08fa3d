from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service, capacity_console, override_service
from ..errors import http_error

router = APIRouter(prefix="/admin/capacity-overrides", tags=["capacity"])


def _applied_or_conflict(result: capacity_console.OverrideSaveResult) -> models.CapacityOverride:
    if not result.applied:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Existing bookings exceed the new capacity",
                "impact": schemas.CapacityImpact.model_validate(result.impact).model_dump(),
            },
        )
    return result.override


@router.get("", response_model=list[schemas.CapacityOverride])
def list_overrides(
    date_from: date | None = None,
    date_to: date | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    return override_service.list_overrides(
        db, date_from=date_from, date_to=date_to, include_inactive=include_inactive
    )


@router.post("/impact", response_model=schemas.CapacityImpact)
def check_impact(
    payload: schemas.CapacityImpactRequest,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    try:
        impact = booking_service.check_impact_of_capacity_change(
            db, payload.override_date, payload.capacity, payload.time_slot
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return schemas.CapacityImpact.model_validate(impact)


@router.get("/{override_id}", response_model=schemas.CapacityOverride)
def get_override(
    override_id: int,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    try:
        return override_service.get_override(db, override_id)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("", response_model=schemas.CapacityOverride, status_code=status.HTTP_201_CREATED)
def create_override(
    payload: schemas.CapacityOverrideCreate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        result = capacity_console.save_override(
            db,
            payload.override_date,
            payload.time_slot,
            payload.capacity,
            payload.is_active,
            acknowledge_conflict=payload.acknowledge_conflict,
            actor=admin.login,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return _applied_or_conflict(result)


@router.patch("/{override_id}", response_model=schemas.CapacityOverride)
def update_override(
    override_id: int,
    payload: schemas.CapacityOverrideUpdate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"acknowledge_conflict"})
    try:
        result = capacity_console.change_override(
            db,
            override_id,
            changes,
            acknowledge_conflict=payload.acknowledge_conflict,
            actor=admin.login,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return _applied_or_conflict(result)


@router.delete("/{override_id}")
def delete_override(
    override_id: int,
    acknowledge_conflict: bool = False,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        result = capacity_console.remove_override(
            db, override_id, acknowledge_conflict=acknowledge_conflict, actor=admin.login
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    _applied_or_conflict(result)
    return {
        "status": "deleted",
        "impact": schemas.CapacityImpact.model_validate(result.impact).model_dump(),
    }
