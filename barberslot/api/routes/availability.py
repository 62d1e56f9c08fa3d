from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import schemas
from ...services import availability_service
from ..errors import http_error

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=list[schemas.DaySummary])
def availability_range(
    start_date: date,
    end_date: date,
    service_id: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        days = availability_service.availability_range(db, start_date, end_date, service_id=service_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    return [schemas.DaySummary.model_validate(day) for day in days]


@router.get("/{day}", response_model=schemas.DayAvailability)
def day_availability(
    day: str,
    service_id: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        result = availability_service.day_availability(db, day, service_id=service_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    return schemas.DayAvailability.model_validate(result)
