from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import customer_service
from ..errors import http_error

router = APIRouter(prefix="/admin/customers", tags=["customers"])


@router.get("", response_model=schemas.CustomerList)
def list_customers(
    search: str | None = None,
    customer_type: str | None = Query(default=None, alias="type", pattern="^(registered|guest)$"),
    sort_by: str = "total_bookings",
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    try:
        items, total = customer_service.list_customers(
            db,
            search=search,
            customer_type=customer_type,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return schemas.CustomerList(
        customers=[schemas.CustomerListItem.model_validate(item) for item in items],
        total=total,
    )


@router.get("/{customer_id}", response_model=schemas.CustomerSummary)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    try:
        summary = customer_service.get_customer_summary(db, customer_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    return schemas.CustomerSummary.model_validate(summary, from_attributes=True)


@router.get("/{customer_id}/notes", response_model=list[schemas.CustomerNote])
def list_notes(
    customer_id: str,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    return customer_service.list_notes(db, customer_id)


@router.post(
    "/{customer_id}/notes",
    response_model=schemas.CustomerNote,
    status_code=status.HTTP_201_CREATED,
)
def add_note(
    customer_id: str,
    payload: schemas.CustomerNoteCreate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        return customer_service.add_note(db, customer_id, payload.note_text, admin.login)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.patch("/{customer_id}/notes/{note_id}", response_model=schemas.CustomerNote)
def update_note(
    customer_id: str,
    note_id: int,
    payload: schemas.CustomerNoteUpdate,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.editor),
):
    try:
        return customer_service.update_note(db, customer_id, note_id, payload.note_text)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.delete("/{customer_id}/notes/{note_id}")
def delete_note(
    customer_id: str,
    note_id: int,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.editor),
):
    try:
        customer_service.delete_note(db, customer_id, note_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted"}
