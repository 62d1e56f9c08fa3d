from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import catalog_service
from ..errors import http_error

router = APIRouter(tags=["services"])


@router.get("/services", response_model=list[schemas.Service])
def list_services(db: Session = Depends(get_db)):
    return catalog_service.list_services(db)


@router.get("/admin/services", response_model=list[schemas.Service])
def list_all_services(
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    return catalog_service.list_services(db, include_inactive=True)


@router.post("/admin/services", response_model=schemas.Service, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: schemas.ServiceCreate,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.owner),
):
    return catalog_service.create_service(db, payload)


@router.patch("/admin/services/{service_id}", response_model=schemas.Service)
def update_service(
    service_id: int,
    payload: schemas.ServiceUpdate,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.owner),
):
    try:
        return catalog_service.update_service(db, service_id, payload)
    except BookingError as exc:
        raise http_error(exc) from exc
