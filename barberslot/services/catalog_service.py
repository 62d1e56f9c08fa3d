from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..core.exceptions import NotFound
from ..db import models, schemas

logger = logging.getLogger(__name__)


def list_services(db: Session, *, include_inactive: bool = False) -> list[models.Service]:
    query = db.query(models.Service)
    if not include_inactive:
        query = query.filter(models.Service.is_active.is_(True))
    return query.order_by(models.Service.display_order, models.Service.name).all()


def get_service(db: Session, service_id: int) -> models.Service:
    service = db.get(models.Service, service_id)
    if not service:
        raise NotFound("Service not found")
    return service


def create_service(db: Session, payload: schemas.ServiceCreate) -> models.Service:
    service = models.Service(**payload.model_dump())
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info("Service created", extra={"service_id": service.id})
    return service


def update_service(db: Session, service_id: int, payload: schemas.ServiceUpdate) -> models.Service:
    service = get_service(db, service_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(service, key, value)
    db.commit()
    db.refresh(service)
    return service
