from datetime import datetime
from pydantic import BaseModel, Field


class ServiceBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)
    image_url: str | None = None
    duration: int = Field(default=40, gt=0)
    price: float | None = Field(default=None, ge=0)
    is_active: bool = True
    display_order: int = Field(default=0, ge=0)
    is_callout: bool = False


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    image_url: str | None = None
    duration: int | None = Field(default=None, gt=0)
    price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None
    display_order: int | None = Field(default=None, ge=0)
    is_callout: bool | None = None


class Service(ServiceBase):
    id: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True
