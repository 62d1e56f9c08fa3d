from functools import lru_cache
import os
from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="Europe/Dublin", alias="TIMEZONE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="barberslot", alias="POSTGRES_DB")
    postgres_user: str = Field(default="barberslot", alias="POSTGRES_USER")
    postgres_password: str = Field(default="barberslot", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=1440, alias="JWT_EXPIRE_MIN")

    default_admin_login: str = Field(default="admin", alias="DEFAULT_ADMIN_LOGIN")
    default_admin_password: str = Field(default="admin123", alias="DEFAULT_ADMIN_PASSWORD")

    notifier_webhook_url: str = Field(default="", alias="NOTIFIER_WEBHOOK_URL")
    notifier_timeout_seconds: float = Field(default=10.0, alias="NOTIFIER_TIMEOUT_SECONDS")

    slot_lock_timeout_seconds: float = Field(default=3.0, alias="SLOT_LOCK_TIMEOUT_SECONDS")
    require_confirmation: bool = Field(default=False, alias="REQUIRE_CONFIRMATION")

    # Fallbacks for rows missing from the settings table
    capacity_mon_wed: int = Field(default=2, alias="CAPACITY_MON_WED")
    capacity_thu_sun: int = Field(default=3, alias="CAPACITY_THU_SUN")
    booking_window_days: int = Field(default=90, alias="BOOKING_WINDOW_DAYS")
    same_day_cutoff_hours: int = Field(default=2, alias="SAME_DAY_CUTOFF_HOURS")
    reminder_hours_before: int = Field(default=2, alias="REMINDER_HOURS_BEFORE")
    time_slots: str = Field(
        default="10:00,10:40,11:20,12:00,12:40,13:20,14:00,14:20",
        alias="TIME_SLOTS",
    )
    default_slot_duration: int = Field(default=40, alias="DEFAULT_SLOT_DURATION")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
