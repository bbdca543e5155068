from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.session import SessionLocal
from app.services.instagram.phantombuster import PhantomBusterClient
from app.services.instagram.scrape import ScrapeLauncher
from app.services.instagram.sheets import SheetsJobQueue


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_scrape_launcher() -> ScrapeLauncher:
    settings = get_settings()
    if settings.scrape_backend == "sheets":
        return SheetsJobQueue.from_settings(settings)
    return PhantomBusterClient.from_settings(settings)
