from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api import deps
from app.models import InstagramPost
from app.schemas.instagram import MessageResponse, ScrapeRequest
from app.services.instagram.persistence import set_active_job
from app.services.instagram.scrape import ScrapeLaunchError, ScrapeLauncher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scrape"])


@router.post("/scrape", response_model=MessageResponse)
def trigger_scrape(
    payload: ScrapeRequest,
    db: Session = Depends(deps.get_db),
    launcher: ScrapeLauncher = Depends(deps.get_scrape_launcher),
) -> MessageResponse:
    if not payload.post_url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post URL is required.")

    if payload.post_id is not None and db.get(InstagramPost, payload.post_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")

    try:
        launcher.launch(payload.post_url, payload.post_id)
    except ScrapeLaunchError as exc:
        logger.error(
            "Error launching %s scrape for %s: %s",
            launcher.name,
            payload.post_url,
            exc.body if exc.body is not None else exc,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to launch scraping job."
        ) from exc

    try:
        set_active_job(db, payload.post_id, payload.post_url)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Launched scrape for %s but could not record the active job", payload.post_url)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to record scraping job."
        ) from exc

    logger.info("Scraping job started for %s (post_id=%s, backend=%s)", payload.post_url, payload.post_id, launcher.name)
    return MessageResponse(message=f"Scraping job started for {payload.post_url}.")
