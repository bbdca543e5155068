from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api import deps
from app.core.config import Settings
from app.models import InstagramPost
from app.schemas.instagram import LeadImportResponse
from app.services.instagram.normalize import extract_leads
from app.services.instagram.persistence import get_active_job, save_leads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])


async def _raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/leads", response_model=LeadImportResponse)
def receive_leads(
    body: bytes = Depends(_raw_body),
    post_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_app_settings),
) -> LeadImportResponse:
    logger.info("Phantom Buster webhook received")
    leads = extract_leads(body)

    if not leads:
        return LeadImportResponse(
            message="Webhook received, but contained no leads to process.",
            received=0,
            saved=0,
            skipped=0,
        )

    logger.info("Processing %s leads from webhook", len(leads))
    try:
        if post_id is not None:
            if db.get(InstagramPost, post_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")
        else:
            job = get_active_job(db)
            post_id = job.post_id if job else None

        result = save_leads(db, leads, post_id=post_id, on_conflict=settings.leads_on_conflict)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error during webhook import")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error processing webhook data."
        ) from exc

    logger.info(
        "Saved %s new leads (received=%s skipped=%s post_id=%s)",
        result.saved,
        result.received,
        result.skipped,
        post_id,
    )
    return LeadImportResponse(message="Webhook received and leads processed.", **result.to_dict())
