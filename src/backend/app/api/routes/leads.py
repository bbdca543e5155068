from __future__ import annotations

import csv
import io
import logging
from typing import Any, Sequence

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api import deps
from app.core.config import Settings
from app.models import InstagramAgentLead, InstagramPost
from app.schemas.instagram import LeadImportResponse, LeadRead
from app.services.instagram.persistence import list_leads, save_leads

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leads"])


def _parse_post_id(value: Any) -> int | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_leads_csv(content: bytes) -> list[dict[str, Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValueError("CSV file must be UTF-8 encoded.") from exc

    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []
    reader.fieldnames = [(name or "").strip() for name in reader.fieldnames]

    rows: list[dict[str, Any]] = []
    for row in reader:
        lead: dict[str, Any] = {key: value for key, value in row.items() if key}
        row_post_id = _parse_post_id(lead.pop("post_id", None))
        if row_post_id is not None:
            lead["post_id"] = row_post_id
        rows.append(lead)
    return rows


@router.get("/leads", response_model=list[LeadRead])
def get_leads(
    post_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(deps.get_db),
) -> Sequence[InstagramAgentLead]:
    try:
        return list_leads(db, post_id=post_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch leads")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch leads.") from exc


@router.post("/upload-leads", response_model=LeadImportResponse)
def upload_leads(
    file: UploadFile | None = File(default=None),
    post_id: int | None = Form(default=None),
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_app_settings),
) -> LeadImportResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded.")

    content = file.file.read()
    if not content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")

    try:
        rows = parse_leads_csv(content)
    except (ValueError, csv.Error) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unable to parse CSV: {exc}") from exc

    try:
        if post_id is not None and db.get(InstagramPost, post_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")
        result = save_leads(
            db, rows, post_id=post_id, on_conflict=settings.leads_on_conflict, allow_row_post_id=True
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error during CSV import of %s", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to import leads."
        ) from exc

    logger.info(
        "Imported %s: received=%s saved=%s skipped=%s",
        file.filename,
        result.received,
        result.saved,
        result.skipped,
    )
    return LeadImportResponse(message="CSV processed.", **result.to_dict())
