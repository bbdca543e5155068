from __future__ import annotations

import logging
from typing import Sequence

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api import deps
from app.models import InstagramPost
from app.schemas.instagram import PostCreate, PostCreatedResponse, PostRead
from app.services.instagram.persistence import create_post, list_posts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=list[PostRead])
def get_posts(db: Session = Depends(deps.get_db)) -> Sequence[InstagramPost]:
    try:
        return list_posts(db)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch posts")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch posts.") from exc


@router.post("", response_model=PostCreatedResponse, status_code=status.HTTP_201_CREATED)
def add_post(payload: PostCreate, db: Session = Depends(deps.get_db)) -> PostCreatedResponse:
    if not payload.post_url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post URL is required.")

    try:
        post = create_post(db, payload.post_url, payload.post_date)
        db.commit()
        db.refresh(post)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to add post %s", payload.post_url)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add post.") from exc

    logger.info("Added post id=%s url=%s", post.id, post.post_url)
    return PostCreatedResponse(message="Post added successfully!", post=PostRead.model_validate(post))
