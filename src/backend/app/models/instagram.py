from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class InstagramPost(Base):
    __tablename__ = "instagram_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_url: Mapped[str] = mapped_column(Text, nullable=False)
    post_date: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    leads: Mapped[list["InstagramAgentLead"]] = relationship(back_populates="post")

    def __repr__(self) -> str:
        return f"<InstagramPost id={self.id} url={self.post_url}>"


class InstagramAgentLead(Base):
    __tablename__ = "instagram_agent_leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile_url: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("instagram_posts.id", ondelete="SET NULL"), index=True
    )
    last_updated: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    post: Mapped[Optional[InstagramPost]] = relationship(back_populates="leads")

    def __repr__(self) -> str:
        return f"<InstagramAgentLead username={self.username} post_id={self.post_id}>"


class ActiveScrapeJob(Base):
    """The single in-flight scrape, used to attribute webhook results to a post."""

    __tablename__ = "active_scrape_job"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[Optional[int]] = mapped_column(ForeignKey("instagram_posts.id", ondelete="CASCADE"))
    post_url: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
