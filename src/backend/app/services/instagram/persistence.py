from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Literal, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.instagram import ActiveScrapeJob, InstagramAgentLead, InstagramPost
from app.services.instagram.normalize import lead_identity

logger = logging.getLogger(__name__)

ConflictPolicy = Literal["ignore", "touch"]

# Keeps IN lists and multi-row VALUES under driver parameter limits.
BATCH_SIZE = 300


@dataclass
class LeadSaveResult:
    received: int = 0
    saved: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"received": self.received, "saved": self.saved, "skipped": self.skipped}


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Lead upserts are not supported on the {dialect} dialect.")


def create_post(session: Session, post_url: str, post_date: Any = None) -> InstagramPost:
    post = InstagramPost(post_url=post_url, post_date=post_date)
    session.add(post)
    return post


def list_posts(session: Session) -> list[InstagramPost]:
    stmt = select(InstagramPost).order_by(InstagramPost.created_at.desc(), InstagramPost.id.desc())
    return list(session.execute(stmt).scalars().all())


def list_leads(session: Session, post_id: int | None = None) -> list[InstagramAgentLead]:
    stmt = select(InstagramAgentLead)
    if post_id is not None:
        stmt = stmt.where(InstagramAgentLead.post_id == post_id)
    stmt = stmt.order_by(InstagramAgentLead.last_updated.desc(), InstagramAgentLead.id.desc())
    return list(session.execute(stmt).scalars().all())


def _chunks(items: Sequence[Any], size: int = BATCH_SIZE) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _row_post_id(lead: dict[str, Any]) -> int | None:
    value = lead.get("post_id")
    # bool is an int subclass; a JSON true is not a post id.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _known_post_ids(session: Session, post_ids: set[int]) -> set[int]:
    known: set[int] = set()
    for chunk in _chunks(sorted(post_ids)):
        known.update(session.execute(select(InstagramPost.id).where(InstagramPost.id.in_(chunk))).scalars())
    return known


def save_leads(
    session: Session,
    leads: Iterable[dict[str, Any]],
    post_id: int | None = None,
    on_conflict: ConflictPolicy = "ignore",
    allow_row_post_id: bool = False,
) -> LeadSaveResult:
    """Upsert leads keyed on username.

    Leads without a username or profile URL are skipped. Every lead is
    attributed to ``post_id`` unless ``allow_row_post_id`` is set, in which
    case an integer ``post_id`` on the lead wins; leads pointing at a post
    that does not exist are skipped. ``ignore`` leaves an existing row
    untouched; ``touch`` bumps ``last_updated`` and fills a missing
    ``post_id``. The caller owns the transaction and must check that
    ``post_id`` exists.
    """
    result = LeadSaveResult()
    rows: dict[str, dict[str, Any]] = {}
    overrides: set[str] = set()
    for lead in leads:
        result.received += 1
        username, profile_url = lead_identity(lead)
        if not username or not profile_url:
            result.skipped += 1
            continue
        row_post_id = _row_post_id(lead) if allow_row_post_id else None
        if row_post_id is None:
            overrides.discard(username)
            row_post_id = post_id
        else:
            overrides.add(username)
        rows[username] = {"username": username, "profile_url": profile_url, "post_id": row_post_id}

    if overrides:
        known = _known_post_ids(session, {rows[username]["post_id"] for username in overrides})
        for username in overrides:
            if rows[username]["post_id"] not in known:
                logger.warning("Skipping lead %s: post %s does not exist", username, rows[username]["post_id"])
                del rows[username]
                result.skipped += 1

    if not rows:
        return result

    usernames = list(rows)
    existing: set[str] = set()
    for chunk in _chunks(usernames):
        existing.update(
            session.execute(select(InstagramAgentLead.username).where(InstagramAgentLead.username.in_(chunk))).scalars()
        )

    insert = _dialect_insert(session)
    for chunk in _chunks(list(rows.values())):
        stmt = insert(InstagramAgentLead).values(list(chunk))
        if on_conflict == "touch":
            stmt = stmt.on_conflict_do_update(
                index_elements=["username"],
                set_={
                    "last_updated": func.now(),
                    "post_id": func.coalesce(InstagramAgentLead.post_id, stmt.excluded.post_id),
                },
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["username"])
        session.execute(stmt)

    result.saved = len(rows.keys() - existing)
    return result


def get_active_job(session: Session) -> ActiveScrapeJob | None:
    stmt = select(ActiveScrapeJob).order_by(ActiveScrapeJob.created_at.desc(), ActiveScrapeJob.id.desc()).limit(1)
    return session.execute(stmt).scalars().first()


def set_active_job(session: Session, post_id: int | None, post_url: str | None = None) -> ActiveScrapeJob | None:
    """Replace the current job; passing no post clears it."""
    session.execute(delete(ActiveScrapeJob))
    if post_id is None:
        return None
    job = ActiveScrapeJob(post_id=post_id, post_url=post_url)
    session.add(job)
    return job
