from __future__ import annotations

import datetime as dt
import json

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.api import deps
from app.core.config import Settings
from app.main import app
from app.models import ActiveScrapeJob, InstagramAgentLead, InstagramPost


def _leads(session: Session) -> list[InstagramAgentLead]:
    return list(session.execute(select(InstagramAgentLead).order_by(InstagramAgentLead.username)).scalars())


def test_webhook_saves_leads_and_skips_incomplete(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    payload = [
        {"username": "agent.one", "profileUrl": "https://instagram.com/agent.one"},
        {"username": "agent.two", "profile_url": "https://instagram.com/agent.two"},
        {"username": "agent.three", "profileLink": "https://instagram.com/agent.three"},
        {"username": "no.profile"},
        {"profileUrl": "https://instagram.com/anonymous"},
    ]

    response = client.post("/api/webhook/leads", json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Webhook received and leads processed."
    assert body["received"] == 5
    assert body["saved"] == 3
    assert body["skipped"] == 2

    with testing_session() as session:
        leads = _leads(session)
    assert [lead.username for lead in leads] == ["agent.one", "agent.three", "agent.two"]
    assert all(lead.post_id is None for lead in leads)

    listing = client.get("/api/leads")
    assert listing.status_code == 200
    assert {row["username"] for row in listing.json()} == {"agent.one", "agent.two", "agent.three"}


def test_webhook_redelivery_does_not_duplicate(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    payload = {"resultObject": [{"username": "repeat", "profileUrl": "https://instagram.com/repeat"}]}

    first = client.post("/api/webhook/leads", json=payload)
    second = client.post("/api/webhook/leads", json=payload)

    assert first.json()["saved"] == 1
    assert second.status_code == 200
    assert second.json()["saved"] == 0

    with testing_session() as session:
        assert len(_leads(session)) == 1


def test_webhook_accepts_stringified_result_object(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    inner = json.dumps([{"username": "nested", "profileUrl": "https://instagram.com/nested"}])
    raw = json.dumps({"resultObject": inner})

    response = client.post("/api/webhook/leads", content=raw, headers={"Content-Type": "text/plain"})
    assert response.status_code == 200
    assert response.json()["saved"] == 1


def test_webhook_without_leads_is_acknowledged(client: TestClient) -> None:
    response = client.post("/api/webhook/leads", json={"status": "finished"})
    assert response.status_code == 200
    assert response.json()["message"] == "Webhook received, but contained no leads to process."

    garbage = client.post("/api/webhook/leads", content=b"not json", headers={"Content-Type": "text/plain"})
    assert garbage.status_code == 200
    assert garbage.json()["received"] == 0


def test_webhook_attributes_leads_to_active_job(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    with testing_session() as session:
        post = InstagramPost(post_url="https://www.instagram.com/p/active/")
        session.add(post)
        session.flush()
        session.add(ActiveScrapeJob(post_id=post.id, post_url=post.post_url))
        session.commit()
        post_id = post.id

    response = client.post(
        "/api/webhook/leads",
        json=[{"username": "tracked", "profileUrl": "https://instagram.com/tracked"}],
    )
    assert response.status_code == 200

    filtered = client.get(f"/api/leads?post_id={post_id}")
    assert [row["username"] for row in filtered.json()] == ["tracked"]
    assert filtered.json()[0]["post_id"] == post_id


def test_webhook_post_id_query_overrides_active_job(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    with testing_session() as session:
        active = InstagramPost(post_url="https://www.instagram.com/p/active/")
        explicit = InstagramPost(post_url="https://www.instagram.com/p/explicit/")
        session.add_all([active, explicit])
        session.flush()
        session.add(ActiveScrapeJob(post_id=active.id, post_url=active.post_url))
        session.commit()
        explicit_id = explicit.id

    response = client.post(
        f"/api/webhook/leads?post_id={explicit_id}",
        json=[{"username": "explicit", "profileUrl": "https://instagram.com/explicit"}],
    )
    assert response.status_code == 200

    with testing_session() as session:
        lead = session.execute(select(InstagramAgentLead)).scalars().one()
    assert lead.post_id == explicit_id

    missing = client.post(
        "/api/webhook/leads?post_id=999",
        json=[{"username": "orphan", "profileUrl": "https://instagram.com/orphan"}],
    )
    assert missing.status_code == 404


def test_webhook_ignores_post_id_inside_payload(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    with testing_session() as session:
        chosen = InstagramPost(post_url="https://www.instagram.com/p/chosen/")
        other = InstagramPost(post_url="https://www.instagram.com/p/other/")
        session.add_all([chosen, other])
        session.commit()
        chosen_id, other_id = chosen.id, other.id

    payload = [
        {"username": "claims.other", "profileUrl": "https://instagram.com/claims.other", "post_id": other_id},
        {"username": "claims.true", "profileUrl": "https://instagram.com/claims.true", "post_id": True},
        {"username": "claims.unknown", "profileUrl": "https://instagram.com/claims.unknown", "post_id": 999},
    ]
    response = client.post(f"/api/webhook/leads?post_id={chosen_id}", json=payload)
    assert response.status_code == 200
    assert response.json()["saved"] == 3

    with testing_session() as session:
        leads = _leads(session)
    assert {lead.post_id for lead in leads} == {chosen_id}

    unattributed = client.post(
        "/api/webhook/leads",
        json=[{"username": "loose", "profileUrl": "https://instagram.com/loose", "post_id": other_id}],
    )
    assert unattributed.status_code == 200
    with testing_session() as session:
        loose = session.execute(select(InstagramAgentLead).where(InstagramAgentLead.username == "loose")).scalar_one()
    assert loose.post_id is None


def test_leads_are_listed_most_recently_updated_first(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    with testing_session() as session:
        session.add_all(
            [
                InstagramAgentLead(
                    username="middle", profile_url="https://instagram.com/middle", last_updated=dt.datetime(2024, 2, 1)
                ),
                InstagramAgentLead(
                    username="oldest", profile_url="https://instagram.com/oldest", last_updated=dt.datetime(2024, 1, 1)
                ),
                InstagramAgentLead(
                    username="newest", profile_url="https://instagram.com/newest", last_updated=dt.datetime(2024, 3, 1)
                ),
            ]
        )
        session.commit()

    response = client.get("/api/leads")
    assert response.status_code == 200
    assert [row["username"] for row in response.json()] == ["newest", "middle", "oldest"]


def _seed_stale_lead(testing_session: sessionmaker[Session], username: str) -> dt.datetime:
    stale = dt.datetime(2020, 1, 1)
    with testing_session() as session:
        session.add(
            InstagramAgentLead(username=username, profile_url=f"https://instagram.com/{username}", last_updated=stale)
        )
        session.commit()
    return stale


def test_webhook_ignore_policy_leaves_existing_row(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    stale = _seed_stale_lead(testing_session, "kept")

    response = client.post("/api/webhook/leads", json=[{"username": "kept", "profileUrl": "https://instagram.com/new"}])
    assert response.status_code == 200
    assert response.json()["saved"] == 0

    with testing_session() as session:
        lead = _leads(session)[0]
    assert lead.last_updated == stale
    assert lead.profile_url == "https://instagram.com/kept"


def test_webhook_touch_policy_updates_existing_row(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    app.dependency_overrides[deps.get_app_settings] = lambda: Settings(LEADS_ON_CONFLICT="touch")
    stale = _seed_stale_lead(testing_session, "late")

    with testing_session() as session:
        post = InstagramPost(post_url="https://www.instagram.com/p/late/")
        session.add(post)
        session.commit()
        post_id = post.id

    response = client.post(
        f"/api/webhook/leads?post_id={post_id}",
        json=[{"username": "late", "profileUrl": "https://instagram.com/late"}],
    )
    assert response.status_code == 200
    assert response.json()["saved"] == 0

    with testing_session() as session:
        leads = _leads(session)
    assert len(leads) == 1
    assert leads[0].post_id == post_id
    assert leads[0].last_updated.replace(tzinfo=None) > stale


def test_webhook_saves_large_batches(client: TestClient, testing_session: sessionmaker[Session]) -> None:
    payload = [{"username": f"bulk.{i}", "profileUrl": f"https://instagram.com/bulk.{i}"} for i in range(650)]

    first = client.post("/api/webhook/leads", json={"resultObject": payload})
    assert first.status_code == 200
    assert first.json()["saved"] == 650

    redelivery = payload[300:] + [{"username": "bulk.new", "profileUrl": "https://instagram.com/bulk.new"}]
    again = client.post("/api/webhook/leads", json=redelivery)
    assert again.json()["received"] == 351
    assert again.json()["saved"] == 1

    with testing_session() as session:
        assert len(_leads(session)) == 651
