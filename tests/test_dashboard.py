"""Tests for the dashboard aggregate: counts and the merged recent-activity feed."""

from datetime import timedelta

from models import Contact, Event, EventCategory, EventStatus, Role, utcnow
from routers.dashboard import recent_activities

from conftest import make_user


def add_contact(db, name, created_at, resolved=False):
    contact = Contact(name=name, email=f"{name.lower()}@example.com", message="Hi",
                      resolved=resolved, created_at=created_at)
    db.add(contact)
    db.commit()
    return contact


def add_event(db, creator, title, created_at, status=EventStatus.ACTIVE):
    event = Event(
        title=title,
        description="Community event",
        start_date=created_at + timedelta(days=7),
        end_date=created_at + timedelta(days=8),
        location="Park",
        category=EventCategory.SPORTS_AND_ADVENTURE,
        status=status,
        created_by_id=creator.id,
        created_at=created_at,
    )
    db.add(event)
    db.commit()
    return event


def test_stats_match_store_counts(client, db, admin, auth_headers):
    now = utcnow()
    for i in range(3):
        add_contact(db, f"Contact{i}", now - timedelta(minutes=i))
    add_event(db, admin, "Run", now - timedelta(hours=1))
    add_event(db, admin, "Swim", now - timedelta(hours=2))
    add_event(db, admin, "Done", now - timedelta(hours=3), status=EventStatus.COMPLETED)
    make_user(db, name="Ed", email="ed@example.com", role=Role.EDITOR)

    response = client.get("/api/dashboard", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["stats"] == {
        "totalContacts": 3,
        "activeEvents": 2,
        "totalAdmins": 1,
        "totalModerators": 0,
    }


def test_moderators_are_counted(client, db, auth_headers):
    make_user(db, name="Mo", email="mo@example.com", role=Role.MODERATOR)
    make_user(db, name="Max", email="max@example.com", role=Role.MODERATOR)

    stats = client.get("/api/dashboard", headers=auth_headers).json()["stats"]
    assert stats["totalModerators"] == 2


def test_feed_is_five_newest_contacts_and_events_merged(client, db, admin, auth_headers):
    base = utcnow() - timedelta(days=1)
    # Interleave so the feed has to merge both kinds
    for i in range(6):
        add_contact(db, f"C{i}", base + timedelta(minutes=2 * i))
        add_event(db, admin, f"E{i}", base + timedelta(minutes=2 * i + 1))

    feed = client.get("/api/dashboard", headers=auth_headers).json()["recentActivities"]
    assert [item["title"] for item in feed] == ["E5", "C5", "E4", "C4", "E3"]
    assert feed[0]["type"] == "event"
    assert feed[0]["status"] == "ACTIVE"
    assert feed[1]["type"] == "contact"
    assert feed[1]["email"] == "c5@example.com"
    assert feed[1]["resolved"] is False
    assert "status" not in feed[1]


def test_feed_when_one_kind_dominates(db, admin):
    base = utcnow() - timedelta(days=1)
    add_event(db, admin, "Old event", base)
    for i in range(6):
        add_contact(db, f"C{i}", base + timedelta(minutes=i + 1))

    feed = recent_activities(db)
    assert [item["title"] for item in feed] == ["C5", "C4", "C3", "C2", "C1"]


def test_empty_dashboard(client, auth_headers):
    body = client.get("/api/dashboard", headers=auth_headers).json()
    assert body["recentActivities"] == []
    assert body["stats"]["totalContacts"] == 0


def test_dashboard_requires_session(client):
    assert client.get("/api/dashboard").status_code == 401
