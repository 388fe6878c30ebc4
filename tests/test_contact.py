"""Tests for contact-form submissions and their moderation."""

from models import Contact


def submit(client, **fields):
    payload = {"name": "Sam Seeker", "email": "sam@example.com", "message": "How can I volunteer?"}
    payload.update(fields)
    return client.post("/api/contact", json=payload)


def add_contact(db, resolved=False, name="Sam Seeker"):
    contact = Contact(name=name, email="sam@example.com", message="Hi", resolved=resolved)
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def test_submission_is_stored_unresolved(client, auth_headers):
    response = submit(client, phone="555-0100", subject="Volunteering")
    assert response.status_code == 201
    created = response.json()["contact"]
    assert created["resolved"] is False
    assert created["subject"] == "Volunteering"
    assert "createdAt" in created

    listed = client.get("/api/contact", headers=auth_headers).json()["contacts"]
    assert [c["id"] for c in listed] == [created["id"]]
    assert listed[0]["resolved"] is False


def test_phone_and_subject_are_optional(client):
    response = submit(client)
    assert response.status_code == 201
    assert response.json()["contact"]["phone"] is None


def test_missing_message_is_rejected(client, db):
    response = client.post("/api/contact", json={"name": "Sam", "email": "sam@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields"
    assert db.query(Contact).count() == 0


def test_blank_name_is_rejected(client):
    assert submit(client, name="   ").status_code == 400


def test_invalid_email_is_rejected(client):
    response = submit(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"


def test_list_is_newest_first(client, db, auth_headers):
    first = add_contact(db, name="First")
    second = add_contact(db, name="Second")

    listed = client.get("/api/contact", headers=auth_headers).json()["contacts"]
    assert [c["id"] for c in listed] == [second.id, first.id]


def test_toggle_resolved(client, db, auth_headers):
    contact = add_contact(db)

    response = client.patch("/api/contact", json={"id": contact.id, "resolved": True}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["contact"]["resolved"] is True

    db.expire_all()
    assert db.get(Contact, contact.id).resolved is True


def test_resolved_must_be_a_boolean(client, db, auth_headers):
    contact = add_contact(db)
    response = client.patch("/api/contact", json={"id": contact.id, "resolved": "yes"}, headers=auth_headers)
    assert response.status_code == 400


def test_update_unknown_contact_is_404(client, auth_headers):
    response = client.patch("/api/contact", json={"id": 999, "resolved": True}, headers=auth_headers)
    assert response.status_code == 404


def test_delete_resolved_contact(client, db, auth_headers):
    contact = add_contact(db, resolved=True)
    contact_id = contact.id

    response = client.request("DELETE", "/api/contact", json={"id": contact_id}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["contact"]["id"] == contact_id

    db.expire_all()
    assert db.get(Contact, contact_id) is None


def test_unresolved_contact_cannot_be_deleted(client, db, auth_headers):
    contact = add_contact(db)

    response = client.request("DELETE", "/api/contact", json={"id": contact.id}, headers=auth_headers)
    assert response.status_code == 400

    db.expire_all()
    assert db.get(Contact, contact.id) is not None


def test_delete_unknown_contact_is_404(client, db, auth_headers):
    add_contact(db, resolved=True)
    response = client.request("DELETE", "/api/contact", json={"id": 999}, headers=auth_headers)
    assert response.status_code == 404
    assert db.query(Contact).count() == 1


def test_moderation_requires_session(client, db):
    contact = add_contact(db)
    assert client.patch("/api/contact", json={"id": contact.id, "resolved": True}).status_code == 401
