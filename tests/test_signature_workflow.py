import time
from datetime import timedelta

from camphub import rate_limiter
from camphub.models import DocumentAuditTrail, Signature, SignatureRequest, utcnow
from tests.testkit import create_document, create_field, create_organization, create_user, login


def _setup(make_client, **document_overrides):
    org_id = create_organization()
    create_user("owner", role="camp_creator", organization_id=org_id, email="owner@example.com")
    parent_id = create_user("parent", first_name="Dana", last_name="Rivera")
    document_id = create_document(org_id, **document_overrides)
    return org_id, parent_id, document_id, login(make_client(), "owner")


def _send(admin, document_id, **payload):
    payload.setdefault("message", "Please sign before camp")
    response = admin.post(f"/api/documents/{document_id}/signature-requests", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _actions(db, document_id):
    rows = (
        db.query(DocumentAuditTrail)
        .filter(DocumentAuditTrail.document_id == document_id)
        .order_by(DocumentAuditTrail.id)
        .all()
    )
    return [row.action for row in rows]


def test_request_creation_defaults_and_email(make_client, db, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client)

    body = _send(admin, document_id, requested_for_id=parent_id)

    assert body["status"] == "pending"
    assert body["requested_for_email"] == "parent@example.com"
    assert len(body["token"]) == 36
    expires_in = db.get(SignatureRequest, body["id"]).expires_at - utcnow()
    assert timedelta(days=29) < expires_in <= timedelta(days=30)

    sent_emails["request"].assert_awaited_once()
    kwargs = sent_emails["request"].await_args.kwargs
    assert kwargs["to"] == "parent@example.com"
    assert kwargs["recipient_name"] == "Dana Rivera"
    assert kwargs["token"] == body["token"]
    assert _actions(db, document_id) == ["created"]


def test_request_validation(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    url = f"/api/documents/{document_id}/signature-requests"

    assert admin.post(url, json={}).json()["error"] == (
        "Either requested_for_id or requested_for_email is required"
    )
    assert admin.post(url, json={"requested_for_id": 999}).json()["error"] == "Requested user not found"
    assert admin.post(url, json={"requested_for_email": "not-an-email"}).status_code == 400

    past = (utcnow() - timedelta(hours=1)).isoformat()
    response = admin.post(url, json={"requested_for_id": parent_id, "expires_at": past})
    assert response.json()["error"] == "Expiration date must be in the future"


def test_only_active_documents_can_be_sent(make_client, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client, status="draft")

    response = admin.post(
        f"/api/documents/{document_id}/signature-requests", json={"requested_for_id": parent_id}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Only active documents can be sent for signature"
    sent_emails["request"].assert_not_awaited()


def test_email_failure_does_not_fail_creation(make_client, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client)
    sent_emails["request"].side_effect = RuntimeError("resend is down")

    body = _send(admin, document_id, requested_for_id=parent_id)
    assert body["status"] == "pending"


def test_token_view_populates_fields_and_records_view(make_client, db):
    _, parent_id, document_id, admin = _setup(make_client)
    create_field(document_id, label="Parent", field_type="dynamic_field", data_source="parent_name")
    create_field(document_id, label="Date", field_type="date")
    token = _send(admin, document_id, requested_for_id=parent_id)["token"]

    response = make_client().get(f"/api/signature-requests/token/{token}")

    assert response.status_code == 200
    body = response.json()
    assert body["document"]["id"] == document_id
    assert [field["label"] for field in body["fields"]] == ["Parent", "Date"]
    assert body["dynamic_field_data"] == {"parent_name": "Dana Rivera"}
    assert body["signature_request"]["viewed_at"] is not None

    make_client().get(f"/api/signature-requests/token/{token}")
    assert _actions(db, document_id) == ["created", "viewed", "viewed"]

    assert make_client().get("/api/signature-requests/token/nope").status_code == 404


def test_sign_flow(make_client, db, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client)
    dynamic_id = create_field(
        document_id, label="Parent", field_type="dynamic_field", data_source="parent_name"
    )
    date_id = create_field(document_id, label="Date", field_type="date")
    optional_id = create_field(document_id, label="Notes", field_type="text", required=False)
    request = _send(admin, document_id, requested_for_id=parent_id)
    signer = make_client()

    response = signer.post(
        f"/api/signature-requests/{request['id']}/sign",
        json={
            "token": request["token"],
            "signature": "Dana Rivera",
            "field_values": {f"field_{date_id}": "2025-06-01"},
        },
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["field_values"] == {
        f"field_{date_id}": "2025-06-01",
        f"field_{dynamic_id}": "Dana Rivera",
    }
    assert f"field_{optional_id}" not in body["field_values"]
    assert body["ip_address"] == "203.0.113.9"
    assert len(body["signature_hash"]) == 64

    stored = db.get(SignatureRequest, request["id"])
    assert stored.status == "signed"
    assert stored.signed_at is not None
    assert _actions(db, document_id) == ["created", "signed"]

    sent_emails["signed"].assert_awaited_once()
    assert sent_emails["signed"].await_args.kwargs["to"] == "owner@example.com"
    assert sent_emails["signed"].await_args.kwargs["signer_name"] == "Dana Rivera"

    verified = admin.get(f"/api/signatures/{body['id']}/verify")
    assert verified.json()["valid"] is True


def test_missing_required_fields_are_listed(make_client, db):
    _, parent_id, document_id, admin = _setup(make_client)
    create_field(document_id, label="Initials", field_type="initial")
    create_field(document_id, label="Agree", field_type="checkbox")
    request = _send(admin, document_id, requested_for_id=parent_id)

    response = make_client().post(
        f"/api/signature-requests/{request['id']}/sign",
        json={"token": request["token"], "signature": "Dana", "field_values": {"unused": "x"}},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields", "fields": ["Initials", "Agree"]}
    assert db.get(SignatureRequest, request["id"]).status == "pending"


def test_token_must_match_request(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    first = _send(admin, document_id, requested_for_id=parent_id)
    second = _send(admin, document_id, requested_for_email="other@example.com")

    response = make_client().post(
        f"/api/signature-requests/{first['id']}/sign",
        json={"token": second["token"], "signature": "Dana"},
    )
    assert response.status_code == 404


def test_signing_twice_is_rejected(make_client, db):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)
    payload = {"token": request["token"], "signature": "Dana"}
    signer = make_client()

    assert signer.post(f"/api/signature-requests/{request['id']}/sign", json=payload).status_code == 201
    again = signer.post(f"/api/signature-requests/{request['id']}/sign", json=payload)

    assert again.status_code == 400
    assert again.json() == {"error": "This document has already been signed", "status": "signed"}
    assert db.query(Signature).count() == 1
    assert make_client().get(f"/api/signature-requests/token/{request['token']}").status_code == 400


def test_decline(make_client, db, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)

    response = make_client().put(
        f"/api/signature-requests/{request['id']}/decline", json={"token": request["token"]}
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert db.get(SignatureRequest, request["id"]).status == "declined"
    sent_emails["declined"].assert_awaited_once()

    wrong = make_client().put(f"/api/signature-requests/{request['id']}/decline", json={"token": "x"})
    assert wrong.status_code == 404


def test_revoke_requires_the_organization(make_client, db):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)
    url = f"/api/signature-requests/{request['id']}/revoke"

    assert make_client().put(url).status_code == 401
    assert login(make_client(), "parent").put(url).status_code == 403

    response = admin.put(url)
    assert response.status_code == 200
    assert db.get(SignatureRequest, request["id"]).status == "revoked"
    assert _actions(db, document_id) == ["created", "revoked"]

    assert admin.put(url).json()["status"] == "revoked"


def test_unknown_action_is_rejected(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)

    response = admin.put(f"/api/signature-requests/{request['id']}/approve")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


def test_expired_request_is_moved_to_expired_on_access(make_client, db):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)
    db.query(SignatureRequest).filter(SignatureRequest.id == request["id"]).update(
        {"expires_at": utcnow() - timedelta(minutes=1)}
    )
    db.commit()

    response = make_client().post(
        f"/api/signature-requests/{request['id']}/sign",
        json={"token": request["token"], "signature": "Dana"},
    )

    assert response.status_code == 410
    assert response.json() == {"error": "This signature request has expired"}
    db.expire_all()
    assert db.get(SignatureRequest, request["id"]).status == "expired"
    assert _actions(db, document_id) == ["created", "expired"]
    assert make_client().get(f"/api/signature-requests/token/{request['token']}").status_code == 410


def test_remind(make_client, db, sent_emails):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)
    sent_emails["request"].reset_mock()

    response = admin.post(f"/api/signature-requests/{request['id']}/remind")

    assert response.status_code == 200
    assert response.json()["reminder_sent_at"] is not None
    assert sent_emails["request"].await_args.kwargs["is_reminder"] is True
    assert _actions(db, document_id) == ["created", "reminder_sent"]

    sent_emails["request"].side_effect = RuntimeError("resend is down")
    failed = admin.post(f"/api/signature-requests/{request['id']}/remind")
    assert failed.status_code == 500
    assert failed.json() == {"error": "Failed to send reminder email"}


def test_audit_trail_is_chronological_and_staff_only(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    request = _send(admin, document_id, requested_for_id=parent_id)
    signer = make_client()
    signer.get(f"/api/signature-requests/token/{request['token']}")
    signer.post(
        f"/api/signature-requests/{request['id']}/sign",
        json={"token": request["token"], "signature": "Dana"},
    )

    trail = admin.get(f"/api/documents/{document_id}/audit-trail")

    assert [entry["action"] for entry in trail.json()] == ["created", "viewed", "signed"]
    assert trail.json()[2]["details"]["signature_hash"]
    assert login(make_client(), "parent").get(f"/api/documents/{document_id}/audit-trail").status_code == 403


def test_user_requests_match_id_or_email(make_client):
    _, parent_id, document_id, admin = _setup(make_client, title="Medical Release")
    _send(admin, document_id, requested_for_id=parent_id)
    _send(admin, document_id, requested_for_email="parent@example.com")
    _send(admin, document_id, requested_for_email="someone@example.com")

    response = login(make_client(), "parent").get("/api/user/signature-requests")

    assert response.status_code == 200
    assert len(response.json()) == 2
    assert {entry["document_title"] for entry in response.json()} == {"Medical Release"}


def test_document_requests_listing(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    _send(admin, document_id, requested_for_id=parent_id)
    _send(admin, document_id, requested_for_email="someone@example.com")

    assert len(admin.get(f"/api/documents/{document_id}/signature-requests").json()) == 2
    parent_view = login(make_client(), "parent").get(f"/api/documents/{document_id}/signature-requests")
    assert len(parent_view.json()) == 1


def test_signing_endpoints_are_rate_limited(make_client):
    _, parent_id, document_id, admin = _setup(make_client)
    token = _send(admin, document_id, requested_for_id=parent_id)["token"]
    now = int(time.time())
    rate_limiter.memory_cache["signature_token:testclient"] = {
        "count": 30,
        "reset_time": now + 45,
        "last_redis_sync": now,
    }

    response = make_client().get(f"/api/signature-requests/token/{token}")

    assert response.status_code == 429
    assert response.json()["retry_after"] > 0
    assert "Rate limit exceeded" in response.json()["error"]
    assert response.headers["Retry-After"] == str(response.json()["retry_after"])
