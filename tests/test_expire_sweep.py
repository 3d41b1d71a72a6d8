import importlib.util
from datetime import timedelta
from pathlib import Path

from camphub.domain.documents.service import SignatureRequestService
from camphub.models import DocumentAuditTrail, SignatureRequest, utcnow
from tests.testkit import create_document, create_organization

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "expire_signature_requests.py"


def _request(db, document_id, status="pending", expires_in=None):
    signature_request = SignatureRequest(
        document_id=document_id,
        requested_for_email="parent@example.com",
        status=status,
        expires_at=utcnow() + expires_in if expires_in is not None else None,
    )
    db.add(signature_request)
    db.commit()
    return signature_request.id


def _load_script():
    spec = importlib.util.spec_from_file_location("expire_signature_requests", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_sweep_expires_only_overdue_pending_requests(db):
    document_id = create_document(create_organization())
    overdue = _request(db, document_id, expires_in=timedelta(hours=-1))
    current = _request(db, document_id, expires_in=timedelta(days=3))
    open_ended = _request(db, document_id)
    signed = _request(db, document_id, status="signed", expires_in=timedelta(hours=-1))

    assert SignatureRequestService(db).expire_overdue() == 1

    db.expire_all()
    statuses = {request.id: request.status for request in db.query(SignatureRequest)}
    assert statuses == {overdue: "expired", current: "pending", open_ended: "pending", signed: "signed"}

    audit = db.query(DocumentAuditTrail).one()
    assert audit.signature_request_id == overdue
    assert audit.action == "expired"
    assert audit.details == {"reason": "expiry_sweep"}

    assert SignatureRequestService(db).expire_overdue() == 0


def test_script_reports_the_count(db, capsys):
    document_id = create_document(create_organization())
    _request(db, document_id, expires_in=timedelta(minutes=-5))
    _request(db, document_id, expires_in=timedelta(minutes=-1))

    _load_script().main()

    assert capsys.readouterr().out.startswith("ok: expired 2 signature request(s)")
