"""Mark overdue pending signature requests as expired. Run from cron."""

from camphub.database import SessionLocal
from camphub.domain.documents.service import SignatureRequestService
from camphub.models import utcnow


def main():
    db = SessionLocal()
    try:
        now = utcnow()
        expired = SignatureRequestService(db).expire_overdue(now)
        print(f"ok: expired {expired} signature request(s) overdue at {now.isoformat()}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
