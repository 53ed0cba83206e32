from datetime import datetime, timedelta, timezone

from escalafin.domain.enums import DeliveryStatus
from escalafin.domain.models.whatsapp_message import WhatsAppMessage

from conftest import make_client, make_waha_config

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


def test_cron_requires_secret(api):
    assert api.post("/api/cron/reminders").status_code == 401
    assert api.post("/api/cron/cleanup", headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_cron_scheduled_messages(api, db, waha):
    make_waha_config(db)
    client = make_client(db)
    db.add(WhatsAppMessage(
        client_id=client.id,
        phone="524421234567@c.us",
        message="Programado",
        status=DeliveryStatus.PENDING,
        scheduled_for=datetime.now(timezone.utc) - timedelta(minutes=1),
    ))
    db.commit()

    response = api.post("/api/cron/scheduled-messages", headers=CRON_HEADERS)

    assert response.json() == {"due": 1, "sent": 1, "failed": 0}
    assert db.query(WhatsAppMessage).one().status == DeliveryStatus.SENT


def test_cron_reminders_and_cleanup(api, db):
    reminders = api.post("/api/cron/reminders", headers=CRON_HEADERS)
    cleanup = api.post("/api/cron/cleanup", headers=CRON_HEADERS)

    assert reminders.json() == {"upcoming": 0, "overdue": 0, "sent": 0, "skipped": 0, "failed": 0}
    assert cleanup.json()["whatsapp_messages_deleted"] == 0


def test_cron_accepts_get(api):
    reminders = api.get("/api/cron/reminders", headers=CRON_HEADERS)
    scheduled = api.get("/api/cron/scheduled-messages", headers=CRON_HEADERS)

    assert reminders.status_code == 200
    assert scheduled.json() == {"due": 0, "sent": 0, "failed": 0}
    assert api.get("/api/cron/cleanup").status_code == 401
