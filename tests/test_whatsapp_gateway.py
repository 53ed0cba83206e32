import httpx
import pytest

from escalafin.core.exceptions import ConfigurationError, ProviderError
from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.infrastructure.repositories.whatsapp_message_repository import SQLAlchemyWhatsAppMessageRepository
from escalafin.infrastructure.waha_config import (
    CachedWahaConfigLoader,
    DatabaseWahaConfigLoader,
    StaticWahaConfigLoader,
)
from escalafin.application.services.whatsapp_gateway import (
    WhatsAppGateway,
    describe_media,
    extract_message_id,
    format_chat_id,
)

from conftest import WAHA_SESSION, make_client, make_waha_config


@pytest.mark.parametrize(
    "phone, expected",
    [
        ("4421234567", "524421234567@c.us"),
        ("(442) 123-4567", "524421234567@c.us"),
        ("+52 1 442 123 4567", "5214421234567@c.us"),
        ("524421234567", "524421234567@c.us"),
    ],
)
def test_format_chat_id(phone, expected):
    assert format_chat_id(phone) == expected


def test_describe_media():
    assert describe_media("https://cdn.test/promos/oferta.jpg?v=2") == {
        "mimetype": "image/jpeg",
        "filename": "oferta.jpg",
        "url": "https://cdn.test/promos/oferta.jpg?v=2",
    }
    assert describe_media("https://cdn.test/download")["mimetype"] == "application/octet-stream"


def test_extract_message_id_shapes():
    assert extract_message_id({"id": {"_serialized": "true_52@c.us_AAA"}}) == "true_52@c.us_AAA"
    assert extract_message_id({"id": "ABC"}) == "ABC"
    assert extract_message_id({"key": {"id": "KEY1"}}) == "KEY1"
    assert extract_message_id({}) is None
    assert extract_message_id(["not", "a", "dict"]) is None


async def test_send_text_success(db, gateway, waha):
    client = make_client(db)

    record = await gateway.send_text(client.id, client.phone, "Hola Ana", WhatsAppMessageType.CUSTOM)

    request = waha.requests[0]
    assert str(request.url) == "http://waha.test/api/sendText"
    assert request.headers["X-Api-Key"] == "waha-key"
    assert waha.json() == {"chatId": "524421234567@c.us", "text": "Hola Ana", "session": "default"}

    assert record.status == DeliveryStatus.SENT
    assert record.waha_message_id == "true_524421234567@c.us_MSG1"
    assert record.phone == "524421234567@c.us"
    assert record.sent_at is not None
    assert db.query(WhatsAppMessage).count() == 1


async def test_provider_error_marks_record_failed(db, gateway, waha):
    client = make_client(db)
    waha.status_code = 500

    with pytest.raises(ProviderError) as exc_info:
        await gateway.send_text(client.id, client.phone, "Hola")

    assert exc_info.value.provider_status == 500
    assert exc_info.value.status_code == 502

    record = db.query(WhatsAppMessage).one()
    assert record.status == DeliveryStatus.FAILED
    assert record.error_message == "WAHA respondió 500"
    assert record.waha_message_id is None


async def test_missing_message_id_is_a_failure(db, gateway, waha):
    client = make_client(db)
    waha.response_body = {"ok": True}

    with pytest.raises(ProviderError):
        await gateway.send_text(client.id, client.phone, "Hola")

    assert db.query(WhatsAppMessage).one().status == DeliveryStatus.FAILED


async def test_connection_error_is_a_provider_error(db):
    client = make_client(db)

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = WhatsAppGateway(
        SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage),
        StaticWahaConfigLoader(WAHA_SESSION),
        transport=httpx.MockTransport(refuse),
    )

    with pytest.raises(ProviderError):
        await gateway.send_text(client.id, client.phone, "Hola")

    assert db.query(WhatsAppMessage).one().status == DeliveryStatus.FAILED


async def test_unconfigured_provider_sends_and_stores_nothing(db, waha):
    client = make_client(db)
    gateway = WhatsAppGateway(
        SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage),
        StaticWahaConfigLoader(None),
        transport=waha.transport,
    )

    with pytest.raises(ConfigurationError) as exc_info:
        await gateway.send_text(client.id, client.phone, "Hola")

    assert exc_info.value.status_code == 503
    assert waha.requests == []
    assert db.query(WhatsAppMessage).count() == 0


async def test_send_media_picks_endpoint_by_mimetype(db, gateway, waha):
    client = make_client(db)

    image = await gateway.send_media(client.id, client.phone, "https://cdn.test/promo.png", "Promo")
    document = await gateway.send_media(client.id, client.phone, "https://cdn.test/estado.pdf", "Estado de cuenta")

    assert waha.paths == ["/api/sendImage", "/api/sendFile"]
    assert waha.json(0)["file"] == {
        "mimetype": "image/png",
        "filename": "promo.png",
        "url": "https://cdn.test/promo.png",
    }
    assert waha.json(0)["caption"] == "Promo"
    assert waha.json(1)["file"]["mimetype"] == "application/pdf"
    assert image.media_url == "https://cdn.test/promo.png"
    assert document.status == DeliveryStatus.SENT


async def test_apply_ack_updates_delivery_status(db, gateway):
    client = make_client(db)
    record = await gateway.send_text(client.id, client.phone, "Hola")

    delivered = gateway.apply_ack(record.waha_message_id, 2, {"ack": 2})
    assert delivered.status == DeliveryStatus.DELIVERED
    assert delivered.delivered_at is not None

    read = gateway.apply_ack(record.waha_message_id, 3)
    assert read.status == DeliveryStatus.READ
    assert read.read_at is not None

    assert gateway.apply_ack("unknown-id", 3) is None


async def test_session_status(gateway, waha):
    assert await gateway.get_session_status() == {"name": "default", "status": "WORKING"}
    assert waha.requests[0].url.params["all"] == "true"

    waha.sessions = [{"name": "other", "status": "WORKING"}]
    assert (await gateway.get_session_status())["status"] == "NOT_FOUND"


def test_database_loader_prefers_active_row(db):
    assert DatabaseWahaConfigLoader(db).load() is None

    make_waha_config(db, base_url="http://waha.internal:3000/", session_id="escalafin", api_key="")
    session = DatabaseWahaConfigLoader(db).load()

    assert session.base_url == "http://waha.internal:3000"
    assert session.session_id == "escalafin"
    assert session.api_key is None


def test_cached_loader_retries_until_configured(db):
    loader = CachedWahaConfigLoader(DatabaseWahaConfigLoader(db))
    assert loader.load() is None

    make_waha_config(db)
    first = loader.load()
    make_waha_config(db, session_id="second")

    assert first.session_id == "default"
    assert loader.load() is first
    loader.invalidate()
    assert loader.load().session_id == "second"
