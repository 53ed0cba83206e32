from escalafin.domain.enums import UserRole
from escalafin.domain.models.conversation import Conversation
from escalafin.application.services.conversation_service import IncomingMessage
from escalafin.interfaces.deps import build_conversation_service

from conftest import auth_headers, make_client, make_user, make_waha_config


def seed(db, gateway):
    admin = make_user(db, email="admin@escalafin.com", role=UserRole.ADMIN, name="Admin")
    laura = make_user(db, email="laura@escalafin.com")
    pedro = make_user(db, email="pedro@escalafin.com", name="Pedro")
    make_client(db, phone="4421234567")
    make_client(db, phone="4429876543", first_name="Beto")
    make_client(db, phone="4425550000", first_name="Carla")

    service = build_conversation_service(db, gateway)
    ana = service.get_or_create("4421234567")
    beto = service.get_or_create("4429876543")
    carla = service.get_or_create("4425550000")
    service.assign(ana.id, laura.id)
    service.assign(beto.id, pedro.id)
    return admin, laura, pedro, ana, beto, carla


def test_requires_authentication(api):
    assert api.get("/api/conversations").status_code in (401, 403)


def test_advisor_sees_own_and_unassigned_conversations(api, db, gateway):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)

    as_admin = api.get("/api/conversations", headers=auth_headers(admin)).json()
    as_laura = api.get(
        "/api/conversations",
        params={"assignedToId": pedro.id},
        headers=auth_headers(laura),
    ).json()

    assert {c["id"] for c in as_admin} == {ana.id, beto.id, carla.id}
    assert {c["id"] for c in as_laura} == {ana.id, carla.id}
    assert {c["client"]["first_name"] for c in as_laura} == {"Ana", "Carla"}


def test_list_filters_and_pagination(api, db, gateway):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)
    headers = auth_headers(admin)

    by_client = api.get("/api/conversations", params={"clientId": beto.client_id}, headers=headers).json()
    page = api.get("/api/conversations", params={"limit": 2, "offset": 2}, headers=headers).json()

    assert [c["id"] for c in by_client] == [beto.id]
    assert len(page) == 1


async def test_messages_are_listed_oldest_first(api, db, gateway):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)
    service = build_conversation_service(db, gateway)
    await service.handle_incoming_message(IncomingMessage(sender="4421234567@c.us", body="primero"))
    await service.handle_incoming_message(IncomingMessage(sender="4421234567@c.us", body="segundo"))

    response = api.get(f"/api/conversations/{ana.id}/messages", headers=auth_headers(laura))

    assert [m["content"] for m in response.json()] == ["primero", "segundo"]
    assert all(m["direction"] == "INBOUND" for m in response.json())

    listed = api.get("/api/conversations", headers=auth_headers(laura)).json()
    assert listed[0]["last_message"]["content"] == "segundo"


def test_advisor_cannot_read_someone_elses_conversation(api, db, gateway):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)

    assert api.get(f"/api/conversations/{beto.id}/messages", headers=auth_headers(laura)).status_code == 403
    # Unassigned conversations are open to every advisor
    assert api.get(f"/api/conversations/{carla.id}/messages", headers=auth_headers(laura)).status_code == 200


def test_staff_reply(api, db, gateway, waha):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)
    make_waha_config(db)

    response = api.post(
        f"/api/conversations/{ana.id}/send",
        json={"content": "Hola Ana, soy Laura"},
        headers=auth_headers(laura),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "SENT"
    assert body["direction"] == "OUTBOUND"
    assert body["sent_by"] == laura.id
    assert waha.json()["text"] == "Hola Ana, soy Laura"


def test_reply_without_provider_configuration(api, db, gateway, waha):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)

    response = api.post(
        f"/api/conversations/{ana.id}/send",
        json={"content": "Hola"},
        headers=auth_headers(laura),
    )

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "ConfigurationError"
    assert waha.requests == []


def test_close_and_assign(api, db, gateway):
    admin, laura, pedro, ana, beto, carla = seed(db, gateway)

    closed = api.post(f"/api/conversations/{ana.id}/close", headers=auth_headers(laura))
    assigned = api.post(
        f"/api/conversations/{carla.id}/assign",
        json={"user_id": pedro.id},
        headers=auth_headers(admin),
    )
    forbidden = api.post(
        f"/api/conversations/{carla.id}/assign",
        json={"user_id": laura.id},
        headers=auth_headers(laura),
    )
    missing = api.post(
        f"/api/conversations/{carla.id}/assign",
        json={"user_id": 999},
        headers=auth_headers(admin),
    )

    assert closed.json()["status"] == "RESOLVED"
    assert assigned.json()["assigned_to_id"] == pedro.id
    assert forbidden.status_code == 403
    assert missing.status_code == 404
    assert db.get(Conversation, carla.id).assigned_to_id == pedro.id


def test_unknown_conversation(api, db):
    admin = make_user(db, email="admin@escalafin.com", role=UserRole.ADMIN)

    response = api.get("/api/conversations/999", headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EntityNotFoundException"
