import json

from escalafin.domain.enums import NotificationType, TriggerType, UserRole
from escalafin.domain.models.conversation import Conversation
from escalafin.domain.models.notification import Notification
from escalafin.interfaces.deps import build_rule_matcher

from conftest import make_client, make_loan, make_rule, make_user


def open_conversation(db, client):
    conversation = Conversation(client_id=client.id, phone=client.phone)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def test_keyword_match_is_case_insensitive_substring(db):
    client = make_client(db)
    make_rule(db, "saldo, balance", "Hola {nombre}, consulta tu saldo en línea.")

    response = build_rule_matcher(db).evaluate("¿Cuál es mi SALDO actual?", client.id)

    assert response == "Hola Ana, consulta tu saldo en línea."


def test_no_rule_matches(db):
    client = make_client(db)
    make_rule(db, "saldo", "respuesta")

    assert build_rule_matcher(db).evaluate("buenos días", client.id) is None


def test_higher_priority_wins(db):
    client = make_client(db)
    make_rule(db, "pago", "baja", priority=1)
    make_rule(db, "pago", "alta", priority=10)

    assert build_rule_matcher(db).evaluate("quiero hacer un pago", client.id) == "alta"


def test_priority_ties_go_to_the_older_rule(db):
    client = make_client(db)
    make_rule(db, "pago", "primera", priority=5)
    make_rule(db, "pago", "segunda", priority=5)

    assert build_rule_matcher(db).evaluate("pago", client.id) == "primera"


def test_inactive_rules_are_ignored(db):
    client = make_client(db)
    make_rule(db, "pago", "inactiva", priority=10, is_active=False)
    make_rule(db, "pago", "activa", priority=1)

    assert build_rule_matcher(db).evaluate("pago", client.id) == "activa"


def test_empty_keywords_never_match(db):
    client = make_client(db)
    make_rule(db, " , ,", "nunca")

    assert build_rule_matcher(db).evaluate("cualquier cosa", client.id) is None


def test_regex_trigger(db):
    client = make_client(db)
    make_rule(db, r"^hola\b", "¡Hola!", trigger_type=TriggerType.REGEX)

    matcher = build_rule_matcher(db)
    assert matcher.evaluate("HOLA, buenas", client.id) == "¡Hola!"
    assert matcher.evaluate("ya dije hola", client.id) is None


def test_failed_condition_falls_through_to_next_rule(db):
    client = make_client(db)
    make_rule(db, "saldo", "Tu saldo es {saldo}", priority=10, conditions=json.dumps({"hasActiveLoans": True}))
    make_rule(db, "saldo", "No tienes préstamos activos", priority=1)

    matcher = build_rule_matcher(db)
    assert matcher.evaluate("saldo", client.id) == "No tienes préstamos activos"

    make_loan(db, client)
    assert matcher.evaluate("saldo", client.id) == "Tu saldo es $12,500.00"


def test_conditions_on_unknown_client_do_not_hold(db):
    make_rule(db, "saldo", "con condición", priority=10, conditions=json.dumps({"hasActiveLoans": False}))
    make_rule(db, "saldo", "sin condición", priority=1)

    assert build_rule_matcher(db).evaluate("saldo", 12345) == "sin condición"


def test_unknown_condition_keys_are_ignored(db):
    client = make_client(db)
    make_rule(db, "hola", "respuesta", conditions=json.dumps({"segment": "gold"}))

    assert build_rule_matcher(db).evaluate("hola", client.id) == "respuesta"


def test_bad_rules_are_skipped(db):
    client = make_client(db)
    make_rule(db, "([", "regex rota", priority=30, trigger_type=TriggerType.REGEX)
    make_rule(db, "a" * 600, "regex enorme", priority=20, trigger_type=TriggerType.REGEX)
    make_rule(db, "hola", "json roto", priority=10, conditions="{not json")
    make_rule(db, "hola", "válida", priority=1)

    assert build_rule_matcher(db).evaluate("hola", client.id) == "válida"


def test_assign_to_advisor_action(db):
    advisor = make_user(db)
    client = make_client(db, advisor=advisor)
    conversation = open_conversation(db, client)
    make_rule(db, "asesor", "Te comunicamos con tu asesor", actions=json.dumps({"assignToAdvisor": True}))

    response = build_rule_matcher(db).evaluate("quiero hablar con un asesor", client.id)

    db.refresh(conversation)
    assert response == "Te comunicamos con tu asesor"
    assert conversation.assigned_to_id == advisor.id


def test_assign_without_advisor_leaves_conversation_unassigned(db):
    client = make_client(db)
    conversation = open_conversation(db, client)
    make_rule(db, "asesor", "ok", actions=json.dumps({"assignToAdvisor": True}))

    assert build_rule_matcher(db).evaluate("asesor", client.id) == "ok"
    db.refresh(conversation)
    assert conversation.assigned_to_id is None


def test_create_notification_action_notifies_advisor(db):
    advisor = make_user(db)
    make_user(db, email="admin@escalafin.com", role=UserRole.ADMIN, name="Admin")
    client = make_client(db, advisor=advisor)
    conversation = open_conversation(db, client)
    rule = make_rule(db, "queja", "Lamentamos lo ocurrido", actions=json.dumps({"createNotification": True}))

    build_rule_matcher(db).evaluate("tengo una queja", client.id)

    notifications = db.query(Notification).all()
    assert len(notifications) == 1
    assert notifications[0].user_id == advisor.id
    assert notifications[0].type == NotificationType.CHATBOT_ESCALATION
    assert json.loads(notifications[0].data) == {
        "client_id": client.id,
        "rule_id": rule.id,
        "conversation_id": conversation.id,
    }


def test_no_active_loans_condition_rejects_client_with_loan(db):
    client = make_client(db)
    make_loan(db, client)
    make_rule(db, "préstamo", "Solicita tu primer préstamo", priority=10, conditions=json.dumps({"hasActiveLoans": False}))
    make_rule(db, "préstamo", "Consulta tu préstamo vigente", priority=1)

    assert build_rule_matcher(db).evaluate("préstamo", client.id) == "Consulta tu préstamo vigente"


def test_lower_priority_actions_do_not_run_after_a_match(db):
    advisor = make_user(db)
    client = make_client(db, advisor=advisor)
    conversation = open_conversation(db, client)
    make_rule(db, "pago", "alta", priority=10)
    make_rule(
        db, "pago", "baja", priority=1,
        actions=json.dumps({"assignToAdvisor": True, "createNotification": True}),
    )

    assert build_rule_matcher(db).evaluate("pago", client.id) == "alta"

    db.refresh(conversation)
    assert conversation.assigned_to_id is None
    assert db.query(Notification).count() == 0
