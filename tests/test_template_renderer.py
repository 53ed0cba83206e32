from datetime import date

from escalafin.core.formatting import format_currency, format_date_long, format_date_short
from escalafin.domain.enums import LoanStatus
from escalafin.domain.models.client import Client
from escalafin.infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from escalafin.application.services.template_renderer import TemplateRenderer

from conftest import make_client, make_entry, make_loan


def renderer_for(db):
    return TemplateRenderer(SQLAlchemyClientRepository(db, Client))


def test_renders_client_and_loan_variables(db):
    client = make_client(db)
    loan = make_loan(db, client)
    make_entry(db, loan, date(2025, 4, 5), amount="999.99", number=2)
    make_entry(db, loan, date(2025, 3, 5), amount="1250.50", number=1)

    text = renderer_for(db).render(
        "Hola {nombre} {apellido}. Saldo {saldo} del #{prestamo_numero}. "
        "Próximo pago {proximo_pago} el {fecha_pago}.",
        client.id,
    )

    assert text == (
        "Hola Ana López. Saldo $12,500.00 del #PRE-0001. "
        "Próximo pago $1,250.50 el 5/3/2025."
    )


def test_unknown_placeholders_are_kept(db):
    client = make_client(db)

    text = renderer_for(db).render("{nombre_completo}: {saldo} {desconocido}", client.id)

    # No active loan, so {saldo} has no value either
    assert text == "Ana López: {saldo} {desconocido}"


def test_inactive_loan_is_ignored(db):
    client = make_client(db)
    make_loan(db, client, status=LoanStatus.PAID_OFF)

    assert renderer_for(db).render("{saldo}", client.id) == "{saldo}"


def test_substituted_values_are_not_rescanned(db):
    client = make_client(db, first_name="{apellido}", last_name="Pérez")

    assert renderer_for(db).render("Hola {nombre}", client.id) == "Hola {apellido}"


def test_missing_client_returns_template(db):
    assert renderer_for(db).render("Hola {nombre}", 999) == "Hola {nombre}"


def test_formatting_helpers():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-20) == "-$20.00"
    assert format_currency(None) == "$0.00"
    assert format_date_short(date(2025, 12, 31)) == "31/12/2025"
    assert format_date_long(date(2025, 3, 5)) == "5 de marzo de 2025"


def test_rendering_twice_gives_the_same_text(db):
    client = make_client(db)
    loan = make_loan(db, client)
    make_entry(db, loan, date(2025, 3, 5), amount="1250.50", number=1)
    template = "{nombre}: saldo {saldo}, pago {proximo_pago} el {fecha_pago} {otro}"
    renderer = renderer_for(db)

    assert renderer.render(template, client.id) == renderer.render(template, client.id)
