"""Fixed WhatsApp message bodies for loan-servicing events."""

from datetime import date, datetime
from decimal import Decimal
from typing import Union

import pytz

from escalafin.config import get_settings
from escalafin.core.formatting import format_currency, format_date_long, format_datetime_long

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)

Amount = Union[int, float, Decimal]

SIGNATURE = "*EscalaFin - Tu aliado financiero*"


def _local(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(tz)


def payment_received_message(
    client_name: str,
    amount: Amount,
    loan_number: str,
    payment_date: datetime,
) -> str:
    formatted_amount = format_currency(amount)
    formatted_date = format_datetime_long(_local(payment_date))

    return "\n".join([
        "🎉 *¡Pago recibido exitosamente!*",
        "",
        f"Hola {client_name},",
        "",
        f"Hemos recibido tu pago de {formatted_amount} para el préstamo #{loan_number}.",
        "",
        f"📅 *Fecha de pago:* {formatted_date}",
        f"💰 *Monto:* {formatted_amount}",
        f"📄 *Préstamo:* #{loan_number}",
        "",
        "¡Gracias por tu puntualidad! Tu historial crediticio se mantiene excelente.",
        "",
        SIGNATURE,
    ])


def payment_reminder_message(
    client_name: str,
    amount: Amount,
    loan_number: str,
    due_date: date,
    days_overdue: int = 0,
) -> str:
    formatted_amount = format_currency(amount)
    formatted_date = format_date_long(due_date)

    if days_overdue > 0:
        status_line = (
            f"Tu pago de {formatted_amount} para el préstamo #{loan_number} "
            f"venció hace {days_overdue} día(s)."
        )
        closing = "⚠️ *Importante:* Para evitar cargos adicionales, realiza tu pago lo antes posible."
    else:
        status_line = (
            f"Tu pago de {formatted_amount} para el préstamo #{loan_number} "
            f"vence el {formatted_date}."
        )
        closing = "Puedes realizar tu pago a través de nuestra plataforma web o contacta a tu asesor."

    return "\n".join([
        "🔔 *Recordatorio de pago*",
        "",
        f"Hola {client_name},",
        "",
        status_line,
        "",
        f"💰 *Monto:* {formatted_amount}",
        f"📄 *Préstamo:* #{loan_number}",
        f"📅 *Fecha de vencimiento:* {formatted_date}",
        "",
        closing,
        "",
        SIGNATURE,
    ])


def loan_approved_message(
    client_name: str,
    amount: Amount,
    loan_number: str,
    monthly_payment: Amount,
    term_months: int,
) -> str:
    return "\n".join([
        "✅ *¡Préstamo aprobado!*",
        "",
        f"¡Felicidades {client_name}!",
        "",
        "Tu solicitud de préstamo ha sido aprobada.",
        "",
        f"💰 *Monto aprobado:* {format_currency(amount)}",
        f"📄 *Número de préstamo:* #{loan_number}",
        f"💳 *Pago mensual:* {format_currency(monthly_payment)}",
        f"📅 *Plazo:* {term_months} meses",
        "",
        "Los fondos serán depositados en tu cuenta en las próximas 24-48 horas hábiles.",
        "",
        SIGNATURE,
    ])
