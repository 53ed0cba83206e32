"""Template renderer: fills `{variable}` placeholders with live client and loan data.

Available variables:
- {nombre}, {apellido}, {nombre_completo}
- {saldo}, {prestamo_numero} when the client has an active loan
- {proximo_pago}, {fecha_pago} when that loan has an unpaid amortization entry

Unknown placeholders are left untouched, and substituted values are never
scanned again for further placeholders.
"""

import re
from typing import Dict

from escalafin.core.formatting import format_currency, format_date_short
from escalafin.domain.repositories.client_repository import ClientRepository

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class TemplateRenderer:
    def __init__(self, client_repo: ClientRepository):
        self.client_repo = client_repo

    def build_variables(self, client_id: int) -> Dict[str, str]:
        client = self.client_repo.get_by_id(client_id)
        if client is None:
            return {}

        variables = {
            "nombre": client.first_name or "",
            "apellido": client.last_name or "",
            "nombre_completo": f"{client.first_name or ''} {client.last_name or ''}".strip(),
        }

        loan = self.client_repo.get_active_loan(client_id)
        if loan is not None:
            variables["saldo"] = format_currency(loan.balance_remaining)
            variables["prestamo_numero"] = loan.loan_number

            next_entry = self.client_repo.get_next_unpaid_entry(loan.id)
            if next_entry is not None:
                variables["proximo_pago"] = format_currency(next_entry.total_payment)
                variables["fecha_pago"] = format_date_short(next_entry.payment_date)

        return variables

    def render(self, template: str, client_id: int) -> str:
        if not template:
            return template

        variables = self.build_variables(client_id)
        if not variables:
            return template

        return PLACEHOLDER_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), template)
