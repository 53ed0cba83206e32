"""
SQLAlchemy Implementation of Client Repository.
"""

from datetime import date
from typing import List, Optional

from escalafin.domain.enums import LoanStatus
from escalafin.domain.models.client import Client
from escalafin.domain.models.loan import AmortizationEntry, Loan, Payment
from escalafin.domain.repositories.client_repository import ClientRepository
from escalafin.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyClientRepository(SQLAlchemyRepository[Client], ClientRepository):
    """Client repository implementation using SQLAlchemy."""

    def find_by_phone_suffix(self, suffix: str) -> Optional[Client]:
        if not suffix:
            return None
        return (
            self.db.query(Client)
            .filter(Client.phone.contains(suffix))
            .order_by(Client.id)
            .first()
        )

    def has_active_loans(self, client_id: int) -> bool:
        return (
            self.db.query(Loan.id)
            .filter(Loan.client_id == client_id, Loan.status == LoanStatus.ACTIVE)
            .first()
            is not None
        )

    def get_active_loan(self, client_id: int) -> Optional[Loan]:
        return (
            self.db.query(Loan)
            .filter(Loan.client_id == client_id, Loan.status == LoanStatus.ACTIVE)
            .order_by(Loan.id)
            .first()
        )

    def get_loan(self, loan_id: int) -> Optional[Loan]:
        return self.db.get(Loan, loan_id)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        return self.db.get(Payment, payment_id)

    def get_next_unpaid_entry(self, loan_id: int) -> Optional[AmortizationEntry]:
        return (
            self.db.query(AmortizationEntry)
            .filter(AmortizationEntry.loan_id == loan_id, AmortizationEntry.is_paid.is_(False))
            .order_by(AmortizationEntry.payment_date.asc(), AmortizationEntry.id.asc())
            .first()
        )

    def get_unpaid_entries_due_between(self, start: date, end: date) -> List[AmortizationEntry]:
        return (
            self.db.query(AmortizationEntry)
            .filter(
                AmortizationEntry.is_paid.is_(False),
                AmortizationEntry.payment_date >= start,
                AmortizationEntry.payment_date <= end,
            )
            .order_by(AmortizationEntry.payment_date.asc(), AmortizationEntry.id.asc())
            .all()
        )

    def get_unpaid_entries_due_before(self, day: date) -> List[AmortizationEntry]:
        return (
            self.db.query(AmortizationEntry)
            .filter(
                AmortizationEntry.is_paid.is_(False),
                AmortizationEntry.payment_date < day,
            )
            .order_by(AmortizationEntry.payment_date.asc(), AmortizationEntry.id.asc())
            .all()
        )
