"""
Client Repository Interface.
Read access to clients, their loans and amortization schedules.
"""

from datetime import date
from typing import List, Optional

from escalafin.domain.repositories.base import BaseRepository
from escalafin.domain.models.client import Client
from escalafin.domain.models.loan import AmortizationEntry, Loan, Payment


class ClientRepository(BaseRepository[Client]):
    """Interface for Client-specific operations."""

    def find_by_phone_suffix(self, suffix: str) -> Optional[Client]:
        """First client whose stored phone contains the given digits."""
        ...

    def has_active_loans(self, client_id: int) -> bool:
        """Whether the client has at least one ACTIVE loan."""
        ...

    def get_active_loan(self, client_id: int) -> Optional[Loan]:
        """The client's first ACTIVE loan, if any."""
        ...

    def get_loan(self, loan_id: int) -> Optional[Loan]:
        ...

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        ...

    def get_next_unpaid_entry(self, loan_id: int) -> Optional[AmortizationEntry]:
        """Earliest unpaid amortization entry of a loan."""
        ...

    def get_unpaid_entries_due_between(self, start: date, end: date) -> List[AmortizationEntry]:
        """Unpaid entries with start <= payment_date <= end."""
        ...

    def get_unpaid_entries_due_before(self, day: date) -> List[AmortizationEntry]:
        """Unpaid entries with payment_date < day."""
        ...
