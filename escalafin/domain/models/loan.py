"""Loan, amortization schedule and payment models."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from escalafin.domain.enums import LoanStatus
from escalafin.domain.models.types import enum_column_type
from escalafin.infrastructure.database import Base


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    loan_number = Column(String(50), unique=True, nullable=False)
    status = Column(enum_column_type(LoanStatus), nullable=False, default=LoanStatus.ACTIVE, index=True)
    principal_amount = Column(Numeric(12, 2), nullable=False)
    balance_remaining = Column(Numeric(12, 2), nullable=False)
    monthly_payment = Column(Numeric(12, 2), nullable=False)
    term_months = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", back_populates="loans")
    amortization_schedule = relationship(
        "AmortizationEntry",
        back_populates="loan",
        order_by="AmortizationEntry.payment_date",
    )

    def __repr__(self):
        return f"<Loan {self.loan_number} - {self.status}>"


class AmortizationEntry(Base):
    __tablename__ = "amortization_schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    payment_number = Column(Integer, nullable=False)
    payment_date = Column(Date, nullable=False, index=True)
    total_payment = Column(Numeric(12, 2), nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)

    loan = relationship("Loan", back_populates="amortization_schedule")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    loan = relationship("Loan")
