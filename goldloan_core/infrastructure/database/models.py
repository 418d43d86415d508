"""SQLAlchemy ORM models for loans, pledged gold items and the payment ledger"""

import uuid
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from goldloan_core.domain.models import (
    CollateralStatus,
    LoanStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)

Base = declarative_base()


def _enum(enum_cls, name: str) -> Enum:
    # Non-native so unknown values are rejected by SQLAlchemy on every backend
    return Enum(enum_cls, name=name, native_enum=False, validate_strings=True, length=32)


class LoanRecord(Base):
    """Gold-backed loan aggregate root"""

    __tablename__ = "loans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_number = Column(Text, nullable=False, unique=True)
    customer_id = Column(Text, nullable=False, index=True)

    principal_amount = Column(Numeric(14, 2), nullable=False)
    interest_rate_percent = Column(Numeric(6, 2), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    total_interest = Column(Numeric(14, 2), nullable=True)
    emi_amount = Column(Numeric(14, 2), nullable=True)  # frozen at approval

    status = Column(_enum(LoanStatus, "loan_status"), nullable=False, default=LoanStatus.PENDING, index=True)
    disbursed_date = Column(Date, nullable=True)
    maturity_date = Column(Date, nullable=True)
    outstanding_balance = Column(Numeric(14, 2), nullable=False)

    approval_remarks = Column(Text, nullable=True)
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_remarks = Column(Text, nullable=True)
    rejected_by = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    disbursed_by = Column(Text, nullable=True)
    default_remarks = Column(Text, nullable=True)
    defaulted_by = Column(Text, nullable=True)
    defaulted_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    version = Column(Integer, nullable=False)

    items = relationship(
        "GoldItemRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="GoldItemRecord.created_at",
    )
    payments = relationship(
        "PaymentRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.created_at",
    )

    __mapper_args__ = {"version_id_col": version}


class GoldItemRecord(Base):
    """Pledged collateral item held in custody against a loan"""

    __tablename__ = "gold_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loans.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    weight_grams = Column(Numeric(10, 3), nullable=False)
    purity = Column(Text, nullable=False)
    rate_at_pledge = Column(Numeric(14, 2), nullable=False)
    total_value = Column(Numeric(14, 2), nullable=False)
    status = Column(_enum(CollateralStatus, "collateral_status"), nullable=False, default=CollateralStatus.PLEDGED)

    released_at = Column(DateTime(timezone=True), nullable=True)
    released_by_id = Column(Text, nullable=True)
    released_to_name = Column(Text, nullable=True)
    released_to_phone = Column(Text, nullable=True)
    release_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    version = Column(Integer, nullable=False)

    loan = relationship("LoanRecord", back_populates="items")

    __mapper_args__ = {"version_id_col": version}


class PaymentRecord(Base):
    """Append-only ledger entry; never updated after insert"""

    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loans.id", ondelete="RESTRICT"), nullable=False, index=True)
    receipt_number = Column(Text, nullable=False, unique=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_type = Column(_enum(PaymentType, "payment_type"), nullable=False)
    payment_method = Column(_enum(PaymentMethod, "payment_method"), nullable=False)
    status = Column(_enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.COMPLETED)
    payment_date = Column(Date, nullable=False)
    transaction_ref = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    recorded_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("LoanRecord", back_populates="payments")
