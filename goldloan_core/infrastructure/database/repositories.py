"""Data access layer for loans, gold items and payments"""

import uuid
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from goldloan_core.domain.models import CollateralStatus, LoanStatus, PaymentType
from goldloan_core.infrastructure.database.models import GoldItemRecord, LoanRecord, PaymentRecord


class LoanRepository:
    """Repository for loan aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, loan: LoanRecord) -> LoanRecord:
        self.db.add(loan)
        self.db.flush()  # Get ID without committing
        return loan

    def get(self, loan_id: uuid.UUID) -> Optional[LoanRecord]:
        return self.db.get(LoanRecord, loan_id)

    def get_for_update(self, loan_id: uuid.UUID) -> Optional[LoanRecord]:
        """Load a loan holding its row lock until the transaction ends"""
        return (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == loan_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list(self, statuses: Optional[List[LoanStatus]] = None, limit: int = 100) -> List[LoanRecord]:
        query = self.db.query(LoanRecord)
        if statuses:
            query = query.filter(LoanRecord.status.in_(statuses))
        return query.order_by(LoanRecord.loan_number).limit(limit).all()

    def ids_with_status(self, statuses: List[LoanStatus]) -> List[uuid.UUID]:
        rows = self.db.query(LoanRecord.id).filter(LoanRecord.status.in_(statuses)).all()
        return [row.id for row in rows]

    def next_loan_number(self, prefix: str) -> str:
        """One past the highest issued number; the unique constraint rejects a concurrent duplicate"""
        latest = (
            self.db.query(LoanRecord.loan_number)
            .filter(LoanRecord.loan_number.like(f"{prefix}%"))
            .order_by(func.length(LoanRecord.loan_number).desc(), LoanRecord.loan_number.desc())
            .first()
        )
        last = int(latest.loan_number[len(prefix):]) if latest else 0
        return f"{prefix}{last + 1:05d}"

    def delete(self, loan: LoanRecord) -> None:
        self.db.delete(loan)
        self.db.flush()


class GoldItemRepository:
    """Repository for pledged gold items"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, item: GoldItemRecord) -> GoldItemRecord:
        self.db.add(item)
        self.db.flush()
        return item

    def get(self, item_id: uuid.UUID) -> Optional[GoldItemRecord]:
        return self.db.get(GoldItemRecord, item_id)

    def get_for_update(self, item_id: uuid.UUID) -> Optional[GoldItemRecord]:
        """Re-read an item from the database, locking its row"""
        return (
            self.db.query(GoldItemRecord)
            .filter(GoldItemRecord.id == item_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def for_loan_for_update(self, loan_id: uuid.UUID) -> List[GoldItemRecord]:
        return (
            self.db.query(GoldItemRecord)
            .filter(GoldItemRecord.loan_id == loan_id)
            .order_by(GoldItemRecord.created_at)
            .with_for_update()
            .populate_existing()
            .all()
        )

    def list(
        self,
        loan_id: Optional[uuid.UUID] = None,
        status: Optional[CollateralStatus] = None,
    ) -> List[GoldItemRecord]:
        query = self.db.query(GoldItemRecord)
        if loan_id is not None:
            query = query.filter(GoldItemRecord.loan_id == loan_id)
        if status is not None:
            query = query.filter(GoldItemRecord.status == status)
        return query.order_by(GoldItemRecord.created_at).all()

    def delete(self, item: GoldItemRecord) -> None:
        self.db.delete(item)
        self.db.flush()


class PaymentRepository:
    """Append-only access to the payment ledger"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: PaymentRecord) -> PaymentRecord:
        self.db.add(entry)
        self.db.flush()
        return entry

    def get(self, payment_id: uuid.UUID) -> Optional[PaymentRecord]:
        return self.db.get(PaymentRecord, payment_id)

    def list(
        self,
        loan_id: Optional[uuid.UUID] = None,
        payment_type: Optional[PaymentType] = None,
        limit: int = 100,
    ) -> List[PaymentRecord]:
        query = self.db.query(PaymentRecord)
        if loan_id is not None:
            query = query.filter(PaymentRecord.loan_id == loan_id)
        if payment_type is not None:
            query = query.filter(PaymentRecord.payment_type == payment_type)
        return query.order_by(PaymentRecord.payment_date.desc(), PaymentRecord.created_at.desc()).limit(limit).all()

    def count_for_loan(self, loan_id: uuid.UUID) -> int:
        return self.db.query(func.count(PaymentRecord.id)).filter(PaymentRecord.loan_id == loan_id).scalar() or 0

    def repayments(self) -> List[PaymentRecord]:
        return self.db.query(PaymentRecord).filter(PaymentRecord.payment_type != PaymentType.LOAN_DISBURSEMENT).all()
