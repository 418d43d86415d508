"""Collateral item store - custody of pledged gold tied to loan status"""

import uuid
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from goldloan_core.domain.calculator import money
from goldloan_core.domain.collateral import compute_item_value, summarize_items
from goldloan_core.domain.exceptions import InvalidState, NotFound, ValidationError
from goldloan_core.domain.models import CollateralStatus, CollateralSummary, LoanStatus
from goldloan_core.infrastructure.database.models import GoldItemRecord, LoanRecord
from goldloan_core.infrastructure.database.repositories import GoldItemRepository
from goldloan_core.infrastructure.database.session import atomic
from goldloan_core.infrastructure.observability.logging import log_item_change, log_release
from goldloan_core.infrastructure.observability.metrics import collateral_release_counter
from goldloan_core.services.loans import LoanLifecycleService, new_gold_item, require_text
from goldloan_core.utils.date_utils import utcnow

EDITABLE_FIELDS = ("item_type", "weight_grams", "purity", "rate_at_pledge", "description")


class CollateralStore:
    """Add, edit, release and delete pledged items under loan-status guards"""

    def __init__(self, db: Session):
        self.db = db
        self.items = GoldItemRepository(db)
        self.lifecycle = LoanLifecycleService(db)

    def get(self, item_id: uuid.UUID) -> GoldItemRecord:
        item = self.items.get(item_id)
        if item is None:
            raise NotFound("Gold item", item_id)
        return item

    def list(
        self,
        loan_id: Optional[uuid.UUID] = None,
        status: Optional[CollateralStatus] = None,
    ) -> List[GoldItemRecord]:
        return self.items.list(loan_id=loan_id, status=status)

    def loan_items(self, loan_id: uuid.UUID) -> Tuple[CollateralSummary, List[GoldItemRecord]]:
        """Items of one loan with their summary, folded on read"""
        loan = self.lifecycle.get(loan_id)
        items = list(loan.items)
        return summarize_items(items), items

    def portfolio_summary(self) -> CollateralSummary:
        return summarize_items(self.items.list())

    def add_item(
        self,
        loan_id: uuid.UUID,
        item_type: str,
        weight_grams,
        purity: str,
        rate_at_pledge,
        actor: str,
        description: Optional[str] = None,
    ) -> GoldItemRecord:
        with atomic(self.db):
            loan = self.lifecycle.load_for_update(loan_id)
            self._ensure_editable_loan(loan, "add items to")
            item = new_gold_item(item_type, weight_grams, purity, rate_at_pledge, description)
            item.loan = loan
            self.items.add(item)

        log_item_change(str(loan_id), str(item.id), actor, "add_item")
        return item

    def update_item(self, item_id: uuid.UUID, actor: str, **fields) -> GoldItemRecord:
        """Edit a pledged item; value is recomputed at the rate given, never a live rate"""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError("fields", f"Unknown gold item fields: {', '.join(sorted(unknown))}")

        with atomic(self.db):
            loan, item = self._lock_item(item_id)
            self._ensure_item_pledged(item, "edit")
            self._ensure_editable_loan(loan, "edit items of")

            weight = fields.get("weight_grams", item.weight_grams)
            rate = fields.get("rate_at_pledge", item.rate_at_pledge)
            item.total_value = compute_item_value(weight, rate)
            item.weight_grams = Decimal(str(weight))
            item.rate_at_pledge = money(rate)
            if "item_type" in fields:
                item.item_type = require_text(fields["item_type"], "itemType", "Item type is required")
            if "purity" in fields:
                item.purity = require_text(fields["purity"], "purity", "Purity is required")
            if "description" in fields:
                item.description = fields["description"]

        log_item_change(str(item.loan_id), str(item_id), actor, "update_item")
        return item

    def release_item(
        self,
        item_id: uuid.UUID,
        actor: str,
        released_to_name: str,
        released_to_phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> GoldItemRecord:
        """PLEDGED -> RELEASED, only once the loan is COMPLETED"""
        released_to_name = require_text(released_to_name, "releasedToName", "Recipient name is required")
        with atomic(self.db):
            loan, item = self._lock_item(item_id)
            self._ensure_releasable_loan(loan)
            self._ensure_item_pledged(item, "release")
            self._release(item, actor, released_to_name, released_to_phone, notes)

        collateral_release_counter.inc()
        log_release(str(item.loan_id), actor, 1)
        return item

    def release_all(
        self,
        loan_id: uuid.UUID,
        actor: str,
        released_to_name: str,
        released_to_phone: Optional[str] = None,
        notes: Optional[str] = None,
        expected_status: Optional[LoanStatus] = None,
    ) -> Tuple[int, int]:
        """
        Release every PLEDGED item of a COMPLETED loan as one batch.

        Either all eligible items are released or none are. Items already
        out of custody are skipped. Returns (released_count, total_items).
        """
        released_to_name = require_text(released_to_name, "releasedToName", "Recipient name is required")
        with atomic(self.db):
            loan = self.lifecycle.load_for_update(loan_id, expected_status)
            self._ensure_releasable_loan(loan)
            items = self.items.for_loan_for_update(loan_id)
            pledged = [item for item in items if item.status == CollateralStatus.PLEDGED]
            for item in pledged:
                self._release(item, actor, released_to_name, released_to_phone, notes)

        collateral_release_counter.inc(len(pledged))
        log_release(str(loan_id), actor, len(pledged))
        return len(pledged), len(items)

    def delete_item(self, item_id: uuid.UUID, actor: str) -> None:
        with atomic(self.db):
            loan, item = self._lock_item(item_id)
            self._ensure_item_pledged(item, "delete")
            self._ensure_editable_loan(loan, "delete items of")
            loan_id = item.loan_id
            self.items.delete(item)

        log_item_change(str(loan_id), str(item_id), actor, "delete_item")

    def _lock_item(self, item_id: uuid.UUID) -> Tuple[LoanRecord, GoldItemRecord]:
        """Lock the owning loan, then re-read the item so its guards see committed state"""
        loan = self.lifecycle.load_for_update(self.get(item_id).loan_id)
        item = self.items.get_for_update(item_id)
        if item is None:
            raise NotFound("Gold item", item_id)
        return loan, item

    def _release(self, item: GoldItemRecord, actor: str, name: str, phone: Optional[str], notes: Optional[str]) -> None:
        item.status = CollateralStatus.RELEASED
        item.released_at = utcnow()
        item.released_by_id = actor
        item.released_to_name = name
        item.released_to_phone = phone
        item.release_notes = notes

    @staticmethod
    def _ensure_editable_loan(loan: LoanRecord, action: str) -> None:
        if loan.status != LoanStatus.PENDING:
            raise InvalidState(f"Cannot {action} loan {loan.loan_number} in status {loan.status.value}")

    @staticmethod
    def _ensure_releasable_loan(loan: LoanRecord) -> None:
        if loan.status != LoanStatus.COMPLETED:
            raise InvalidState(
                f"Collateral of loan {loan.loan_number} can only be released once it is COMPLETED "
                f"(currently {loan.status.value})"
            )

    @staticmethod
    def _ensure_item_pledged(item: GoldItemRecord, action: str) -> None:
        if item.status != CollateralStatus.PLEDGED:
            raise InvalidState(f"Cannot {action} gold item in status {item.status.value}")
