"""Pledged gold item custody endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from goldloan_core.api.dependencies import get_actor, parse_id
from goldloan_core.api.v1.loans import summary_schema
from goldloan_core.api.v1.schemas import (
    CollateralSummarySchema,
    CreateGoldItemRequest,
    GoldItemResponse,
    LoanGoldItemsResponse,
    ReleaseAllResponse,
    ReleaseRequest,
    UpdateGoldItemRequest,
)
from goldloan_core.domain.models import CollateralStatus
from goldloan_core.infrastructure.database.models import GoldItemRecord
from goldloan_core.infrastructure.database.session import get_db
from goldloan_core.services.collateral import CollateralStore

router = APIRouter()


def item_response(item: GoldItemRecord) -> GoldItemResponse:
    return GoldItemResponse(
        id=str(item.id),
        loan_id=str(item.loan_id),
        item_type=item.item_type,
        description=item.description,
        weight_grams=item.weight_grams,
        purity=item.purity,
        rate_at_pledge=item.rate_at_pledge,
        total_value=item.total_value,
        status=item.status,
        released_at=item.released_at,
        released_by_id=item.released_by_id,
        released_to_name=item.released_to_name,
        released_to_phone=item.released_to_phone,
        release_notes=item.release_notes,
    )


@router.post("/gold-items", response_model=GoldItemResponse, status_code=201)
def create_gold_item(
    request_body: CreateGoldItemRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Pledge an item against a PENDING loan"""
    item = CollateralStore(db).add_item(
        parse_id(request_body.loan_id, "loanId"),
        item_type=request_body.item_type,
        weight_grams=request_body.weight_grams,
        purity=request_body.purity,
        rate_at_pledge=request_body.rate_at_pledge,
        actor=actor,
        description=request_body.description,
    )
    return item_response(item)


@router.get("/gold-items", response_model=List[GoldItemResponse])
def list_gold_items(
    loan_id: Optional[str] = Query(None, alias="loanId"),
    status: Optional[CollateralStatus] = Query(None),
    db: Session = Depends(get_db),
):
    items = CollateralStore(db).list(
        loan_id=parse_id(loan_id, "loanId") if loan_id else None,
        status=status,
    )
    return [item_response(item) for item in items]


@router.get("/gold-items/stats/summary", response_model=CollateralSummarySchema)
def get_gold_item_stats(db: Session = Depends(get_db)):
    """Portfolio-wide custody totals, folded over every item on read"""
    return summary_schema(CollateralStore(db).portfolio_summary())


@router.get("/gold-items/loan/{loan_id}", response_model=LoanGoldItemsResponse)
def get_loan_gold_items(loan_id: str, db: Session = Depends(get_db)):
    summary, items = CollateralStore(db).loan_items(parse_id(loan_id, "loanId"))
    return LoanGoldItemsResponse(
        summary=summary_schema(summary),
        items=[item_response(item) for item in items],
    )


@router.put("/gold-items/loan/{loan_id}/release-all", response_model=ReleaseAllResponse)
def release_all_gold_items(
    loan_id: str,
    request_body: ReleaseRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """
    Hand back every pledged item of a COMPLETED loan.

    All-or-nothing: if any guard fails no item changes state.
    """
    released, total = CollateralStore(db).release_all(
        parse_id(loan_id, "loanId"),
        actor,
        released_to_name=request_body.released_to_name,
        released_to_phone=request_body.released_to_phone,
        notes=request_body.release_notes,
        expected_status=request_body.expected_status,
    )
    return ReleaseAllResponse(released_count=released, total_items=total)


@router.get("/gold-items/{item_id}", response_model=GoldItemResponse)
def get_gold_item(item_id: str, db: Session = Depends(get_db)):
    return item_response(CollateralStore(db).get(parse_id(item_id, "itemId")))


@router.put("/gold-items/{item_id}", response_model=GoldItemResponse)
def update_gold_item(
    item_id: str,
    request_body: UpdateGoldItemRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    fields = request_body.model_dump(exclude_unset=True)
    item = CollateralStore(db).update_item(parse_id(item_id, "itemId"), actor, **fields)
    return item_response(item)


@router.put("/gold-items/{item_id}/release", response_model=GoldItemResponse)
def release_gold_item(
    item_id: str,
    request_body: ReleaseRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    item = CollateralStore(db).release_item(
        parse_id(item_id, "itemId"),
        actor,
        released_to_name=request_body.released_to_name,
        released_to_phone=request_body.released_to_phone,
        notes=request_body.release_notes,
    )
    return item_response(item)


@router.delete("/gold-items/{item_id}", status_code=204)
def delete_gold_item(item_id: str, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    CollateralStore(db).delete_item(parse_id(item_id, "itemId"), actor)
    return Response(status_code=204)
