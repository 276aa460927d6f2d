"""Payout workflow API endpoints."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Path, Query

from royalty_ops.api.dependencies import DbSession
from royalty_ops.api.schemas import (
    ErrorResponse,
    HoldRequest,
    PaymentRequest,
    PayoutResponse,
)
from royalty_ops.services.payout_service import PayoutService

router = APIRouter(prefix="/payouts", tags=["payouts"])

ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("", response_model=list[PayoutResponse])
async def list_payouts(
    db: DbSession,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    payee_id: UUID | None = None,
    batch_id: UUID | None = None,
) -> list[PayoutResponse]:
    payouts = await PayoutService(db).list_payouts(status_filter, payee_id, batch_id)
    return [PayoutResponse.model_validate(p) for p in payouts]


@router.get("/totals")
async def payout_totals(db: DbSession) -> dict[str, dict[str, Any]]:
    """Count and net payable per workflow stage."""
    return await PayoutService(db).payout_totals()


@router.get("/{payout_id}", response_model=PayoutResponse, responses=ERRORS)
async def get_payout(db: DbSession, payout_id: Annotated[UUID, Path()]) -> PayoutResponse:
    return PayoutResponse.model_validate(await PayoutService(db).get_payout(payout_id))


@router.post("/{payout_id}/approve", response_model=PayoutResponse, responses=ERRORS)
async def approve_payout(db: DbSession, payout_id: Annotated[UUID, Path()]) -> PayoutResponse:
    payout = await PayoutService(db).approve(payout_id)
    await db.commit()
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/start-processing", response_model=PayoutResponse, responses=ERRORS)
async def start_processing(db: DbSession, payout_id: Annotated[UUID, Path()]) -> PayoutResponse:
    payout = await PayoutService(db).start_processing(payout_id)
    await db.commit()
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/pay", response_model=PayoutResponse, responses=ERRORS)
async def mark_paid(
    db: DbSession,
    payout_id: Annotated[UUID, Path()],
    payload: PaymentRequest,
) -> PayoutResponse:
    payout = await PayoutService(db).mark_paid(
        payout_id, payload.payment_reference, payload.payment_date
    )
    await db.commit()
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/hold", response_model=PayoutResponse, responses=ERRORS)
async def hold_payout(
    db: DbSession,
    payout_id: Annotated[UUID, Path()],
    payload: HoldRequest | None = None,
) -> PayoutResponse:
    payout = await PayoutService(db).hold(payout_id, payload.reason if payload else None)
    await db.commit()
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/release", response_model=PayoutResponse, responses=ERRORS)
async def release_payout(db: DbSession, payout_id: Annotated[UUID, Path()]) -> PayoutResponse:
    payout = await PayoutService(db).release(payout_id)
    await db.commit()
    return PayoutResponse.model_validate(payout)
