"""Reconciliation batch API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from royalty_ops.api.dependencies import DbSession
from royalty_ops.api.schemas import (
    AllocationLinkRequest,
    AllocationResponse,
    BatchCreate,
    BatchListResponse,
    BatchResponse,
    BatchSummaryResponse,
    ClearImportResponse,
    ErrorResponse,
    MappingIssueResponse,
    MatchRequest,
    MatchResponse,
    PayoutResponse,
    ProcessResponse,
    StatementImportRequest,
    StatementImportResponse,
    UnprocessRequest,
    UnprocessResponse,
    ValidationResponse,
)
from royalty_ops.services.batch_service import BatchService

router = APIRouter(prefix="/batches", tags=["batches"])

ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


# ============================================================================
# Batch CRUD
# ============================================================================


@router.post(
    "",
    response_model=BatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_batch(db: DbSession, payload: BatchCreate) -> BatchResponse:
    """Create a new batch in Pending status."""
    batch = await BatchService(db).create_batch(**payload.model_dump())
    await db.commit()
    await db.refresh(batch)
    return BatchResponse.model_validate(batch)


@router.get("", response_model=BatchListResponse)
async def list_batches(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> BatchListResponse:
    """List batches, newest first."""
    batches, total = await BatchService(db).list_batches(
        status=status_filter,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return BatchListResponse(
        items=[BatchResponse.model_validate(b) for b in batches],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{batch_id}", response_model=BatchResponse, responses=ERRORS)
async def get_batch(db: DbSession, batch_id: Annotated[UUID, Path()]) -> BatchResponse:
    batch = await BatchService(db).require_batch(batch_id)
    return BatchResponse.model_validate(batch)


@router.get("/{batch_id}/summary", response_model=BatchSummaryResponse, responses=ERRORS)
async def get_batch_summary(
    db: DbSession, batch_id: Annotated[UUID, Path()]
) -> BatchSummaryResponse:
    summary = await BatchService(db).batch_summary(batch_id)
    return BatchSummaryResponse(**summary)


@router.get("/{batch_id}/allocations", response_model=list[AllocationResponse], responses=ERRORS)
async def list_allocations(
    db: DbSession, batch_id: Annotated[UUID, Path()]
) -> list[AllocationResponse]:
    service = BatchService(db)
    await service.require_batch(batch_id)
    return [AllocationResponse.model_validate(a) for a in await service.get_allocations(batch_id)]


# ============================================================================
# Lifecycle
# ============================================================================


@router.post("/{batch_id}/import", response_model=StatementImportResponse, responses=ERRORS)
async def import_statement(
    db: DbSession,
    batch_id: Annotated[UUID, Path()],
    payload: StatementImportRequest,
) -> StatementImportResponse:
    """Import a CSV statement; moves a Pending batch to Imported."""
    result = await BatchService(db).import_statement(batch_id, payload.csv_text, payload.mapping)
    await db.commit()
    await db.refresh(result.batch)
    return StatementImportResponse(
        batch=BatchResponse.model_validate(result.batch),
        allocations_created=result.allocations_created,
        total_gross=result.statement.total_gross,
        mapping=result.statement.mapping,
        unmapped_columns=result.statement.unmapped_columns,
        issues=[MappingIssueResponse.model_validate(i) for i in result.statement.issues],
    )


@router.post("/{batch_id}/match", response_model=MatchResponse, responses=ERRORS)
async def match_allocations(
    db: DbSession,
    batch_id: Annotated[UUID, Path()],
    payload: MatchRequest | None = None,
) -> MatchResponse:
    threshold = payload.threshold if payload else None
    summary = await BatchService(db).match_allocations(batch_id, threshold)
    await db.commit()
    return MatchResponse.model_validate(summary)


@router.post(
    "/{batch_id}/allocations/{allocation_id}/match",
    response_model=AllocationResponse,
    responses=ERRORS,
)
async def link_allocation(
    db: DbSession,
    batch_id: Annotated[UUID, Path()],
    allocation_id: Annotated[UUID, Path()],
    payload: AllocationLinkRequest,
) -> AllocationResponse:
    """Match one allocation to a copyright by hand."""
    allocation = await BatchService(db).link_allocation(
        batch_id, allocation_id, payload.copyright_id
    )
    await db.commit()
    await db.refresh(allocation)
    return AllocationResponse.model_validate(allocation)


@router.post("/{batch_id}/clear-import", response_model=ClearImportResponse, responses=ERRORS)
async def clear_import(db: DbSession, batch_id: Annotated[UUID, Path()]) -> ClearImportResponse:
    """Delete imported allocations and return the batch to Pending."""
    service = BatchService(db)
    removed = await service.clear_import(batch_id)
    await db.commit()
    batch = await service.require_batch(batch_id)
    await db.refresh(batch)
    return ClearImportResponse(
        batch=BatchResponse.model_validate(batch), allocations_removed=removed
    )


@router.post("/{batch_id}/validate", response_model=ValidationResponse, responses=ERRORS)
async def validate_batch(db: DbSession, batch_id: Annotated[UUID, Path()]) -> ValidationResponse:
    validation = await BatchService(db).validate_batch(batch_id)
    return ValidationResponse.model_validate(validation)


@router.post("/{batch_id}/process", response_model=ProcessResponse, responses=ERRORS)
async def process_batch(db: DbSession, batch_id: Annotated[UUID, Path()]) -> ProcessResponse:
    """Split allocations into payee payouts and mark the batch Processed."""
    result = await BatchService(db).process_batch(batch_id)
    await db.commit()
    await db.refresh(result.batch)
    return ProcessResponse(
        batch=BatchResponse.model_validate(result.batch),
        payouts=[PayoutResponse.model_validate(p) for p in result.payouts],
        payees_affected=result.payees_affected,
        total_gross=result.total_gross,
        total_expenses=result.total_expenses,
        total_net=result.total_net,
    )


@router.post("/{batch_id}/unprocess", response_model=UnprocessResponse, responses=ERRORS)
async def unprocess_batch(
    db: DbSession,
    batch_id: Annotated[UUID, Path()],
    payload: UnprocessRequest,
) -> UnprocessResponse:
    """Reverse a processed batch back to Pending."""
    result = await BatchService(db).unprocess_batch(batch_id, payload.reason)
    await db.commit()
    await db.refresh(result.batch)
    return UnprocessResponse(
        batch=BatchResponse.model_validate(result.batch),
        payouts_reversed=result.payouts_reversed,
        expenses_restored=result.expenses_restored,
        total_reversed=result.total_reversed,
    )
