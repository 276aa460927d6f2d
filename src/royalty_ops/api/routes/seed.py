"""Demo data seeding endpoint."""

from fastapi import APIRouter, status

from royalty_ops.api.dependencies import DbSession
from royalty_ops.api.schemas import SeedResponse
from royalty_ops.seed import seed_demo_data

router = APIRouter(tags=["seed"])


@router.post("/seed", response_model=SeedResponse, status_code=status.HTTP_200_OK)
async def seed(db: DbSession) -> SeedResponse:
    """Insert demo data unless payees already exist."""
    counts = await seed_demo_data(db)
    await db.commit()
    return SeedResponse(seeded=bool(counts), counts=counts)
