"""API routes."""

from royalty_ops.api.routes.assistant import router as assistant_router
from royalty_ops.api.routes.batches import router as batches_router
from royalty_ops.api.routes.health import router as health_router
from royalty_ops.api.routes.operations import router as operations_router
from royalty_ops.api.routes.payouts import router as payouts_router
from royalty_ops.api.routes.seed import router as seed_router

__all__ = [
    "assistant_router",
    "batches_router",
    "health_router",
    "operations_router",
    "payouts_router",
    "seed_router",
]
