"""FastAPI routers for API endpoints."""

from .agents import router as agents_router
from .bank import router as bank_router
from .bets import router as bets_router
from .feed import router as feed_router
from .social import router as social_router

__all__ = [
    "agents_router",
    "bank_router",
    "bets_router",
    "feed_router",
    "social_router",
]
