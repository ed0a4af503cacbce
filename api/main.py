"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from api.routes import account, game
from api.websocket import router as ws_router
from config import config
from core.exceptions import (
    AccountNotFound,
    ActionInProgress,
    BalanceServiceError,
    BlackjackError,
    DeckExhausted,
    InsufficientFunds,
    InvalidAction,
    InvalidBet,
    LedgerServiceError,
)

config.logging.apply()
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    enabled=config.rate_limit.enabled,
    default_limits=[f"{config.rate_limit.requests_per_minute}/minute"],
)

# HTTP status for each domain error
ERROR_STATUS: dict[type[BlackjackError], int] = {
    InvalidBet: 400,
    InsufficientFunds: 400,
    InvalidAction: 400,
    ActionInProgress: 409,
    DeckExhausted: 409,
    AccountNotFound: 404,
    BalanceServiceError: 503,
    LedgerServiceError: 503,
}


def status_for(exc: BlackjackError) -> int:
    """Find the HTTP status for an error, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


def _blackjack_error_handler(request: Request, exc: BlackjackError) -> JSONResponse:
    """Turn domain errors into inline error messages."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": exc.code},
    )


app = FastAPI(
    title="Casino Blackjack",
    description="Blackjack round engine with balance settlement and bet ledger",
    version="0.1.0",
)

# Add rate limiter to app state and exception handlers
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(BlackjackError, _blackjack_error_handler)

# CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors.allowed_origins,
    allow_credentials=config.cors.allow_credentials,
    allow_methods=config.cors.allow_methods,
    allow_headers=config.cors.allow_headers,
)


@app.get("/api/health")
@limiter.limit(f"{config.rate_limit.requests_per_minute}/minute")
async def health_check(request: Request) -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(game.router, prefix="/api/game", tags=["game"])
app.include_router(account.router, prefix="/api/account", tags=["account"])
app.include_router(ws_router, prefix="/ws", tags=["websocket"])


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    run()
