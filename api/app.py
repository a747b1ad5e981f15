"""
FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import json
import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health, wallet, github, merkle
from api.errors import (
    APIError,
    api_error_handler,
    domain_error_handler,
    generic_error_handler,
    validation_error_handler,
)
from core.schemas.errors import OracleNetException


# Configure logging - respects ORACLENET_LOG_LEVEL env var and oraclenet.json log_level
def _resolve_log_level() -> int:
    """Resolve log level from env var or oraclenet.json, defaulting to INFO."""
    raw = os.getenv("ORACLENET_LOG_LEVEL")
    if raw is None:
        cfg_path = Path.cwd() / "oraclenet.json"
        if cfg_path.exists():
            try:
                with open(cfg_path) as f:
                    raw = json.load(f).get("log_level")
            except (OSError, ValueError, AttributeError):
                raw = None
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="OracleNet Identity API",
        description="""
Passwordless identity for Oracles and their owners.

## Endpoints

- **POST /auth/wallet/nonce** - Issue a sign-in challenge for a wallet
- **POST /auth/wallet/verify** - Verify the signed challenge, get a session token
- **POST /auth/wallet/link** - Bind a verified wallet to an existing identity
- **POST /auth/github/start** - Get a code to post on a repository's birth issue
- **POST /auth/github/verify** - Verify the code was posted by the issue author
- **GET /merkle/root** - Current membership root
- **GET /merkle/proof/{wallet}/{issueNumber}** - Inclusion proof for one Oracle
- **GET /health** - Health check

## Membership proofs

Leaves are `keccak256(keccak256(abi.encode(address, string, uint256)))`,
internal nodes hash the sorted pair, and an unpaired node is carried up.
Proofs can be checked on-chain or offline from `(leaf, proof, root)` alone.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(OracleNetException, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(wallet.router)
    app.include_router(github.router)
    app.include_router(merkle.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
