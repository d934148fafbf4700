"""FastAPI application for the confidential AMM dev node.

Note: The node keeps all chain state in process memory. Run a single worker;
multiple workers would each hold a separate chain.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from confidential_amm import __version__
from confidential_amm.api.endpoints import router
from confidential_amm.errors import (
    AuthenticationError,
    CiphertextDecodeError,
    ConfidentialAmmError,
    InsufficientAllowance,
    InsufficientBalance,
    SupplyOverflow,
    Unauthorized,
    UnknownToken,
)
from confidential_amm.models.api import ErrorResponse

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CAMM_HOST", "127.0.0.1")
PORT = int(os.environ.get("CAMM_PORT", "8545"))
DEBUG = os.environ.get("CAMM_DEBUG", "false").lower() in ("true", "1", "yes")

# Error kind -> HTTP status
ERROR_STATUS: dict[type[ConfidentialAmmError], int] = {
    AuthenticationError: 403,
    Unauthorized: 403,
    InsufficientBalance: 409,
    InsufficientAllowance: 409,
    SupplyOverflow: 409,
    CiphertextDecodeError: 400,
    UnknownToken: 400,
}

app = FastAPI(
    title="Confidential AMM dev node",
    description="Constant-product pool over encrypted reserves, served from an in-process chain",
    version=__version__,
)


def _error_response(status_code: int, err: Exception) -> JSONResponse:
    body = ErrorResponse(error=type(err).__name__, detail=str(err))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ConfidentialAmmError)
async def handle_amm_error(request: Request, err: ConfidentialAmmError) -> JSONResponse:
    """Map the error taxonomy to HTTP statuses; unmapped kinds are server errors."""
    status_code = next((code for kind, code in ERROR_STATUS.items() if isinstance(err, kind)), 500)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=type(err).__name__, detail=str(err))
    else:
        logger.info("request_rejected", path=request.url.path, error=type(err).__name__)
    return _error_response(status_code, err)


@app.exception_handler(ValueError)
async def handle_invalid_argument(request: Request, err: ValueError) -> JSONResponse:
    """Arguments a contract rejects outright, such as the zero address."""
    logger.info("request_rejected", path=request.url.path, error="InvalidArgument")
    return JSONResponse(status_code=400, content={"error": "InvalidArgument", "detail": str(err)})


@app.exception_handler(KeyError)
async def handle_unknown_contract(request: Request, err: KeyError) -> JSONResponse:
    """Unknown token or contract address."""
    logger.info("request_rejected", path=request.url.path, error="UnknownContract")
    return JSONResponse(status_code=404, content={"error": "UnknownContract", "detail": str(err.args[0])})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the dev node API server.

    Configuration via environment variables:
    - CAMM_HOST: Host to bind to (default: 127.0.0.1)
    - CAMM_PORT: Port to bind to (default: 8545)
    - CAMM_DEBUG: Enable debug/reload mode (default: false)
    - CAMM_CHAIN_ID: Chain id of the node (default: 31337)
    """
    uvicorn.run(
        "confidential_amm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
