"""FastAPI application main module.

This module defines the StoreRec application: behavior tracking,
recommendation and catalog routes, error handlers, request logging, and
the health, status and metrics endpoints.
"""

from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from storerec import __version__
from storerec.api.dependencies import get_store
from storerec.api.exceptions import StoreRecException
from storerec.api.logging_config import RequestLoggingMiddleware, setup_logging
from storerec.api.metrics import metrics_service
from storerec.api.routes import behavior, products, recommend
from storerec.recommender.storage import InMemoryStore

setup_logging()

# Create FastAPI application instance
app = FastAPI(
    title="StoreRec API",
    description="Behavior-driven product recommendations for the storefront",
    version=__version__,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(behavior.router)
app.include_router(recommend.router)
app.include_router(products.router)


@app.exception_handler(StoreRecException)
async def storerec_exception_handler(request: Request, exc: StoreRecException) -> JSONResponse:
    """Render StoreRec errors as ``{error, message, details}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Returns:
        Dictionary with status key set to "ok".
    """
    return {"status": "ok"}


@app.get("/status")
def status(store: InMemoryStore = Depends(get_store)) -> Dict[str, Any]:
    """Report catalog and behavior log sizes."""
    return {"version": __version__, **store.stats()}


@app.get("/metrics")
def metrics() -> Dict[str, Any]:
    """Report recommendation counts and latency statistics."""
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storerec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
