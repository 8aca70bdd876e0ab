# ticketing/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ticketing.exceptions import TicketingError
from ticketing.log import configure_logging
from ticketing.routes import customer, event_manager, events, paystack

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    from ticketing.database import client, store

    await store.ensure_indexes()
    logger.info("startup_complete")
    yield
    client.close()


app = FastAPI(title="Event Ticketing System", lifespan=lifespan)

# Include routers with appropriate prefixes
app.include_router(events.router, prefix="/events", tags=["Events"])
app.include_router(customer.router, prefix="/customer", tags=["Customer"])
app.include_router(event_manager.router, prefix="/manager", tags=["Event Manager"])
app.include_router(paystack.router, prefix="/paystack", tags=["Paystack"])


@app.exception_handler(TicketingError)
async def handle_ticketing_error(request: Request, exc: TicketingError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=type(exc).__name__, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("INTERNAL_SERVER_ERROR", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error."})


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
