import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .routers import availability, booking_locks
from .services.availability import AvailabilityError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Clinic Booking API")

app.include_router(availability.router)
app.include_router(booking_locks.router)


@app.exception_handler(AvailabilityError)
async def availability_error_handler(request: Request, exc: AvailabilityError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = (err.get("loc") or ("request",))[-1]
        problems.append(f"Invalid {field}: {err.get('msg', 'invalid value')}")
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s unexpected error", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Unexpected error"})


@app.get("/health")
def health():
    return {"status": "ok"}
