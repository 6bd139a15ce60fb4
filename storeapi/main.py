import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storeapi.config import get_settings
from storeapi.database import Base, engine
from storeapi.errors import InternalFailure, InvalidRequest, ServiceError
from storeapi.logging_config import setup_logging
from storeapi.order_routes import router as order_router
from storeapi.routes import router

# Fails fast when MERCHANT_SECRET or DATABASE_URL is missing.
settings = get_settings()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Orders & UPI Payments")

app.include_router(router)
app.include_router(order_router)

Base.metadata.create_all(bind=engine)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "kind": exc.kind})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # Request sessions are rolled back when get_db closes them.
    logger.error("store_failed", extra={"path": request.url.path, "error": type(exc).__name__})
    return JSONResponse(status_code=500, content=InternalFailure("Internal server error").to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=InvalidRequest("Invalid payload").to_dict())


@app.get("/health")
def health():
    return {"status": "ok"}
