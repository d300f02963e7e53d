# main.py

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from database import Base, engine
import models  # noqa: F401  registers every table on Base.metadata
from controllers.order_controller import router as order_router
from controllers.admin_order_controller import router as admin_order_router
from controllers.payment_controller import router as payment_router
from controllers.payment_settings_controller import router as payment_settings_router
from utils.app_config import is_development
from utils.exceptions import ServerError
from utils.logger import logger
from utils.redis_client import redis_client
from utils.response_helper import error_response, success_response


Base.metadata.create_all(bind=engine)

app = FastAPI(title="Storefront Orders API")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # use explicit origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    response = error_response(
        message=str(exc.detail),
        status_code=exc.status_code,
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    return error_response(message=message, status_code=400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(
        message=ServerError.default_message,
        status_code=500,
        error=str(exc) if is_development() else None,
    )


@app.get("/health")
def health():
    return success_response(
        message="OK",
        data={"redis": redis_client.ping()},
    )


app.include_router(order_router)
app.include_router(admin_order_router)
app.include_router(payment_router)
app.include_router(payment_settings_router)
