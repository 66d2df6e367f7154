from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carhire.core.config import settings
from carhire.core.errors import DomainError
from carhire.db.session import engine
from carhire.db.base import Base
from carhire.db import models  # noqa: F401 (ensures models are registered)
from carhire.api.router import api_router


#Configure logging before any module logger emits
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


#Create application instance
app = FastAPI(title="Car Hire API")


#configure CORS for the booking site and admin dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, *settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


#Domain errors carry their own HTTP status (404 / 409 / 400 / 500)
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


#Malformed or missing fields are a 400, not FastAPI's default 422
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=400)


#Create all database tables on application startup
@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)
    logger.info("Car Hire API started (business tz %s)", settings.BUSINESS_TIMEZONE)


@app.get("/health")
def health():
    return {"status": "ok"}


#Register all API routes under the main application
app.include_router(api_router)
