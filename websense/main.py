from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from websense.api.routes import answer, health
from websense.config import get_settings
from websense.llm_client import close_clients
from websense.research_core.errors import ErrorKind, InvalidRequestError, WebSenseError
from websense.services.logger import configure_logging

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings)
    yield
    # Shutdown
    await close_clients()


app = FastAPI(
    title="WebSense",
    description="Answers questions from live web pages with cited sources",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(answer.router)
app.include_router(health.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidRequestError(
        "Invalid request body",
        details={"validationErrors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


@app.exception_handler(WebSenseError)
async def websense_error_handler(request: Request, exc: WebSenseError):
    logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorKind.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
            }
        },
    )
