"""MetaLens API – FastAPI app exposing metadata extraction and AI generation."""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ai_service import generate_metadata
from errors import AppError, GenerationError, ValidationError, error_body, to_error_response
from schemas import ErrorResponse, GenerateRequest, MetadataRequest
from scraper import fetch_metadata

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MetaLens API",
    description="Webpage metadata inspector and AI metadata generator",
    version="0.1.0",
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    body, status = to_error_response(exc)
    if status >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return JSONResponse(status_code=400, content=error_body("Invalid JSON in request or response", "PARSE_ERROR"))

    first = errors[0] if errors else {}
    message = str(first.get("msg") or "Invalid request").removeprefix("Value error, ")
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if first.get("type") != "value_error" and field:
        message = f"{field}: {message}"
    return handle_app_error(request, ValidationError(message, details=errors))


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body, status = to_error_response(exc)
    return JSONResponse(status_code=status, content=body)


@app.post("/metadata")
def metadata(body: MetadataRequest) -> dict:
    """Fetch the page and return its extracted metadata."""
    logger.info("Fetching metadata for %s", body.url)
    result = fetch_metadata(body.url)
    logger.info("Metadata fetched successfully for %s", body.url)
    return result


@app.post("/generate")
def generate(body: GenerateRequest) -> dict:
    """
    Pipeline: [extract page] -> build prompt -> Claude -> recover JSON -> reconcile.
    """
    try:
        return generate_metadata(url=body.url, prompt=body.prompt)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Error generating metadata")
        raise GenerationError() from exc


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}
