"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from submission_gateway.api import admin, device_flow, health, submissions
from submission_gateway.config import settings
from submission_gateway.core.logging import setup_logging
from submission_gateway.core.tracing import TracingContext
from submission_gateway.middleware.error_codes import ErrorCode, error_body
from submission_gateway.services.github.exceptions import (
    GithubApiError,
    GithubAuthenticationError,
    GithubConfigurationError,
    GithubPermissionError,
)
from submission_gateway.services.submission_errors import (
    DraftConversionError,
    DraftConversionPendingError,
    SubmissionPublishError,
    SubmissionValidationError,
)

setup_logging()
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

app = FastAPI(
    title="Battle Result Submission API",
    description="Validates battle-result uploads and publishes them as draft pull requests",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def tracing_middleware(request: Request, call_next):
    """Tag the request with a correlation id; answer every OPTIONS with 200."""
    correlation_id = (
        request.headers.get("X-Correlation-ID") or TracingContext.generate_correlation_id()
    )
    TracingContext.clear()
    TracingContext.set(correlation_id=correlation_id)

    if request.method == "OPTIONS":
        response = Response(status_code=200, headers=CORS_HEADERS)
    else:
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.exception_handler(SubmissionValidationError)
async def handle_validation_error(request: Request, exc: SubmissionValidationError):
    return JSONResponse(
        status_code=400,
        content=error_body(
            str(exc),
            400,
            code=ErrorCode.VALIDATION_ERROR,
            errors=exc.errors,
            warnings=exc.warnings,
        ),
    )


@app.exception_handler(SubmissionPublishError)
async def handle_publish_error(request: Request, exc: SubmissionPublishError):
    logger.error(
        "Publish failed at %s: %s",
        exc.step,
        exc,
        extra={"upstream_status": exc.upstream_status},
    )
    return JSONResponse(
        status_code=502,
        content=error_body(
            str(exc),
            502,
            upstreamStatus=exc.upstream_status,
            step=exc.step,
            branch=exc.branch,
            uploaded=exc.uploaded or None,
        ),
    )


@app.exception_handler(DraftConversionError)
async def handle_conversion_error(request: Request, exc: DraftConversionError):
    return JSONResponse(status_code=400, content=error_body(str(exc), 400, details=exc.details))


@app.exception_handler(DraftConversionPendingError)
async def handle_conversion_pending(request: Request, exc: DraftConversionPendingError):
    return JSONResponse(
        status_code=504,
        content=error_body(str(exc), 504, details=exc.details, pending=True),
    )


@app.exception_handler(GithubAuthenticationError)
async def handle_auth_error(request: Request, exc: GithubAuthenticationError):
    return JSONResponse(status_code=401, content=error_body(str(exc), 401))


@app.exception_handler(GithubPermissionError)
async def handle_permission_error(request: Request, exc: GithubPermissionError):
    return JSONResponse(status_code=403, content=error_body(str(exc), 403))


@app.exception_handler(GithubConfigurationError)
async def handle_configuration_error(request: Request, exc: GithubConfigurationError):
    return JSONResponse(
        status_code=500,
        content=error_body(str(exc), 500, code=ErrorCode.CONFIGURATION_ERROR),
    )


@app.exception_handler(GithubApiError)
async def handle_github_error(request: Request, exc: GithubApiError):
    # Caller-token rejections keep their status; anything else is a gateway failure.
    status_code = exc.status_code if exc.status_code in (401, 403, 404) else 502
    logger.warning("GitHub call failed: %s", exc, extra={"upstream_status": exc.status_code})
    return JSONResponse(
        status_code=status_code,
        content=error_body(
            str(exc),
            status_code,
            upstreamStatus=exc.status_code,
            details=exc.remote_message or None,
        ),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body(errors[0] if errors else "Invalid request", 400, errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )


app.include_router(health.router, tags=["Health"])
app.include_router(submissions.router)
app.include_router(admin.router)
app.include_router(device_flow.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "submission_gateway.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG
    )
