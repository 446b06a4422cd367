"""
PaperPortal API - FastAPI backend for the research submission portal
"""

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paperportal.core.abstractions.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedTransitionError,
    ValidationError,
    WorkflowError,
)
from paperportal.utils.logging_config import LogFiles, Logger

from .routes import research

# Load local .env so PAPERPORTAL_* settings apply in API mode.
load_dotenv(find_dotenv(usecwd=True), override=False)

API_VERSION = "0.1.0"

# most specific class first
HTTP_STATUS = (
    (ValidationError, 400),
    (UnauthorizedTransitionError, 403),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
)

app = FastAPI(
    title="PaperPortal API",
    description="Research submission, multi-stage review and publication",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_code_for(exc: WorkflowError) -> int:
    for cls, code in HTTP_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status = status_code_for(exc)
    log = Logger.error if status >= 500 else Logger.warning
    log(
        f"{request.method} {request.url.path} -> {status} {exc.code}: {exc.message}",
        file=LogFiles.ERROR if status >= 500 else LogFiles.API,
    )
    return JSONResponse(status_code=status, content=exc.to_dict())


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": API_VERSION}


app.include_router(research.router, prefix="/api", tags=["Research"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
