"""
FastAPI Main Application.
Sync mode for simplicity and SQLite compatibility.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import router, TAGS_METADATA
from config import HOST, IS_PRODUCTION, LOG_LEVEL, PORT
from database import init_db

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# HTTP status -> error code for errors raised with a plain string detail
CODE_BY_STATUS = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    422: "VALIDATION_ERROR",
}

app = FastAPI(
    title="Work Log Tracker",
    description="""
## Work Log Tracker API

Records hours worked per project and category, and reports on them.

### Features

* **Work logs**: create, read, update, delete
* **Listing**: filtered, paginated listing with visibility scopes
* **Export**: CSV export of up to 31 days
* **Dashboard**: hour totals per day, project, category or team member, with period summaries

### Authentication

All endpoints except `/` and `/health` require an API key:

```
X-API-Key: your_api_key_here
```

### Scopes

* **own**: the caller's work logs (default)
* **team**: work logs of everyone in the caller's teams
* **all**: every work log (admin only)
* **user**: one user's work logs (`userId`; admin, or the caller themselves)

### Errors

```
{"success": false, "error": {"code": "...", "message": "...", "details": ...}}
```
""",
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    contact={
        "name": "Work Log Tracker",
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router)


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors in the error envelope."""
    if isinstance(exc.detail, dict):
        return error_response(
            exc.status_code,
            exc.detail.get("code", CODE_BY_STATUS.get(exc.status_code, "INTERNAL_ERROR")),
            exc.detail.get("message", ""),
            exc.detail.get("details"),
        )
    return error_response(
        exc.status_code,
        CODE_BY_STATUS.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "ERROR"),
        str(exc.detail),
    )


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request body validation failures as VALIDATION_ERROR."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(loc), "message": message})
    return error_response(400, "VALIDATION_ERROR", "Invalid request data", details)


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        500,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
        None if IS_PRODUCTION else str(exc),
    )


@app.on_event("startup")
def on_startup():
    """Initialize database on startup."""
    init_db()
    logger.info("Database initialized")


@app.get(
    "/",
    tags=["Health"],
    summary="Service status",
    description="Confirms the service is running. No authentication required.",
)
def root():
    """Health check."""
    return {"status": "ok", "service": "work-log-tracker"}


@app.get(
    "/health",
    tags=["Health"],
    summary="Health check",
    description="Health check endpoint. No authentication required.",
)
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=HOST, port=PORT)
