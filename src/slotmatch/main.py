"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slotmatch.dependencies import get_db
from slotmatch.errors import SlotmatchError, ValidationError
from slotmatch.routes import ai, auth, meetings, notifications, slots

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = get_db()
    log.info("Using database at %s", db.db_path)
    yield


app = FastAPI(title="Slotmatch API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(slots.router, prefix="/slot", tags=["slots"])
app.include_router(meetings.router, prefix="/meet", tags=["meetings"])
app.include_router(ai.router, prefix="/ai", tags=["ai"])
app.include_router(notifications.router, prefix="/notification", tags=["notifications"])


@app.exception_handler(SlotmatchError)
async def slotmatch_error_handler(request: Request, exc: SlotmatchError):
    if exc.status_code >= 500:
        log.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"detail": jsonable_encoder(exc.errors()), "kind": ValidationError.kind},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}
