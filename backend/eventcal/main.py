# backend/eventcal/main.py
from contextlib import asynccontextmanager
from datetime import timezone
from typing import Optional
from pathlib import Path
import os

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session
from dateutil.parser import isoparse as iso_parse

# ── local modules ───────────────────────────────────────────────────
from .access import CalendarService
from .db import DB_URL, engine, get_db
from .errors import CalendarError, ValidationError
from .log import get_logger
from .schemas import EventIn, EventOut, EventPatch, UserIn, UserOut
from .storage import CalendarStore
# ────────────────────────────────────────────────────────────────────

logger = get_logger(__name__)

# ───────────────────────── DB migrations (optional) ─────────────────
from alembic import command
from alembic.config import Config


def run_migrations(url: Optional[str] = None) -> None:
    app_dir = Path(__file__).resolve().parent
    cfg = Config(str(app_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(app_dir / "migrations"))
    # ini values are interpolated, a literal % has to be doubled
    cfg.set_main_option("sqlalchemy.url", (url or DB_URL).replace("%", "%%"))
    command.upgrade(cfg, "head")


# Columns added after the initial schema; nullable or defaulted so they can
# be added to a live table.
ADDITIVE_EVENT_COLUMNS = {
    "location_name": "VARCHAR(255)",
    "created_at": "BIGINT NOT NULL DEFAULT 0",
    "edited_at": "BIGINT",
}


def ensure_event_columns(engine) -> None:
    with engine.begin() as conn:
        insp = inspect(conn)
        if not insp.has_table("events"):
            return
        cols = {c["name"] for c in insp.get_columns("events")}
        for name, ddl in ADDITIVE_EVENT_COLUMNS.items():
            if name not in cols:
                logger.warning("Adding missing column events.%s", name)
                conn.exec_driver_sql(f"ALTER TABLE events ADD COLUMN {name} {ddl}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("AUTO_MIGRATE") == "1":
        run_migrations()
        ensure_event_columns(engine)
    yield


app = FastAPI(title="eventcal API", lifespan=lifespan)

# ───────────────────────── CORS ─────────────────────────────────────
from fastapi.middleware.cors import CORSMiddleware

def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None

FRONTEND_ORIGIN = _clean(os.getenv("FRONTEND_ORIGIN")) or "http://localhost:5173"
_raw_extra = os.getenv("EXTRA_CORS_ORIGINS", "")
EXTRA = [x for x in (_clean(p) for p in _raw_extra.split(",")) if x]
allow_origins = ["*"] if "*" in EXTRA else [o for o in {FRONTEND_ORIGIN, *EXTRA} if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)

# ───────────────────────── Error envelope ───────────────────────────
def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


@app.exception_handler(CalendarError)
async def calendar_error_handler(request: Request, exc: CalendarError):
    if exc.retryable:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.http_status, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return _error_response(ValidationError.http_status, ValidationError.code, message)


def get_service(db: Session = Depends(get_db)) -> CalendarService:
    return CalendarService(CalendarStore(db))

# ───────────────────────── Lifecycle & health ───────────────────────
@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/dbcheck")
def dbcheck(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"db": "ok"}

# ───────────────────────── Users ────────────────────────────────────
@app.get("/api/user", response_model=list[UserOut])
def list_users(service: CalendarService = Depends(get_service)):
    return service.list_users()


@app.get("/api/user/{username}", response_model=UserOut)
def get_user(username: str, service: CalendarService = Depends(get_service)):
    return service.get_user(username)


@app.post("/api/user", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserIn, service: CalendarService = Depends(get_service)):
    return service.create_user(payload)

# ───────────────────────── Events ───────────────────────────────────
def _parse_bound(name: str, raw: Optional[str]) -> Optional[int]:
    """Accept unix seconds or an ISO-8601 string (naive means UTC)."""
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        dt = iso_parse(raw)
    except (ValueError, OverflowError) as exc:
        raise ValidationError(f"{name} is neither unix seconds nor ISO-8601", field=name) from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


@app.get("/api/event", response_model=list[EventOut])
def list_events(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    service: CalendarService = Depends(get_service),
):
    events = service.list_events(_parse_bound("start", start), _parse_bound("end", end))
    return list(events)


@app.post("/api/event", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventIn, service: CalendarService = Depends(get_service)):
    return service.create_event(payload)


@app.get("/api/event/{event_id}", response_model=EventOut)
def get_event(event_id: int, service: CalendarService = Depends(get_service)):
    return service.get_event(event_id)


@app.put("/api/event/{event_id}", response_model=EventOut)
def update_event(event_id: int, payload: EventPatch, service: CalendarService = Depends(get_service)):
    return service.update_event(event_id, payload)
