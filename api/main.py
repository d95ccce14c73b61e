"""Earthquake Alert API - FastAPI service for the alert dashboard.

Serves recent earthquake alerts, streams newly stored alerts over a
WebSocket, manages user notification preferences and exposes the
ingestion trigger used by the scheduler.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from src.core.config import Config
from src.core.errors import PreferenceValidationError, StoreError
from src.core.formatter import (
    format_event_payload,
    format_preference_payload,
    format_realtime_message,
    format_severity_counts,
)
from src.core.preferences import UserPreference
from src.main import CORS_HEADERS, run_ingestion
from src.orchestrator import Orchestrator
from src.shell.alert_store import AlertStore
from src.shell.change_notifier import ChangeNotifier, Subscription
from src.shell.config_loader import get_config
from src.shell.event_store import EventStore
from src.shell.firestore_client import FirestoreClient, FirestoreConfig
from src.shell.guide_store import GuideStore
from src.shell.preference_store import PreferenceStore

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# The scheduler trigger runs a cycle for any method but OPTIONS
TRIGGER_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


# ===== Services =====

@dataclass
class Services:
    """Shared per-process collaborators."""
    config: Config
    notifier: ChangeNotifier
    event_store: EventStore
    preference_store: PreferenceStore
    alert_store: AlertStore
    guide_store: GuideStore

    def orchestrator(self) -> Orchestrator:
        return Orchestrator(
            self.config,
            event_store=self.event_store,
            preference_store=self.preference_store,
            alert_store=self.alert_store,
        )


_services: Services | None = None


def build_services(config: Config) -> Services:
    """Wire stores and notifier from configuration.

    With realtime_source 'local', inserts made by this process publish
    directly. With 'firestore', publishing comes from a snapshot watch
    started in the app lifespan instead, so the store gets no notifier.
    """
    notifier = ChangeNotifier(buffer_size=config.subscriber_buffer_size)
    firestore_client = FirestoreClient(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
        )
    )
    return Services(
        config=config,
        notifier=notifier,
        event_store=EventStore(
            firestore_client,
            collection=config.events_collection,
            notifier=notifier if config.realtime_source == "local" else None,
        ),
        preference_store=PreferenceStore(
            firestore_client,
            collection=config.preferences_collection,
        ),
        alert_store=AlertStore(firestore_client, collection=config.alerts_collection),
        guide_store=GuideStore(firestore_client, collection=config.guides_collection),
    )


def get_services() -> Services:
    """Get or create the process-wide services."""
    global _services
    if _services is None:
        _services = build_services(get_config())
        logger.info("Services initialized (realtime source: %s)", _services.config.realtime_source)
    return _services


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = get_services()
    watch = None

    if services.config.realtime_source == "firestore":
        watch = services.event_store.watch_inserts(services.notifier.publish)

    yield

    if watch is not None:
        watch.unsubscribe()
    services.notifier.close()


app = FastAPI(
    title="Earthquake Alert API",
    description="Recent earthquake alerts, realtime updates and alert preferences",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=[*TRIGGER_METHODS, "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# ===== Request Models =====

class PreferenceUpdate(BaseModel):
    location_name: str | None = None
    location_lat: float | None = Field(default=None, ge=-90, le=90)
    location_lng: float | None = Field(default=None, ge=-180, le=180)
    min_magnitude: float = Field(default=4.0, ge=0)
    alert_radius_km: int = Field(default=500, gt=0)
    push_enabled: bool = True
    email_enabled: bool = False


# ===== Helper Functions =====

def _store_unavailable(e: StoreError) -> HTTPException:
    logger.error("Store request failed: %s", e)
    return HTTPException(status_code=503, detail=str(e))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ===== Ingestion Trigger =====

@app.api_route("/functions/fetch-earthquakes", methods=TRIGGER_METHODS)
def trigger_fetch_earthquakes(services: Services = Depends(get_services)):
    """Run one ingestion cycle (scheduler trigger)."""
    response, status = run_ingestion(services.orchestrator())
    return JSONResponse(content=response, status_code=status, headers=CORS_HEADERS)


@app.options("/functions/fetch-earthquakes", include_in_schema=False)
def trigger_preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


# ===== Event Endpoints =====

@app.get("/api/events")
def list_events(
    limit: int | None = Query(default=None, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Most recent earthquake alerts, newest first."""
    config = services.config
    limit = min(limit or config.recent_events_limit, config.max_events_limit)

    try:
        events = services.event_store.list_recent(limit)
    except StoreError as e:
        raise _store_unavailable(e)

    return {
        "events": [format_event_payload(e) for e in events],
        "count": len(events),
        "counts_by_severity": format_severity_counts(events),
        "fetched_at": _now_iso(),
    }


@app.get("/api/events/{external_id}")
def get_event(external_id: str, services: Services = Depends(get_services)):
    """A single earthquake alert by USGS event ID."""
    try:
        event = services.event_store.get(external_id)
    except StoreError as e:
        raise _store_unavailable(e)

    if event is None:
        raise HTTPException(status_code=404, detail=f"Event '{external_id}' not found")

    return format_event_payload(event)


# ===== Realtime =====

async def _drain_client(websocket: WebSocket) -> None:
    """Read (and ignore) client frames until it disconnects."""
    while True:
        await websocket.receive_text()


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    """Send queued events to the client until the subscription closes.

    A subscription closed by the notifier (slow client or shutdown) ends
    the connection.
    """
    while (event := await subscription.get()) is not None:
        await websocket.send_json(format_realtime_message(event))

    logger.info("Realtime subscriber %d closed by server", subscription.subscription_id)
    await websocket.close()


@app.websocket("/ws/events")
async def websocket_events(websocket: WebSocket, services: Services = Depends(get_services)):
    """Stream newly stored earthquake alerts.

    Messages look like:
        {
            "type": "earthquake_alert",
            "title": "New earthquake detected: M5.1",
            "description": "10 km SW of ...",
            "data": {...event fields...}
        }

    Only events stored while connected are sent; use /api/events to
    catch up after (re)connecting.
    """
    subscription = services.notifier.subscribe()
    await websocket.accept()

    tasks = [
        asyncio.create_task(_drain_client(websocket)),
        asyncio.create_task(_forward_events(websocket, subscription)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Realtime connection %d ended: %s", subscription.subscription_id, exc)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        services.notifier.unsubscribe(subscription)


# ===== Preference Endpoints =====

@app.get("/api/users/{user_id}/preferences")
def get_preferences(user_id: str, services: Services = Depends(get_services)):
    """A user's alert preferences (defaults created on first access)."""
    try:
        pref = services.preference_store.get_or_create(user_id)
    except StoreError as e:
        raise _store_unavailable(e)

    return format_preference_payload(pref)


@app.put("/api/users/{user_id}/preferences")
def save_preferences(
    user_id: str,
    update: PreferenceUpdate,
    services: Services = Depends(get_services),
):
    """Create or replace a user's alert preferences."""
    pref = UserPreference(user_id=user_id, **update.model_dump())

    try:
        saved = services.preference_store.upsert(pref)
    except PreferenceValidationError as e:
        raise HTTPException(status_code=422, detail=e.messages)
    except StoreError as e:
        raise _store_unavailable(e)

    return format_preference_payload(saved)


@app.get("/api/users/{user_id}/alerts")
def list_user_alerts(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Alerts recorded for a user, newest first."""
    try:
        alerts = services.alert_store.list_for_user(user_id, limit=limit)
    except StoreError as e:
        raise _store_unavailable(e)

    return {"alerts": alerts, "count": len(alerts)}


# ===== Reference Data =====

@app.get("/api/safety-guides")
def list_safety_guides(services: Services = Depends(get_services)):
    """Earthquake safety guides ordered by priority."""
    try:
        guides = services.guide_store.list_guides()
    except StoreError as e:
        raise _store_unavailable(e)

    return {"guides": [asdict(g) for g in guides]}


@app.get("/health")
async def health_check():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}
