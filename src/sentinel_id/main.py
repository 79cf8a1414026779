"""
SentinelID Main Application
===========================

FastAPI entry point for the face-identification monitoring service.

Endpoints:
    GET    /                   - Service information
    GET    /health             - Liveness probe (is process alive?)
    GET    /ready              - Readiness probe (session controller ready?)
    GET    /metrics            - Pipeline / sampler / log counters
    GET    /session            - Session state, in-flight flag, match banner
    POST   /session/start      - Start monitoring
    POST   /session/stop       - Stop monitoring
    GET    /references         - List reference faces
    POST   /references         - Enroll reference faces
    DELETE /references         - Remove all reference faces (stops monitoring)
    DELETE /references/{id}    - Remove one reference face
    GET    /logs               - Activity log, oldest first
    DELETE /logs               - Clear the activity log
    WS     /ws/events          - Real-time log entries and match banner
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Union

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from sentinel_id.config import Settings, settings
from sentinel_id.capture import (
    ImageDecodeError,
    OpenCVVideoSource,
    StaticVideoSource,
    VideoSourceError,
)
from sentinel_id.models.log_entry import LogEntry
from sentinel_id.models.reference import ReferenceUpload
from sentinel_id.models.session import MatchSignal
from sentinel_id.oracle import GeminiOracleClient, MockOracleClient
from sentinel_id.pipeline import CooldownLedger, MatchBanner
from sentinel_id.session import MonitoringSession, SessionError
from sentinel_id.store import ActivityLogStore, ReferenceRepository


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False
_session: Optional[MonitoringSession] = None
_startup_time: float = 0.0
_is_ready: bool = False


# =============================================================================
# Getters
# =============================================================================

def get_session() -> Optional[MonitoringSession]:
    return _session

def is_ready() -> bool:
    return _is_ready


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Component Factories
# =============================================================================

def create_oracle_client(config: Settings) -> Union[GeminiOracleClient, MockOracleClient]:
    """
    Create the oracle client based on config.

    Fails fast on unknown backends.
    """
    backend = config.oracle.backend

    if backend == "mock":
        logger.info("Using MockOracleClient")
        return MockOracleClient()

    elif backend == "gemini":
        logger.info(f"Using GeminiOracleClient: model={config.oracle.model}")
        return GeminiOracleClient(
            api_key=config.oracle.api_key,
            model=config.oracle.model,
            temperature=config.oracle.temperature,
            max_references=config.oracle.max_references,
        )

    else:
        raise ValueError(f"Unknown oracle backend: {backend}")


def create_video_source(config: Settings) -> Union[OpenCVVideoSource, StaticVideoSource]:
    """Create the video source based on config."""
    backend = config.capture.backend

    if backend == "opencv":
        return OpenCVVideoSource(
            device=config.capture.device,
            width=config.capture.width,
            height=config.capture.height,
            jpeg_quality=config.capture.jpeg_quality,
        )

    elif backend == "static":
        if not config.capture.static_image_path:
            raise ValueError("capture.static_image_path is required for the static backend")
        return StaticVideoSource.from_file(config.capture.static_image_path)

    else:
        raise ValueError(f"Unknown capture backend: {backend}")


def build_session(config: Settings) -> MonitoringSession:
    """Wire every component of the monitoring session from config."""
    references = ReferenceRepository(
        max_width=config.references.max_width,
        jpeg_quality=config.capture.jpeg_quality,
    )
    if config.references.directory:
        try:
            references.load_directory(config.references.directory)
        except NotADirectoryError as e:
            logger.warning(str(e))

    return MonitoringSession(
        source=create_video_source(config),
        oracle=create_oracle_client(config),
        references=references,
        ledger=CooldownLedger(window_seconds=config.cooldown.window_seconds),
        activity_log=ActivityLogStore(max_entries=config.activity_log.max_entries),
        banner=MatchBanner(display_seconds=config.banner.display_seconds),
        capture_interval=config.capture.interval_seconds,
        max_references=config.oracle.max_references,
        oracle_timeout=config.oracle.timeout_seconds or None,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _session, _startup_time, _is_ready, _shutdown_flag

    # Signal handlers can only be installed from the main thread
    try:
        signal.signal(signal.SIGTERM, _handle_sigterm)
    except ValueError:
        logger.debug("Not in main thread, SIGTERM handler not installed")

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    _session = build_session(settings)
    _is_ready = True
    logger.info(
        f"Session ready: {len(_session.references)} reference face(s), "
        f"interval={_session.sampler.interval_seconds}s, "
        f"cooldown={_session.ledger.window_seconds}s"
    )

    try:
        yield
    finally:
        logger.info("Shutting down gracefully...")
        _shutdown_flag = True
        _is_ready = False
        if _session is not None:
            await _session.shutdown(drain_timeout=settings.oracle.timeout_seconds or 10.0)
        logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SentinelID",
    description="Periodic face identification with cooldown-deduplicated activity log",
    version=settings.service.version,
    lifespan=lifespan,
)


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Session not initialized"}, status_code=503)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    session = get_session()
    credentials_missing = bool(
        session is not None and getattr(session.oracle, "credentials_missing", False)
    )
    return JSONResponse({
        "service": "SentinelID",
        "version": settings.service.version,
        "name": settings.service.name,
        "status": "running",
        "session_state": session.state.value if session else None,
        "oracle_backend": settings.oracle.backend,
        "capture_backend": settings.capture.backend,
        "warnings": ["API_KEY_MISSING"] if credentials_missing else [],
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the service ready to handle requests?

    Returns 503 until the session controller exists.
    """
    session = get_session()
    if _is_ready and session is not None:
        return JSONResponse({
            "status": "ready",
            "session_state": session.state.value,
            "source_ready": session.source.is_ready,
        })
    return JSONResponse({"status": "not_ready"}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    if session is None:
        return _not_ready()

    banner = session.banner
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "session_state": session.state.value,
        "oracle_backend": settings.oracle.backend,
        "pipeline": session.pipeline.get_metrics(),
        "sampler": {
            **session.sampler.metrics.to_dict(),
            "running": session.sampler.running,
            "pending_ticks": session.sampler.pending_ticks,
        },
        "activity_log": session.activity_log.metrics(),
        "cooldown": {
            "tracked_identities": len(session.ledger),
            "window_seconds": session.ledger.window_seconds,
        },
        "banner": {
            "raised_count": banner.raised_count,
            "active": banner.current is not None,
        },
    })


@app.get("/session")
async def session_status() -> JSONResponse:
    """Current session state."""
    session = get_session()
    if session is None:
        return _not_ready()
    return JSONResponse(session.status())


@app.post("/session/start")
async def session_start() -> JSONResponse:
    """Start monitoring. 409 if there are no references or no camera."""
    session = get_session()
    if session is None:
        return _not_ready()

    try:
        await session.start()
    except SessionError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    return JSONResponse(session.status())


@app.post("/session/stop")
async def session_stop() -> JSONResponse:
    """Stop monitoring. An outstanding oracle call still completes."""
    session = get_session()
    if session is None:
        return _not_ready()

    await session.stop()
    return JSONResponse(session.status())


@app.get("/references")
async def list_references() -> JSONResponse:
    session = get_session()
    if session is None:
        return _not_ready()
    return JSONResponse([face.model_dump(mode="json") for face in session.references.list()])


@app.post("/references")
async def add_references(uploads: List[ReferenceUpload]) -> JSONResponse:
    """Enroll one or more reference faces (images are downscaled)."""
    session = get_session()
    if session is None:
        return _not_ready()

    decoded = []
    for upload in uploads:
        if not upload.name.strip():
            return JSONResponse({"error": "Reference name must not be blank"}, status_code=400)
        try:
            decoded.append((upload, upload.decode_image()))
        except ValueError as e:
            return JSONResponse({"error": f"{upload.name}: {e}"}, status_code=400)

    added = []
    for upload, image_data in decoded:
        try:
            added.append(session.references.enroll(upload.name, image_data, upload.mime_type))
        except (ImageDecodeError, ValueError) as e:
            logger.warning(f"Failed to load {upload.name}: {e}")
            return JSONResponse(
                {
                    "error": f"{upload.name}: {e}",
                    "added": [face.model_dump(mode="json") for face in added],
                },
                status_code=400,
            )

    return JSONResponse([face.model_dump(mode="json") for face in added], status_code=201)


@app.delete("/references")
async def clear_references() -> JSONResponse:
    """Remove every reference face. Monitoring stops."""
    session = get_session()
    if session is None:
        return _not_ready()

    cleared = await session.clear_references()
    return JSONResponse({"cleared": cleared, "session_state": session.state.value})


@app.delete("/references/{identity_id}")
async def remove_reference(identity_id: str) -> JSONResponse:
    session = get_session()
    if session is None:
        return _not_ready()

    if not session.references.remove(identity_id):
        return JSONResponse({"error": f"Unknown reference id: {identity_id}"}, status_code=404)
    return JSONResponse({"removed": identity_id})


@app.get("/logs")
async def list_logs(include_thumbnails: bool = True) -> JSONResponse:
    """Activity log, oldest first."""
    session = get_session()
    if session is None:
        return _not_ready()

    exclude = None if include_thumbnails else {"thumbnail"}
    return JSONResponse([
        entry.model_dump(mode="json", exclude=exclude)
        for entry in session.activity_log.list()
    ])


@app.delete("/logs")
async def clear_logs() -> JSONResponse:
    session = get_session()
    if session is None:
        return _not_ready()

    cleared = session.activity_log.clear()
    return JSONResponse({"cleared": cleared})


# =============================================================================
# WebSocket Endpoints
# =============================================================================

async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until the client goes away."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@app.websocket("/ws/events")
async def event_stream(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for real-time events.

    Messages:
        {"type": "log_entry", "entry": {...}}
        {"type": "match", "match": {...} | null}
    """
    await websocket.accept()
    logger.info("Client connected to /ws/events")

    session = get_session()
    if session is None:
        await websocket.close(code=1013)
        return

    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = session.activity_log.subscribe(queue.put_nowait)
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    last_signal: Optional[MatchSignal] = None

    try:
        while not _shutdown_flag and not disconnected.done():
            try:
                entry: LogEntry = await asyncio.wait_for(queue.get(), timeout=1.0)
                await websocket.send_json({
                    "type": "log_entry",
                    "entry": entry.model_dump(mode="json"),
                })
            except asyncio.TimeoutError:
                pass

            current = session.banner.current
            if current is not last_signal:
                await websocket.send_json({
                    "type": "match",
                    "match": current.model_dump(mode="json") if current else None,
                })
                last_signal = current

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        disconnected.cancel()
        unsubscribe()
        logger.info("Client disconnected from /ws/events")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "sentinel_id.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
