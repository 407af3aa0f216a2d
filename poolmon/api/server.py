"""
FastAPI server for the pool monitor. Run with run_api_server(app) in a background thread.
Central endpoints: GET /api/status, GET /api/tasks. Per-plugin routes are mounted
from poolmon.plugins.<package>.api (get_router(pool_app)) under /api/<package>/.
Docs when enabled: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def create_app(pool_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given PoolMonitorApp instance."""
    app = FastAPI(title="Pool Monitor API", description="Pool telemetry, time series, annotations and weather")

    @app.get("/api/status")
    def status() -> Dict[str, Any]:
        """Store state, session count and whether a snapshot has been collected."""
        latest = pool_app.collector.get_latest()
        return {
            "store": pool_app.store.describe(),
            "sessions": len(pool_app.registry),
            "latest_snapshot_at": _serialize_datetime(latest.timestamp) if latest else None,
        }

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """List scheduled tasks: DB schedules and active in-memory timers."""
        from poolmon.core.models import get_all_task_schedule_records

        db_schedules = [
            {
                "task_name": row.task_name,
                "interval_seconds": row.interval_seconds,
                "next_run_at": _serialize_datetime(row.next_run_at),
                "last_run_at": _serialize_datetime(row.last_run_at),
                "last_error": row.last_error,
            }
            for row in get_all_task_schedule_records()
        ]
        active_list = [
            {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
            for t in pool_app.task_manager.get_active_timers()
        ]
        return {"db_schedules": db_schedules, "active_timers": active_list}

    # Mount per-plugin API routers from poolmon.plugins.<name>.api (get_router(pool_app))
    plugins_pkg = importlib.import_module("poolmon.plugins")
    for _mod, name, is_pkg in pkgutil.iter_modules(plugins_pkg.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"poolmon.plugins.{name}.api")
        except ModuleNotFoundError:
            continue
        if not callable(getattr(api_module, "get_router", None)):
            continue
        router = api_module.get_router(pool_app)
        if router is not None:
            app.include_router(router, prefix=f"/api/{name}")
            logger.debug(f"Mounted API router for plugin {name}")

    return app


def run_api_server(pool_app: Any) -> Optional[threading.Thread]:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = pool_app.config.section("api")
    if not api_config.get("enabled", True):
        logger.info("API server not started: api.enabled is false")
        return None
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(pool_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port, log_config=None)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, name="api-server", daemon=True)
    thread.start()
    logger.info("API server thread started.")
    return thread
