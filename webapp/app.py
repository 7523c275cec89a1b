"""FastAPI control surface for scan-and-download runs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from utils.exceptions import ConfigurationError, RunAlreadyActiveError, RunError, StorageError
from webapp.runtime import get_event_log, get_notifier, get_orchestrator, get_queue, get_store, load_groups


app = FastAPI(title="RMD scan-and-download API")


class ManifestPayload(BaseModel):
    path: str

    @field_validator("path")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text


@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat(timespec="seconds")}


@app.get("/api/state")
def get_state() -> Dict[str, Any]:
    return get_orchestrator().state.snapshot()


@app.post("/api/runs")
def start_run() -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    try:
        state = orchestrator.start_run(get_event_log())
    except RunAlreadyActiveError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except RunError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc
    return {"started": True, "state": state.snapshot()}


@app.post("/api/runs/stop")
def stop_run() -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    requested = orchestrator.request_stop()
    return {"stop_requested": requested, "state": orchestrator.state.snapshot()}


@app.get("/api/events")
def list_events() -> Dict[str, Any]:
    events = get_event_log().list()
    return {"events": events, "count": len(events)}


@app.get("/api/notifications")
def list_notifications() -> Dict[str, Any]:
    items = get_notifier().history()
    return {"notifications": items, "count": len(items)}


@app.get("/api/groups")
async def list_groups() -> Dict[str, Any]:
    groups = await get_store().fetch_all()
    rows = [{"id": group.id, "name": group.name} for group in groups]
    return {"groups": rows, "count": len(rows), "saved_items": len(get_queue().saved_ids())}


@app.post("/api/groups/manifest")
def add_manifest(payload: ManifestPayload) -> Dict[str, Any]:
    try:
        added = load_groups(payload.path, store=get_store(), queue=get_queue())
    except (ConfigurationError, StorageError) as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    return {"added": added, "total": len(get_store())}
