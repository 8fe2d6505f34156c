"""FastAPI web application for skill graph generation.

Provides topic submission, WebSocket progress, graph, zip and viewer endpoints.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from skillgraph.config import PLAN_LIMIT_HINT, UPGRADE_URL
from skillgraph.errors import ConcurrencyPlanError, SkillGraphError
from skillgraph.graph import prepare_viz_data
from skillgraph.package import build_zip, slugify
from skillgraph.pipeline import run_pipeline
from skillgraph.visualize import generate_html

logger = logging.getLogger(__name__)

# In-memory session store
sessions: dict[str, dict] = {}

# WebSocket connections per session
ws_connections: dict[str, list[WebSocket]] = {}

MAX_TOPIC_LENGTH = 200
SESSION_MAX_AGE_HOURS = 24
MAX_SESSIONS = 100

# Session error kind -> HTTP status for /api/graph
ERROR_STATUS = {
    "plan_limit": 402,
    "no_sources": 404,
    "empty_result": 502,
    "timeout": 504,
}


class GenerateRequest(BaseModel):
    topic: str = ""


def cleanup_old_sessions():
    """Remove sessions older than SESSION_MAX_AGE_HOURS and enforce MAX_SESSIONS."""
    now = time.time()
    max_age_secs = SESSION_MAX_AGE_HOURS * 3600

    expired = [
        sid for sid, s in sessions.items()
        if now - s.get("created_at", now) > max_age_secs
    ]
    for sid in expired:
        sessions.pop(sid, None)
        ws_connections.pop(sid, None)

    # Enforce max session count (evict oldest first)
    if len(sessions) > MAX_SESSIONS:
        by_age = sorted(sessions.items(), key=lambda x: x[1].get("created_at", 0))
        for sid, _ in by_age[: len(sessions) - MAX_SESSIONS]:
            sessions.pop(sid, None)
            ws_connections.pop(sid, None)


def _error_payload(session):
    payload = {
        "type": "error",
        "kind": session["error_kind"],
        "message": session["error"],
    }
    if session["error_kind"] == "plan_limit":
        payload["upgrade_url"] = UPGRADE_URL
        payload["hint"] = PLAN_LIMIT_HINT
    return payload


def _get_session(session_id):
    if session_id not in sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    return sessions[session_id]


def _require_complete(session):
    """Return None when the graph is ready, else the response to send."""
    if session["status"] == "error":
        status = ERROR_STATUS.get(session["error_kind"], 500)
        body = _error_payload(session)
        body["detail"] = body.pop("message")
        return JSONResponse(status_code=status, content=body)
    if session["status"] != "complete" or session["graph"] is None:
        return JSONResponse(
            status_code=202,
            content={"status": "processing", "message": "Graph not ready yet"},
        )
    return None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start periodic session cleanup on server startup."""
        async def _cleanup_loop():
            while True:
                await asyncio.sleep(3600)  # Run every hour
                try:
                    cleanup_old_sessions()
                except Exception as e:
                    logger.warning("Cleanup error: %s", e)
        task = asyncio.create_task(_cleanup_loop())
        yield
        task.cancel()

    app = FastAPI(title="Skill Graph Builder", lifespan=lifespan)

    static_dir = Path(__file__).resolve().parent / "static"

    @app.get("/", response_class=HTMLResponse)
    async def root():
        index_path = static_dir / "index.html"
        return HTMLResponse(content=index_path.read_text())

    @app.post("/api/generate")
    async def generate(request: GenerateRequest):
        topic = request.topic.strip()
        if not topic:
            raise HTTPException(status_code=400, detail="Topic is required")
        if len(topic) > MAX_TOPIC_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Topic is too long (max {MAX_TOPIC_LENGTH} characters)"
            )

        session_id = str(uuid.uuid4())
        sessions[session_id] = {
            "session_id": session_id,
            "status": "processing",
            "topic": topic,
            "graph": None,
            "files": [],
            "error": None,
            "error_kind": None,
            "created_at": time.time(),
        }

        process_session_background(session_id, topic)

        return {"session_id": session_id, "status": "processing", "topic": topic}

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        session = _get_session(session_id)
        return {
            "session_id": session["session_id"],
            "status": session["status"],
            "topic": session["topic"],
            "error": session["error"],
            "error_kind": session["error_kind"],
        }

    @app.get("/api/graph/{session_id}")
    async def get_graph(session_id: str):
        session = _get_session(session_id)
        pending = _require_complete(session)
        if pending is not None:
            return pending

        graph = session["graph"]
        return {
            "graph": graph.to_dict(),
            "files": session["files"],
            "viz": prepare_viz_data(graph),
        }

    @app.get("/api/files/{session_id}")
    async def get_files(session_id: str):
        session = _get_session(session_id)
        pending = _require_complete(session)
        if pending is not None:
            return pending
        return {"topic": session["graph"].topic, "files": session["files"]}

    @app.get("/api/download/{session_id}")
    async def download(session_id: str):
        session = _get_session(session_id)
        pending = _require_complete(session)
        if pending is not None:
            return pending

        graph = session["graph"]
        filename = f"{slugify(graph.topic) or 'skill-graph'}.zip"
        return Response(
            content=build_zip(graph),
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/view/{session_id}", response_class=HTMLResponse)
    async def view(session_id: str):
        session = _get_session(session_id)
        pending = _require_complete(session)
        if pending is not None:
            return pending

        page, _, _ = await asyncio.to_thread(generate_html, session["graph"])
        return HTMLResponse(content=page)

    @app.websocket("/ws/{session_id}")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        await websocket.accept()

        if session_id not in ws_connections:
            ws_connections[session_id] = []
        ws_connections[session_id].append(websocket)

        try:
            # If already finished, send immediately
            if session_id in sessions:
                session = sessions[session_id]
                if session["status"] == "complete":
                    await websocket.send_json({
                        "type": "complete",
                        "graph_url": f"/api/graph/{session_id}",
                        "view_url": f"/view/{session_id}",
                    })
                elif session["status"] == "error":
                    await websocket.send_json(_error_payload(session))

            # Keep connection open until client disconnects
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            if session_id in ws_connections:
                ws_connections[session_id] = [
                    ws for ws in ws_connections[session_id] if ws != websocket
                ]

    # Mount static files last so API routes take precedence
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    return app


def process_session_background(session_id: str, topic: str):
    """Start background processing for a session.

    In production, this spawns a background task. For testing, it can be mocked.
    """
    loop = asyncio.get_running_loop()
    loop.create_task(_process_session(session_id, topic))


async def _broadcast(session_id: str, message: dict):
    """Send a message to all WebSocket clients for a session."""
    dead = []
    for ws in ws_connections.get(session_id, []):
        try:
            await ws.send_json(message)
        except Exception:
            dead.append(ws)

    # Clean up dead connections
    if dead and session_id in ws_connections:
        ws_connections[session_id] = [
            ws for ws in ws_connections[session_id] if ws not in dead
        ]


async def _broadcast_progress(session_id: str, stage: str, detail: str, percent: float):
    await _broadcast(session_id, {
        "type": "progress",
        "stage": stage,
        "detail": detail,
        "percent": round(percent, 1),
    })


def _fail(session_id: str, kind: str, message: str):
    session = sessions[session_id]
    session["status"] = "error"
    session["error_kind"] = kind
    session["error"] = message
    return _error_payload(session)


async def _process_session(session_id: str, topic: str, openai_client=None):
    """Run the topic -> skill graph pipeline and record the outcome.

    Sends progress, complete and error messages via WebSocket.
    """
    try:
        if openai_client is None:
            from openai import OpenAI
            openai_client = OpenAI()

        async def on_progress(stage, detail, percent):
            await _broadcast_progress(session_id, stage, detail, percent)

        graph, files = await run_pipeline(topic, openai_client, on_progress=on_progress)

        sessions[session_id]["status"] = "complete"
        sessions[session_id]["graph"] = graph
        sessions[session_id]["files"] = files

        await _broadcast(session_id, {
            "type": "complete",
            "graph_url": f"/api/graph/{session_id}",
            "view_url": f"/view/{session_id}",
        })

    except ConcurrencyPlanError as e:
        logger.warning("Concurrency plan limit hit for session %s: %s", session_id, e)
        await _broadcast(session_id, _fail(session_id, e.kind, str(e)))
    except SkillGraphError as e:
        logger.warning("Session %s failed: %s", session_id, e)
        await _broadcast(session_id, _fail(session_id, e.kind, str(e)))
    except asyncio.TimeoutError:
        logger.warning("Session %s exceeded the pipeline time budget", session_id)
        await _broadcast(session_id, _fail(session_id, "timeout", "Generation timed out"))
    except Exception as e:
        logger.exception("Error processing session %s", session_id)
        await _broadcast(session_id, _fail(session_id, "error", str(e)))


# Create the app instance for uvicorn
app = create_app()
