"""
app.py — FastAPI server.
Exposes REST + WebSocket endpoints for sectioning, translating and
reassembling legacy Cisco switch configurations.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from pathlib import Path

from models import DeviceRequest, HardwareInfo, MigrationJobStatus, MigrationRequest, Section
from config_sectioner import parse_config, sections_to_dict
from config_source import ConfigFetcher, ConfigFetchError
from reassembler import output_filename, reassemble
from llm_api import LLMAPIError, MistralConverter, get_converter
from migration_runner import MigrationRunner
from settings import get_settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s — %(message)s")
logger = logging.getLogger(__name__)

# In-memory job store; one runner per migration
runners: dict[str, MigrationRunner] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Config Migrator API started — provider %s / %s", settings.active_provider, settings.active_model)
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Cisco Config Migrator API",
    version="1.0.0",
    description=(
        "Sections legacy Cisco switch configs, translates each section to modern "
        "platform syntax via an LLM provider, and reassembles the result."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to your frontend origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_runner(job_id: str) -> MigrationRunner:
    if job_id not in runners:
        raise HTTPException(status_code=404, detail="Job not found")
    return runners[job_id]


# ------------------------------------------------------------------ #
#  Health / info                                                       #
# ------------------------------------------------------------------ #

@app.get("/health", tags=["System"])
async def health():
    return {"status": "ok", "version": "1.0.0"}


# ------------------------------------------------------------------ #
#  Local processing                                                    #
# ------------------------------------------------------------------ #

@app.post("/api/parse", tags=["Config"])
async def parse(body: dict):
    """
    Split a raw config into classified sections.
    Body: { config_text: str }
    """
    sections = parse_config(body.get("config_text") or "")
    return {"n_sections": len(sections), "sections": sections_to_dict(sections)}


@app.post("/api/reassemble", tags=["Config"])
async def reassemble_sections(sections: list[Section]):
    """Concatenate translated sections in priority order into the final config text."""
    return {"target_config": reassemble(sections)}


@app.post("/api/fetch-config", tags=["Config"])
async def fetch_config(req: DeviceRequest):
    """SSH into a legacy switch and return its running config."""
    try:
        config_text = await ConfigFetcher(req).fetch()
    except ConfigFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"host": req.host, "config_text": config_text}


@app.post("/api/detect-hardware", response_model=HardwareInfo, tags=["Config"])
async def detect_hardware(body: dict):
    """
    Guess the source hardware model and IOS version from the config text.
    Body: { config_text: str, provider?: str, model?: str }
    """
    settings = get_settings()
    converter = get_converter(body.get("provider") or settings.active_provider, settings)
    try:
        info = await converter.identify_hardware(body.get("config_text") or "", body.get("model") or settings.active_model)
    except LLMAPIError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return info or HardwareInfo()


# ------------------------------------------------------------------ #
#  Migration jobs                                                      #
# ------------------------------------------------------------------ #

@app.post("/api/migrate", tags=["Migration"])
async def migrate(req: MigrationRequest):
    """
    Enqueue a migration run.
    Sections are translated one at a time; poll /api/jobs/{job_id}
    or connect to /ws/migrate for streaming.
    """
    runner = MigrationRunner(req)
    runner.parse()
    job_id = runner.status.job_id
    runners[job_id] = runner

    runner.task = asyncio.create_task(runner.run())
    return {"job_id": job_id, "n_sections": len(runner.status.sections), "status": "queued"}


@app.get("/api/jobs/{job_id}", response_model=MigrationJobStatus, tags=["Migration"])
async def get_job(job_id: str):
    """Poll the status of a migration job."""
    return get_runner(job_id).status


@app.get("/api/jobs", tags=["Migration"])
async def list_jobs():
    """List all migration jobs and their statuses."""
    return [
        {"job_id": r.status.job_id, "status": r.status.status, "provider": r.status.provider,
         "n_sections": len(r.status.sections), "n_advisories": len(r.status.advisories)}
        for r in runners.values()
    ]


@app.post("/api/jobs/{job_id}/cancel", tags=["Migration"])
async def cancel_job(job_id: str):
    """Stop the run before its next section. The section in flight still completes."""
    runner = get_runner(job_id)
    runner.cancel()
    return {"job_id": job_id, "cancelled": True}


@app.post("/api/jobs/{job_id}/advisories/{index}/apply", tags=["Migration"])
async def apply_job_advisory(job_id: str, index: int):
    """Apply a pending advisory's suggested fix and rebuild the target config."""
    runner = get_runner(job_id)
    try:
        applied = await runner.apply_advisory(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not applied:
        raise HTTPException(status_code=422, detail="Advisory has no suggested config to apply")
    return {
        "applied": True,
        "advisories_remaining": len(runner.status.advisories),
        "target_config": runner.status.target_config,
    }


@app.get("/api/jobs/{job_id}/download", response_class=PlainTextResponse, tags=["Migration"])
async def download_job(job_id: str):
    """Download the reassembled config as a timestamped .cfg file."""
    runner = get_runner(job_id)
    if not runner.status.target_config:
        raise HTTPException(status_code=404, detail="No output yet")
    return PlainTextResponse(
        runner.status.target_config,
        headers={"Content-Disposition": f'attachment; filename="{output_filename()}"'},
    )


@app.websocket("/ws/migrate")
async def websocket_migrate(websocket: WebSocket):
    """
    WebSocket — stream a migration run.

    Client sends (JSON): a MigrationRequest
        { "config_text": "...", "target": {...}, "provider": "google" }

    Server streams:
        { "type": "log",        "time": "...", "level": "INFO", "msg": "..." }
        { "type": "section",    "section": { ...Section } }
        { "type": "job_status", "status": { ...MigrationJobStatus } }
        { "type": "done",       "status": { ...MigrationJobStatus } }
        { "type": "error",      "msg": "..." }
    """
    await websocket.accept()
    try:
        raw = await websocket.receive_text()
        req = MigrationRequest(**json.loads(raw))
        runner = MigrationRunner(req, ws=websocket)
        runners[runner.status.job_id] = runner
        result = await runner.run()
        await websocket.send_json({"type": "done", "status": result.model_dump(mode="json")})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        try:
            await websocket.send_json({"type": "error", "msg": str(e)})
        except Exception:
            pass
    finally:
        try:
            await websocket.close()
        except Exception:
            pass


# ------------------------------------------------------------------ #
#  Provider utility endpoints                                          #
# ------------------------------------------------------------------ #

@app.get("/api/mistral/models", tags=["Providers"])
async def list_mistral_models(api_key: str = "", endpoint: str = ""):
    """List models available to a Mistral key (defaults come from settings)."""
    settings = get_settings()
    client = MistralConverter(api_key or settings.mistral_api_key, endpoint or settings.mistral_endpoint)
    try:
        return {"models": await client.fetch_models()}
    except LLMAPIError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@app.get("/api/providers/test", tags=["Providers"])
async def test_provider(provider: str = "", model: str = ""):
    """Send a trivial prompt to the provider to confirm it answers."""
    settings = get_settings()
    converter = get_converter(provider or settings.active_provider, settings)
    ok = await converter.test_connection(model or settings.active_model)
    return {"provider": converter.provider, "ok": ok}


# ------------------------------------------------------------------ #
#  Serve UI                                                            #
# ------------------------------------------------------------------ #

UI_DIR = Path(__file__).parent / "ui"

@app.get("/", response_class=HTMLResponse, tags=["UI"])
async def serve_ui():
    """Serve the browser UI. Place index.html in the ui/ subdirectory next to app.py."""
    index = UI_DIR / "index.html"
    if not index.exists():
        return HTMLResponse("<h2>UI not found — place index.html in ./ui/</h2>", status_code=404)
    return HTMLResponse(index.read_text())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
