"""
Database Module
File-based storage: db/settings.json and db/{job_id}/job.json (archived job snapshots).
Snapshots are written after every job change; they are for inspection only and are
never read back into a running manager. Uses orjson for faster JSON parsing.
"""

import os
import re
import shutil
import uuid
from pathlib import Path

import aiofiles
import orjson
from loguru import logger

DB_DIR = Path(os.environ.get("INSIGHTBOARD_DB_DIR") or Path(__file__).parent)
SETTINGS_FILE = "settings.json"
JOB_FILE = "job.json"

DEFAULT_SETTINGS = {"aiMode": "mock"}


def _validate_job_id(job_id: str) -> None:
    """Reject path traversal and invalid job_id. Only alphanumeric, dash and underscore."""
    if not job_id or not isinstance(job_id, str):
        raise ValueError("job_id must be a non-empty string")
    if not re.match(r"^[a-zA-Z0-9_-]+$", job_id):
        raise ValueError("job_id must contain only letters, digits, dashes and underscores")


def _get_job_dir(job_id: str) -> Path:
    _validate_job_id(job_id)
    return DB_DIR / job_id


async def _read_json(file_path: Path):
    try:
        async with aiofiles.open(file_path, "rb") as f:
            data = await f.read()
            return orjson.loads(data)
    except FileNotFoundError:
        return None
    except orjson.JSONDecodeError as e:
        logger.warning("Invalid JSON in {}: {}", file_path, e)
        return None


async def _write_json(file_path: Path, data: dict) -> dict:
    """Atomic write: write to a per-call .tmp then rename, so concurrent writers never share a temp file."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = file_path.with_name(f"{file_path.name}.{uuid.uuid4().hex}.tmp")
    content = orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8")
    async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
        await f.write(content)
    tmp_path.replace(file_path)
    return {"success": True}


async def get_job_snapshot(job_id: str):
    """Read archived job snapshot. Returns dict or None."""
    return await _read_json(_get_job_dir(job_id) / JOB_FILE)


async def save_job_snapshot(job_id: str, snapshot: dict) -> dict:
    """Archive job snapshot to db/{job_id}/job.json."""
    return await _write_json(_get_job_dir(job_id) / JOB_FILE, snapshot)


async def list_job_ids() -> list:
    """List archived job IDs, newest first by job.json mtime."""
    if not DB_DIR.exists():
        return []
    result = []
    for p in DB_DIR.iterdir():
        if p.is_dir() and not p.name.startswith("."):
            job_file = p / JOB_FILE
            if job_file.exists():
                try:
                    result.append((p.name, job_file.stat().st_mtime))
                except OSError:
                    result.append((p.name, 0))
    result.sort(key=lambda x: x[1], reverse=True)
    return [jid for jid, _ in result]


def _resolve_config(raw: dict) -> dict:
    """Resolve settings to the effective extraction config. aiMode: mock|llm."""
    raw = raw or {}
    ai_mode = raw.get("aiMode") or "mock"
    cfg = {k: v for k, v in raw.items() if k in ("baseUrl", "apiKey", "model", "mockKey") and v}
    if raw.get("mockDelayMs") is not None:
        cfg["mockDelayMs"] = int(raw["mockDelayMs"])
    t = raw.get("temperature")
    if t is not None:
        cfg["temperature"] = float(t)
    cfg["aiMode"] = ai_mode
    cfg["useMock"] = ai_mode != "llm"
    return cfg


async def get_settings() -> dict:
    """Get full settings from db/settings.json."""
    settings = await _read_json(DB_DIR / SETTINGS_FILE)
    return settings if isinstance(settings, dict) else dict(DEFAULT_SETTINGS)


async def save_settings(settings: dict) -> dict:
    """Save settings to db/settings.json. Atomic write to avoid corruption."""
    return await _write_json(DB_DIR / SETTINGS_FILE, settings or {})


async def get_effective_config() -> dict:
    """Get effective extraction config (mock vs LLM, endpoint, model)."""
    raw = await get_settings()
    return _resolve_config(raw)


async def clear_db() -> dict:
    """Clear DB: remove all archived job folders."""
    if not DB_DIR.exists():
        return {"success": True, "removed": []}
    removed = []
    for p in DB_DIR.iterdir():
        if not p.is_dir() or p.name.startswith(".") or p.name == "__pycache__":
            continue
        try:
            shutil.rmtree(p)
            removed.append(p.name)
        except OSError as e:
            logger.warning("Failed to remove {}: {}", p, e)
    return {"success": True, "removed": removed}
