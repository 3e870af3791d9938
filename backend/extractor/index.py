"""
Transcript extraction - turns a meeting transcript into task records.
Uses a real LLM when aiMode is "llm"; canned Mock AI responses otherwise.
The reply is parsed leniently (json_repair) and normalized into Task models.
Anything that cannot be turned into a task list raises ExtractionFailure.
"""

import asyncio
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import json_repair
import orjson
from loguru import logger

from shared.errors import ExtractionFailure
from tasks import Priority, Task

from .llm_client import chat_completion as real_chat_completion

EXTRACTOR_DIR = Path(__file__).parent
MOCK_AI_DIR = EXTRACTOR_DIR / "mock-ai"
PROMPT_FILE = "extract-prompt.txt"
MAX_VALIDATION_RETRIES = 1
RETRY_TEMPERATURE = 0.2
MAX_TASKS = 200
MOCK_DELAY_MS = 300

_prompt_cache: Dict[str, str] = {}
_mock_cache: Dict[str, Dict] = {}

_PRIORITIES = {p.value for p in Priority}


def _get_prompt_cached(filename: str) -> str:
    if filename not in _prompt_cache:
        path = EXTRACTOR_DIR / "prompts" / filename
        _prompt_cache[filename] = path.read_text(encoding="utf-8").strip()
    return _prompt_cache[filename]


def _get_mock_cached(response_type: str) -> Dict:
    if response_type not in _mock_cache:
        path = MOCK_AI_DIR / f"{response_type}.json"
        try:
            _mock_cache[response_type] = orjson.loads(path.read_bytes())
        except (FileNotFoundError, orjson.JSONDecodeError):
            _mock_cache[response_type] = {}
    return _mock_cache[response_type]


def _load_mock_response(key: str) -> Optional[Dict]:
    data = _get_mock_cached("extract")
    entry = data.get(key) or data.get("_default")
    if not entry:
        return None
    content = entry.get("content")
    if isinstance(content, str):
        content_str = content
    else:
        content_str = orjson.dumps(content).decode("utf-8")
    return {"content": content_str, "reasoning": entry.get("reasoning", "")}


def _parse_json_response(text: str) -> Any:
    """Parse JSON from AI response using json_repair for malformed output."""
    cleaned = (text or "").strip()
    m = re.search(r"```(?:json)?\s*([\s\S]*?)```", cleaned)
    if m:
        cleaned = m.group(1).strip()
    try:
        return json_repair.loads(cleaned)
    except Exception as e:
        raise ExtractionFailure(f"Failed to parse JSON from AI response: {e}") from e


def _normalize_priority(value: Any) -> str:
    p = str(value or "").strip().lower()
    return p if p in _PRIORITIES else Priority.MEDIUM.value


def parse_task_records(result: Any) -> List[Task]:
    """Validate extracted records ({tasks: [...]} or a bare list) and build Task models.
    Ids are stringified; missing priority defaults to medium; dangling dependency ids are kept."""
    records = result.get("tasks") if isinstance(result, dict) else result
    if not isinstance(records, list) or len(records) == 0:
        raise ExtractionFailure("tasks must be a non-empty list")
    if len(records) > MAX_TASKS:
        raise ExtractionFailure(f"Too many tasks extracted ({len(records)} > {MAX_TASKS})")

    tasks: List[Task] = []
    seen: set[str] = set()
    for i, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise ExtractionFailure(f"Task {i} is not an object")
        raw_id = rec.get("id", rec.get("task_id"))
        tid = str(raw_id).strip() if raw_id is not None else ""
        if not tid:
            raise ExtractionFailure(f"Task {i} missing id")
        if tid in seen:
            raise ExtractionFailure(f"Duplicate task id: {tid}")
        seen.add(tid)
        desc = rec.get("description")
        if not isinstance(desc, str) or not desc.strip():
            raise ExtractionFailure(f"Task {tid} missing or invalid description")
        deps = rec.get("dependencies") or []
        if isinstance(deps, (str, int)):
            deps = [deps]
        if not isinstance(deps, list):
            raise ExtractionFailure(f"Task {tid} dependencies must be a list")
        tasks.append(
            Task(
                id=tid,
                description=desc.strip(),
                priority=_normalize_priority(rec.get("priority")),
                dependencies=[str(d) for d in deps if d is not None],
            )
        )
    return tasks


async def _call_chat_completion(transcript: str, api_config: Dict, temperature: Optional[float]) -> str:
    if api_config.get("useMock", True):
        mock = _load_mock_response(api_config.get("mockKey") or "_default")
        if not mock:
            raise ExtractionFailure("No mock data for extract")
        if mock["reasoning"]:
            logger.debug("Mock extraction reasoning: {}", mock["reasoning"])
        delay_ms = int(api_config.get("mockDelayMs", MOCK_DELAY_MS))
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)
        return mock["content"]

    messages = [
        {"role": "system", "content": _get_prompt_cached(PROMPT_FILE)},
        {"role": "user", "content": f"**Transcript:**\n{transcript}\n\n**Output:**"},
    ]
    try:
        return await real_chat_completion(
            messages,
            api_config,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
    except Exception as e:
        raise ExtractionFailure(f"LLM request failed: {e}") from e


async def extract_tasks(transcript: str, api_config: Optional[Dict] = None) -> List[Task]:
    """Extract tasks from a transcript. Retries once on unusable output."""
    cfg = dict(api_config or {})
    last_err: Optional[ExtractionFailure] = None
    for attempt in range(MAX_VALIDATION_RETRIES + 1):
        content = await _call_chat_completion(
            transcript, cfg, RETRY_TEMPERATURE if attempt > 0 else None
        )
        try:
            return parse_task_records(_parse_json_response(content))
        except ExtractionFailure as e:
            last_err = e
            logger.warning("Extraction attempt {} produced unusable output: {}", attempt + 1, e)
            if cfg.get("useMock", True):
                break
    raise last_err or ExtractionFailure("Extraction failed")
