"""JSON payload boundary for host collaborators.

Requests:
    {"schema_version": "1.0", "operation": "analyze", "file": "app.py",
     "language": "python", "code": "...", "changedRanges": [[3, 5]],
     "workspace": "default"}

    {"schema_version": "1.0", "operation": "checkAndRecord", "file": "app.py",
     "identity": "...", "action": "shown"}

Every response carries ``schema_version``. Malformed requests get
``{"status": "error", "error": ...}`` and never raise.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from .engine import SCHEMA_VERSION, AnalysisEngine, DEFAULT_WORKSPACE
from .exceptions import InvalidRequestError
from .logging_config import get_logger
from .notifications import CacheAction
from .tracking import LineRange

logger = get_logger(__name__)

OPERATIONS = ("analyze", "checkAndRecord")


def handle_request(engine: AnalysisEngine, payload: Any) -> dict[str, Any]:
    """Dispatch one request from a thread with no running event loop."""
    try:
        operation = _operation(payload)
        if operation == "analyze":
            file, language, code, ranges, workspace = _analyze_args(payload)
            return engine.analyze_sync(file, language, code, ranges, workspace).to_dict()
        return _check_and_record(engine, payload)
    except InvalidRequestError as e:
        return _error(e)


async def handle_request_async(engine: AnalysisEngine, payload: Any) -> dict[str, Any]:
    try:
        operation = _operation(payload)
        if operation == "analyze":
            file, language, code, ranges, workspace = _analyze_args(payload)
            result = await engine.analyze(file, language, code, ranges, workspace)
            return result.to_dict()
        return _check_and_record(engine, payload)
    except InvalidRequestError as e:
        return _error(e)


def handle_json(engine: AnalysisEngine, raw: str | bytes) -> str:
    """Decode ``raw``, dispatch it and encode the response."""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        response = _error(InvalidRequestError(f"not valid JSON: {e}"))
    else:
        response = handle_request(engine, payload)
    return json.dumps(response)


def _operation(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise InvalidRequestError("payload must be a JSON object")

    version = payload.get("schema_version")
    if version is not None:
        if not isinstance(version, str) or version.split(".")[0] != SCHEMA_VERSION.split(".")[0]:
            raise InvalidRequestError(f"unsupported schema version {version!r}", "schema_version")

    operation = payload.get("operation")
    if operation not in OPERATIONS:
        raise InvalidRequestError(f"unknown operation {operation!r}", "operation")
    return operation


def _analyze_args(payload: dict) -> tuple[str, str, str, Optional[list[LineRange]], str]:
    file = _string(payload, "file")
    language = _string(payload, "language", allow_empty=True)
    code = _string(payload, "code", allow_empty=True)
    workspace = payload.get("workspace", DEFAULT_WORKSPACE)
    if not isinstance(workspace, str) or not workspace:
        raise InvalidRequestError("must be a non-empty string", "workspace")
    return file, language, code, _ranges(payload.get("changedRanges")), workspace


def _ranges(raw: Any) -> Optional[list[LineRange]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise InvalidRequestError("must be a list", "changedRanges")
    ranges = []
    for item in raw:
        if isinstance(item, dict):
            start, end = item.get("start"), item.get("end")
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            start, end = item
        else:
            raise InvalidRequestError(f"bad range {item!r}", "changedRanges")
        if not _is_int(start) or not _is_int(end) or start < 1 or end < start:
            raise InvalidRequestError(f"bad range {item!r}", "changedRanges")
        ranges.append(LineRange(start, end))
    return ranges


def _check_and_record(engine: AnalysisEngine, payload: dict) -> dict[str, Any]:
    file = _string(payload, "file")
    identity = _string(payload, "identity")
    raw_action = payload.get("action", CacheAction.SHOWN.value)
    try:
        action = CacheAction(raw_action)
    except ValueError:
        raise InvalidRequestError(f"unknown action {raw_action!r}", "action")

    suppressed = engine.check_and_record(file, identity, action)
    return {
        "schema_version": SCHEMA_VERSION,
        "file": file,
        "identity": identity,
        "action": action.value,
        "suppressed": suppressed,
    }


def _string(payload: dict, key: str, allow_empty: bool = False) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or (not value and not allow_empty):
        raise InvalidRequestError("must be a string" if allow_empty else "must be a non-empty string", key)
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _error(error: InvalidRequestError) -> dict[str, Any]:
    logger.debug(str(error))
    response: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "status": "error",
        "error": error.reason,
    }
    if error.field:
        response["field"] = error.field
    return response
