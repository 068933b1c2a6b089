from __future__ import annotations

import dataclasses
import datetime as _dt
import enum
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


# -------------------------
# Path utilities
# -------------------------
def normalize_abs_posix(path: str | Path) -> str:
    """
    Return an absolute POSIX-style path string for the given input.
    Ensures deterministic representation across platforms.
    """
    return Path(path).resolve().as_posix()


# -------------------------
# Hashing utilities
# -------------------------
def canonical_json_dumps(payload: dict[str, Any]) -> str:
    """
    Deterministic JSON string for hashing:
    - separators=(',', ':')
    - sort_keys=True
    - ensure_ascii=False
    """
    return json.dumps(
        payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True
    )


def canonical_json_hash(payload: dict[str, Any]) -> tuple[str, str]:
    """
    Return (short_hash8, full_hash_hex) computed over canonical JSON bytes (UTF-8).
    Used to derive stable chart file names from the input text and options.
    """
    h = hashlib.sha256(canonical_json_dumps(payload).encode("utf-8")).hexdigest()
    return h[:8], h


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively convert option objects into JSON-serializable primitives.

    - Enums -> member name
    - dataclasses -> dict of their fields
    - Paths -> normalized POSIX strings
    - datetimes (including pandas Timestamps) -> ISO-8601 strings
    - mappings -> dicts with string keys; lists/tuples/sets -> lists
    Anything else falls back to str().
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, enum.Enum):
        return obj.name
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: sanitize_for_json(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, Path):
        return normalize_abs_posix(obj)
    if isinstance(obj, _dt.datetime):
        return obj.isoformat()
    if isinstance(obj, Mapping):
        return {str(k): sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [sanitize_for_json(x) for x in obj]
    return str(obj)


# -------------------------
# Small orchestration helpers (shared by CLI and Gradio UI)
# -------------------------
def ensure_run_dir(base: Path | str = ".", prefix: str = "output_gradio") -> Path:
    """
    Ensure and return a per-run directory under `base`/`prefix`/<timestamp>.

    The timestamp uses time.strftime("%Y%m%dT%H%M%S", time.localtime()), which
    sorts lexicographically in creation order.
    """
    run_ts = time.strftime("%Y%m%dT%H%M%S", time.localtime())
    run_dir = Path(base) / prefix / run_ts
    run_dir.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured run_dir=%s", str(run_dir))
    return run_dir


def write_text_report(report_text: str, run_dir: Path, short_hash: str) -> Path:
    """
    Write a textual run summary to run_dir/summary-<short_hash>.txt (UTF-8).

    Best-effort: on IO failures the error is logged and the intended Path is
    returned anyway.
    """
    target = Path(run_dir) / f"summary-{short_hash}.txt"
    try:
        target.write_text(report_text, encoding="utf-8")
        logger.debug("Wrote textual summary to %s", str(target))
    except OSError as e:
        logger.warning("Failed to write textual summary to %s: %s", str(target), e)
    return target
