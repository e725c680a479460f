from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

_OPEN_FENCE_RE = re.compile(r"\A```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_CLOSE_FENCE_RE = re.compile(r"\r?\n?```\Z")


class Envelope(BaseModel):
    files: Dict[str, str] = Field(..., description="Relative path -> complete file content.")
    preview: Optional[str] = Field(None, description="Standalone HTML preview document.")


def _loads(text: str, strict: bool = True) -> Any:
    try:
        return json.loads(text, strict=strict)
    except ValueError:
        return None


def extract_json_block(text: Optional[str]) -> Any:
    """
    Recover a JSON value from model output that may be wrapped in code fences
    or surrounded by prose.
    """
    if not text:
        return None
    t = str(text).strip()

    parsed = _loads(t)
    if isinstance(parsed, dict):
        return parsed

    # only the outer fence; fences inside string values are file content
    t = _CLOSE_FENCE_RE.sub("", _OPEN_FENCE_RE.sub("", t)).strip()
    parsed = _loads(t)
    if isinstance(parsed, dict):
        return parsed

    start = t.find("{")
    end = t.rfind("}")
    if start == -1 or end <= start:
        return None
    block = t[start : end + 1]

    attempts: List[str] = [
        block,
        block.replace("\r", ""),
        block.replace("\\n", "\n"),
    ]
    for candidate in attempts:
        parsed = _loads(candidate, strict=False)
        if parsed is not None:
            return parsed
    return None


def _files_from_list(items: List[Any]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for f in items:
        if not isinstance(f, dict):
            continue
        name = f.get("filename") or f.get("path")
        content = f.get("content")
        if isinstance(name, str) and name and isinstance(content, str):
            mapped[name] = content
    return mapped


def normalize_reply(text: Optional[str]) -> Optional[Envelope]:
    """
    Returns the {files, preview} envelope carried by a model reply, or None
    when the reply holds no usable structured edits.
    """
    parsed = extract_json_block(text)
    if not isinstance(parsed, dict):
        return None

    files = parsed.get("files")
    if files is None:
        return None

    if isinstance(files, list):
        files = _files_from_list(files)

    if not isinstance(files, dict):
        return None

    clean = {k: v for k, v in files.items() if isinstance(k, str) and k and isinstance(v, str)}
    return Envelope(files=clean, preview=_preview_of(parsed))


def _preview_of(parsed: Dict[str, Any]) -> Optional[str]:
    preview = parsed.get("preview")
    return preview if isinstance(preview, str) else None
