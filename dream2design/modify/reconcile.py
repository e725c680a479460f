from __future__ import annotations

import posixpath
from typing import Dict, List, Optional, Sequence

from dream2design.run_utils.fs_tools import safe_relpath

# Conventional base names per extension, in priority order.
CONVENTIONAL_NAMES: Dict[str, List[str]] = {
    ".html": ["index.html", "app.html", "main.html"],
    ".css": ["styles.css", "style.css", "main.css", "app.css"],
    ".js": ["app.js", "main.js", "index.js"],
    ".jsx": ["app.jsx", "main.jsx", "index.jsx"],
    ".ts": ["main.ts", "index.ts", "app.ts"],
    ".tsx": ["app.tsx", "main.tsx", "index.tsx"],
}

CLIENT_DIRS = {"frontend", "client", "public", "src", "static", "web"}

UNRANKED = 9
CLIENT_DIR_BONUS = 0.5


def _ext(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def _rank(path: str, ext: str) -> float:
    base = posixpath.basename(path).lower()
    names = CONVENTIONAL_NAMES.get(ext, [])
    score = float(names.index(base)) if base in names else float(UNRANKED)
    if any(part.lower() in CLIENT_DIRS for part in path.split("/")[:-1]):
        score -= CLIENT_DIR_BONUS
    return score


def rank_candidates(existing: Sequence[str], ext: str) -> List[str]:
    """Existing paths with extension `ext`, best match first (stable)."""
    same_ext = [f for f in existing if _ext(f) == ext]
    return sorted(same_ext, key=lambda f: _rank(f, ext))


def resolve_target(
    existing: Sequence[str], proposed: str, allow_create: bool = True
) -> Optional[str]:
    """
    Map a proposed filename onto the project's real layout.

    An exact match wins. Otherwise the best-ranked existing file with the
    same extension is targeted. With no such file the proposal is accepted
    as a new file when `allow_create` is set, and dropped (None) otherwise.
    """
    rel = safe_relpath(proposed)
    if rel is None:
        return None
    if rel in existing:
        return rel

    candidates = rank_candidates(existing, _ext(rel))
    if candidates:
        return candidates[0]
    return rel if allow_create else None


def find_entry_point(existing: Sequence[str]) -> Optional[str]:
    """Best HTML entry point among `existing`, if any conventional one exists."""
    names = CONVENTIONAL_NAMES[".html"]
    for f in rank_candidates(existing, ".html"):
        if posixpath.basename(f).lower() in names:
            return f
    return None
