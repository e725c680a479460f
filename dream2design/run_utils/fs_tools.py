import json
import logging
import os
import re
import tempfile
from typing import Any, Dict, List, Optional

from dream2design.run_utils.errors import JobNotFoundError, ProjectFileNotFound

logger = logging.getLogger(__name__)

MANIFEST = ".d2d-manifest.json"
PREVIEW_HTML = "preview.html"
RESERVED = (MANIFEST, PREVIEW_HTML)

_JOB_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


def safe_relpath(p: Any) -> Optional[str]:
    """
    Normalize a model- or client-supplied path into a forward-slash relative
    path. Returns None for empty, absolute or directory-escaping paths.
    """
    if not isinstance(p, str) or p.strip() == "":
        return None
    p = p.strip().replace("\\", "/")
    if p.startswith("/") or os.path.isabs(p):
        return None
    clean = os.path.normpath(p).replace("\\", "/")
    if clean in (".", "..") or clean.startswith("../"):
        return None
    while clean.startswith("./"):
        clean = clean[2:]
    return clean


def is_safe_job_id(job_id: Any) -> bool:
    """A job id must be a single plain path segment."""
    return isinstance(job_id, str) and _JOB_ID_RE.fullmatch(job_id) is not None


class ProjectStore:
    """Job-scoped project directories under a single root."""

    def __init__(self, jobs_dir: str):
        self.jobs_dir = os.path.abspath(jobs_dir)
        os.makedirs(self.jobs_dir, exist_ok=True)

    def job_dir(self, job_id: str) -> str:
        if not is_safe_job_id(job_id):
            raise JobNotFoundError(job_id)
        return os.path.join(self.jobs_dir, job_id)

    def job_exists(self, job_id: str) -> bool:
        return os.path.isdir(self.job_dir(job_id))

    def ensure_job_dir(self, job_id: str) -> str:
        d = self.job_dir(job_id)
        os.makedirs(d, exist_ok=True)
        return d

    def _abs(self, job_id: str, path: str) -> Optional[str]:
        rel = safe_relpath(path)
        if rel is None:
            return None
        return os.path.join(self.job_dir(job_id), *rel.split("/"))

    def write_file(self, job_id: str, path: str, content: str) -> str:
        rel = safe_relpath(path)
        if rel is None:
            raise ValueError(f"Unsafe file path: {path!r}")
        abs_path = os.path.join(self.job_dir(job_id), *rel.split("/"))
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, "w", encoding="utf-8") as f:
            f.write(content)
        return rel

    def write_files(self, job_id: str, files: Dict[str, str]) -> List[str]:
        """Write every file of the mapping; returns the relative paths written."""
        written: List[str] = []
        for path, content in files.items():
            rel = self.write_file(job_id, path, content)
            logger.info("[%s] wrote %s (%d chars)", job_id, rel, len(content))
            if rel not in written:
                written.append(rel)
        return written

    def write_preview(self, job_id: str, html: str) -> None:
        d = self.ensure_job_dir(job_id)
        fd, tmp = tempfile.mkstemp(prefix=".preview-", suffix=".tmp", dir=d)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(html)
            os.replace(tmp, os.path.join(d, PREVIEW_HTML))
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        logger.info("[%s] wrote %s (%d chars)", job_id, PREVIEW_HTML, len(html))

    def list_files(self, job_id: str) -> List[str]:
        """
        Fresh recursive walk of the job directory, manifest and preview
        excluded. Entries are visited in sorted order.
        """
        root = self.job_dir(job_id)
        if not os.path.isdir(root):
            raise JobNotFoundError(job_id)

        out: List[str] = []

        def walk(d: str, prefix: str) -> None:
            for name in sorted(os.listdir(d)):
                full = os.path.join(d, name)
                rel = f"{prefix}{name}"
                if os.path.isdir(full):
                    walk(full, rel + "/")
                elif rel not in RESERVED and not name.startswith(".preview-"):
                    out.append(rel)

        walk(root, "")
        return out

    def read_bytes(self, job_id: str, path: str) -> bytes:
        abs_path = self._abs(job_id, path)
        if abs_path is None or not os.path.isfile(abs_path):
            raise ProjectFileNotFound(job_id, path)
        with open(abs_path, "rb") as f:
            return f.read()

    def read_file(self, job_id: str, path: str) -> str:
        return self.read_bytes(job_id, path).decode("utf-8", errors="replace")

    def build_manifest(self, job_id: str) -> List[str]:
        files = self.list_files(job_id)
        with open(os.path.join(self.job_dir(job_id), MANIFEST), "w", encoding="utf-8") as f:
            json.dump({"files": files}, f, indent=2)
        return files

    def load_manifest(self, job_id: str) -> List[str]:
        """
        Files recorded in the manifest that still exist on disk. Falls back to
        a directory walk when the manifest is missing or unreadable.
        """
        path = os.path.join(self.job_dir(job_id), MANIFEST)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return self.list_files(job_id)

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list):
            return self.list_files(job_id)

        on_disk = set(self.list_files(job_id))
        return [f for f in files if isinstance(f, str) and f not in RESERVED and f in on_disk]

    def build_tree(self, job_id: str) -> Dict[str, Any]:
        tree: Dict[str, Any] = {}
        for rel in self.list_files(job_id):
            parts = rel.split("/")
            node = tree
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = "file"
        return tree

    def has_preview(self, job_id: str) -> bool:
        return os.path.isfile(os.path.join(self.job_dir(job_id), PREVIEW_HTML))

    def read_preview(self, job_id: str) -> bytes:
        path = os.path.join(self.job_dir(job_id), PREVIEW_HTML)
        if not os.path.isfile(path):
            raise ProjectFileNotFound(job_id, PREVIEW_HTML)
        with open(path, "rb") as f:
            return f.read()
