from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from dream2design import config
from dream2design.generate.project_core import run_generate_job
from dream2design.modify.modify_core import ChatOutcome, run_chat_turn
from dream2design.modify.reconcile import find_entry_point
from dream2design.run_utils.errors import (
    InvalidRequestError,
    JobNotFoundError,
    ProjectFileNotFound,
)
from dream2design.run_utils.fs_tools import RESERVED, ProjectStore, is_safe_job_id, safe_relpath
from dream2design.run_utils.llm import ModelGateway
from dream2design.run_utils.state import Job, JobStore

logger = logging.getLogger(__name__)


class JobService:
    """
    Boundary operations over the job store, the model gateway and the
    project directories.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        projects: ProjectStore,
        jobs: Optional[JobStore] = None,
        allow_chat_new_files: bool = config.CHAT_ALLOW_NEW_FILES,
    ):
        self.gateway = gateway
        self.projects = projects
        self.jobs = jobs or JobStore()
        self.allow_chat_new_files = allow_chat_new_files
        self._tasks: Dict[str, asyncio.Task] = {}

    def create_job(self, prompt: str) -> str:
        """Register a job and start generation in the background; returns its id."""
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequestError("Prompt required")
        prompt = prompt.strip()

        job = self.jobs.create(prompt)
        self.projects.ensure_job_dir(job.id)
        logger.info("[%s] new generation: %s", job.id, prompt[:120])

        task = asyncio.create_task(run_generate_job(job, self.gateway, self.projects))
        self._tasks[job.id] = task
        task.add_done_callback(lambda t, jid=job.id: self._tasks.pop(jid, None))
        return job.id

    async def wait(self, job_id: str) -> Job:
        """Wait for the job's background generation, if it is still running."""
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.jobs.get(job_id)

    def get_job(self, job_id: str) -> Job:
        return self.jobs.get(job_id)

    def get_job_status(self, job_id: str) -> Dict[str, Any]:
        return self.jobs.get(job_id).snapshot()

    def _require_dir(self, job_id: str) -> None:
        if not self.projects.job_exists(job_id):
            raise JobNotFoundError(job_id)

    def list_project_files(self, job_id: str) -> Dict[str, Any]:
        self._require_dir(job_id)
        return self.projects.build_tree(job_id)

    def read_project_file(self, job_id: str, path: str) -> str:
        self._require_dir(job_id)
        return self.projects.read_file(job_id, path)

    def write_project_file(self, job_id: str, path: str, content: str) -> str:
        if not is_safe_job_id(job_id):
            raise InvalidRequestError(f"Invalid job id: {job_id!r}")
        rel = safe_relpath(path)
        if rel is None or rel in RESERVED:
            raise InvalidRequestError(f"Invalid file path: {path!r}")
        self.projects.ensure_job_dir(job_id)
        self.projects.write_file(job_id, rel, content or "")
        self.projects.build_manifest(job_id)
        return rel

    def get_preview(self, job_id: str) -> bytes:
        self._require_dir(job_id)
        if self.projects.has_preview(job_id):
            return self.projects.read_preview(job_id)

        entry = find_entry_point(self.projects.list_files(job_id))
        if entry is None:
            raise ProjectFileNotFound(job_id, "preview")
        return self.projects.read_bytes(job_id, entry)

    async def chat(self, job_id: str, message: str) -> ChatOutcome:
        job = self.jobs.get(job_id)
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequestError("Message required")
        self._require_dir(job_id)
        return await run_chat_turn(
            job,
            message.strip(),
            self.gateway,
            self.projects,
            allow_new_files=self.allow_chat_new_files,
        )
