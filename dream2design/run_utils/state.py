import asyncio
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from dream2design.run_utils.errors import JobNotFoundError


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass
class ChatTurn:
    role: str  # "user" | "assistant"
    text: str

    def as_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.text}


@dataclass
class Job:
    id: str
    prompt: str = ""
    status: JobStatus = JobStatus.QUEUED
    progress: List[str] = field(default_factory=list)
    result: Optional[Dict[str, Any]] = None
    messages: List[ChatTurn] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def note(self, text: str) -> None:
        self.progress.append(text)

    def start(self) -> None:
        if self.status == JobStatus.QUEUED:
            self.status = JobStatus.PROCESSING

    def finish(self, result: Dict[str, Any], note: str) -> None:
        self.result = result
        self.status = JobStatus.DONE
        self.note(note)

    def fail(self, message: str) -> None:
        self.result = {"error": message}
        self.status = JobStatus.ERROR
        self.note(f"Error: {message}")

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": list(self.progress),
            "result": self.result,
        }


class JobStore:
    """In-memory registry of jobs for the lifetime of the process."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}

    def create(self, prompt: str = "") -> Job:
        job_id = secrets.token_hex(8)
        while job_id in self._jobs:
            job_id = secrets.token_hex(8)
        job = Job(id=job_id, prompt=prompt)
        job.note("Job created")
        self._jobs[job_id] = job
        return job

    def get(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job
