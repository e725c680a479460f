from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from dream2design.api.jobs.job_service import JobService
from dream2design.run_utils.fs_tools import ProjectStore
from dream2design.run_utils.llm import ModelGateway


class SlowReply:
    def __init__(self, delay: float, text: str = "late"):
        self.delay = delay
        self.text = text


class FakeChatClient:
    """
    Scripted stand-in for the remote model. Each call pops the next reply for
    the requested model (or from the shared queue); a reply may be a string,
    an exception instance, or a SlowReply.
    """

    def __init__(self, replies: Optional[List[Any]] = None, by_model: Optional[Dict[str, List[Any]]] = None):
        self.replies = list(replies or [])
        self.by_model = {k: list(v) for k, v in (by_model or {}).items()}
        self.calls: List[Dict[str, Any]] = []

    async def complete_chat(self, model, messages, temperature, max_tokens):
        self.calls.append(
            {"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        queue = self.by_model.get(model, self.replies)
        if not queue:
            raise RuntimeError(f"no scripted reply for {model}")
        reply = queue.pop(0)
        if isinstance(reply, SlowReply):
            await asyncio.sleep(reply.delay)
            return reply.text
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def models_called(self) -> List[str]:
        return [c["model"] for c in self.calls]


def make_gateway(client: FakeChatClient, timeout: float = 5.0) -> ModelGateway:
    return ModelGateway(
        client,
        primary_model="primary",
        fallback_model="fallback",
        timeout=timeout,
        base_delay=0,
    )


def envelope_text(files: Dict[str, str], preview: Optional[str] = None) -> str:
    data: Dict[str, Any] = {"files": files}
    if preview is not None:
        data["preview"] = preview
    return json.dumps(data)


@pytest.fixture
def projects(tmp_path) -> ProjectStore:
    return ProjectStore(str(tmp_path / "jobs"))


@pytest.fixture
def make_service(projects):
    def _make(replies=None, by_model=None, allow_chat_new_files=False):
        client = FakeChatClient(replies=replies, by_model=by_model)
        service = JobService(
            make_gateway(client), projects, allow_chat_new_files=allow_chat_new_files
        )
        return service, client

    return _make
