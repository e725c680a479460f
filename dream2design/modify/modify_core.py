from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from dream2design.modify.reconcile import resolve_target
from dream2design.run_utils.errors import JobFailedError
from dream2design.run_utils.fs_tools import RESERVED, ProjectStore, safe_relpath
from dream2design.run_utils.llm import ModelGateway
from dream2design.run_utils.normalize import Envelope, normalize_reply
from dream2design.run_utils.state import ChatTurn, Job

logger = logging.getLogger(__name__)

UNAVAILABLE_REPLY = "AI unavailable. Please try again."


@dataclass
class ChatOutcome:
    reply: str
    files_updated: bool = False
    updated_paths: List[str] = field(default_factory=list)


def _build_system_prompt(existing_files: List[str], allow_new_files: bool) -> str:
    listing = "\n".join(f"- {f}" for f in existing_files) or "(none)"
    creation_rule = (
        "1. UPDATE existing files. Only create a new file when no existing file can hold the change."
        if allow_new_files
        else "1. UPDATE existing files only. Do NOT create new files."
    )
    return (
        "You are a code editor AI for Dream2Design.\n\n"
        "EXISTING FILES:\n"
        f"{listing}\n\n"
        "RULES:\n"
        f"{creation_rule}\n"
        "2. For code changes, return JSON:\n"
        '   { "files": { "path": "complete file content" }, "preview": "updated preview if needed" }\n'
        "3. For questions, return plain text (no JSON).\n"
        "4. Always provide complete file content, not snippets."
    )


def build_chat_messages(
    existing_files: List[str], history: List[ChatTurn], allow_new_files: bool = False
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": _build_system_prompt(existing_files, allow_new_files)},
        *[t.as_message() for t in history],
    ]


def apply_envelope(
    job_id: str, envelope: Envelope, projects: ProjectStore, allow_new_files: bool
) -> List[str]:
    """
    Reconcile every proposed file against what is on disk right now and
    write it. Returns the distinct paths written, in order.
    """
    current = projects.list_files(job_id)
    updated: List[str] = []

    for incoming, content in envelope.files.items():
        if safe_relpath(incoming) in RESERVED:
            logger.info("[%s] dropped reserved file %s", job_id, incoming)
            continue
        target = resolve_target(current, incoming, allow_create=allow_new_files)
        if target is None:
            logger.info("[%s] dropped proposed file %s", job_id, incoming)
            continue
        if target != incoming:
            logger.info("[%s] mapped %s -> %s", job_id, incoming, target)
        projects.write_file(job_id, target, content)
        if target not in updated:
            updated.append(target)

    if envelope.preview:
        projects.write_preview(job_id, envelope.preview)
    return updated


async def run_chat_turn(
    job: Job,
    message: str,
    gateway: ModelGateway,
    projects: ProjectStore,
    allow_new_files: bool = False,
) -> ChatOutcome:
    """One chat turn against an existing job's file set."""
    async with job.lock:
        existing = projects.load_manifest(job.id)
        job.messages.append(ChatTurn(role="user", text=message))
        logger.info("[%s] chat: %s", job.id, message[:80])

        result = await gateway.complete(build_chat_messages(existing, job.messages, allow_new_files))
        if not result.ok:
            job.note(f"Chat failed: {result.error}")
            job.messages.append(ChatTurn(role="assistant", text=UNAVAILABLE_REPLY))
            return ChatOutcome(reply=UNAVAILABLE_REPLY)

        reply = result.text
        job.messages.append(ChatTurn(role="assistant", text=reply))
        logger.info("[%s] reply: %d chars", job.id, len(reply))

        envelope = normalize_reply(reply)
        if envelope is None:
            # plain-text answer
            return ChatOutcome(reply=reply)

        try:
            updated = apply_envelope(job.id, envelope, projects, allow_new_files)
            if updated:
                projects.build_manifest(job.id)
        except Exception as e:
            logger.exception("[%s] applying chat edits failed: %s", job.id, e)
            job.fail(str(e) or e.__class__.__name__)
            raise JobFailedError(job.id, str(e)) from e

        if not updated:
            return ChatOutcome(reply=reply)

        job.note(f"Updated {len(updated)} file(s): {', '.join(updated)}")
        return ChatOutcome(
            reply=f"Updated: {', '.join(updated)}",
            files_updated=True,
            updated_paths=updated,
        )
