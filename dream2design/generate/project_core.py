from __future__ import annotations

import logging
from typing import Dict, List

from dream2design.run_utils.fs_tools import RESERVED, ProjectStore, safe_relpath
from dream2design.run_utils.llm import ModelGateway
from dream2design.run_utils.normalize import normalize_reply
from dream2design.run_utils.state import ChatTurn, Job

logger = logging.getLogger(__name__)

GENERATE_SYS = (
    "You are an expert full-stack web developer specializing in modern, production-ready web\n"
    "applications.\n\n"
    "STRICT REQUIREMENTS:\n"
    "1. Return ONLY valid JSON - no explanations, no markdown.\n"
    "2. Use this exact structure:\n"
    "{\n"
    '  "files": {\n'
    '    "frontend/index.html": "complete HTML code",\n'
    '    "frontend/styles.css": "complete CSS code",\n'
    '    "frontend/app.js": "complete JavaScript code"\n'
    "  },\n"
    '  "preview": "standalone HTML file with inline CSS/JS for preview"\n'
    "}\n\n"
    "CODE QUALITY STANDARDS:\n"
    "3. HTML: semantic HTML5, accessible (ARIA labels, alt texts), clean structure.\n"
    "4. CSS: grid/flexbox layouts, custom properties for theming, transitions, mobile-first\n"
    "   responsive design.\n"
    "5. JavaScript: modern ES6+, modular, with error handling, input validation and local\n"
    "   storage persistence where it fits.\n\n"
    "DESIGN REQUIREMENTS:\n"
    "6. Professional UI/UX, fully responsive, with hover/focus states and loading states.\n"
    "7. Every file value is the COMPLETE file content, never a snippet or a diff.\n"
    "8. The preview must be a perfect, standalone HTML file."
)


def _build_user_prompt(prompt: str) -> str:
    return (
        f'Create a professional web application for: "{prompt}"\n\n'
        "Requirements:\n"
        "- Complete, working code in all files\n"
        "- Modern, clean UI design\n"
        "- Responsive layout\n"
        "- All functionality implemented\n\n"
        "Return ONLY the JSON object."
    )


def build_generate_messages(prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": GENERATE_SYS},
        {"role": "user", "content": _build_user_prompt(prompt)},
    ]


async def run_generate_job(job: Job, gateway: ModelGateway, projects: ProjectStore) -> None:
    """
    Background generation for a freshly created job. Always leaves the job
    in a terminal state.
    """
    async with job.lock:
        try:
            projects.ensure_job_dir(job.id)
            job.start()
            job.note("Calling AI...")
            job.messages.append(ChatTurn(role="user", text=job.prompt))
            logger.info("[%s] generating for prompt: %s", job.id, job.prompt[:120])

            result = await gateway.complete(build_generate_messages(job.prompt))
            if not result.ok:
                raise RuntimeError(result.error or "AI generation failed")
            job.note(f"Response received from {result.model} ({len(result.text)} chars)")

            envelope = normalize_reply(result.text)
            if envelope is None or not envelope.files:
                logger.error("[%s] invalid JSON from AI: %s", job.id, result.text[:500])
                raise ValueError("AI returned invalid JSON format")

            files = {}
            for name, content in envelope.files.items():
                rel = safe_relpath(name)
                if rel is None or rel in RESERVED:
                    job.note(f"Skipped path: {name}")
                    continue
                files[rel] = content
            if not files:
                raise ValueError("AI returned no usable file paths")

            logger.info("[%s] files: %s", job.id, ", ".join(files))
            written = projects.write_files(job.id, files)
            if envelope.preview:
                projects.write_preview(job.id, envelope.preview)
            all_files = projects.build_manifest(job.id)

            job.messages.append(
                ChatTurn(role="assistant", text=f"Generated files: {', '.join(written)}")
            )
            job.finish(
                {"files": files, "preview": envelope.preview},
                f"Generated {len(all_files)} files successfully!",
            )
            logger.info("[%s] job completed", job.id)
        except Exception as e:
            logger.exception("[%s] generation failed: %s", job.id, e)
            job.fail(str(e) or e.__class__.__name__)
