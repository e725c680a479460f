from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from dream2design import config
from dream2design.api.jobs.job_dto import (
    ChatRequest,
    ChatResponse,
    GenerateRequest,
    GenerateResponse,
    JobStatusResponse,
    WriteFileRequest,
)
from dream2design.api.jobs.job_service import JobService
from dream2design.run_utils.errors import (
    InvalidRequestError,
    JobFailedError,
    JobNotFoundError,
    ProjectFileNotFound,
)
from dream2design.run_utils.fs_tools import ProjectStore
from dream2design.run_utils.llm import ModelGateway, OpenRouterClient

router = APIRouter(tags=["Jobs"])


@lru_cache(maxsize=1)
def get_job_service() -> JobService:
    gateway = ModelGateway(OpenRouterClient())
    return JobService(gateway, ProjectStore(config.JOBS_DIR))


async def read_generate_request(request: Request) -> GenerateRequest:
    """The web client posts multipart form data; API callers post JSON."""
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            return GenerateRequest.model_validate(await request.json())
        form = await request.form()
        return GenerateRequest(prompt=str(form.get("prompt") or ""))
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Prompt required")


@router.post(
    "/api/generate",
    response_model=GenerateResponse,
    summary="Start generating a new project from a prompt",
)
async def generate(
    body: GenerateRequest = Depends(read_generate_request),
    service: JobService = Depends(get_job_service),
) -> GenerateResponse:
    try:
        job_id = service.create_job(body.prompt)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return GenerateResponse(jobId=job_id)


@router.get(
    "/status/{job_id}",
    response_model=JobStatusResponse,
    summary="Get the status, progress notes and result of a job",
)
async def job_status(
    job_id: str, service: JobService = Depends(get_job_service)
) -> Dict[str, Any]:
    try:
        return service.get_job_status(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")


@router.get(
    "/api/jobs/{job_id}/files",
    summary="Get the file tree of a job's project",
)
async def list_files(
    job_id: str, service: JobService = Depends(get_job_service)
) -> Dict[str, Any]:
    try:
        return service.list_project_files(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Not found")


@router.get(
    "/api/jobs/{job_id}/file",
    response_class=PlainTextResponse,
    summary="Read one project file as plain text",
)
async def read_file(
    job_id: str,
    path: str = Query(..., description="Path relative to the job directory"),
    service: JobService = Depends(get_job_service),
) -> PlainTextResponse:
    try:
        return PlainTextResponse(service.read_project_file(job_id, path))
    except (JobNotFoundError, ProjectFileNotFound):
        raise HTTPException(status_code=404, detail="File not found")


@router.put(
    "/api/jobs/{job_id}/file",
    summary="Overwrite or create one project file",
)
async def write_file(
    job_id: str, body: WriteFileRequest, service: JobService = Depends(get_job_service)
) -> Dict[str, bool]:
    try:
        service.write_project_file(job_id, body.path, body.content)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True}


@router.post(
    "/api/chat/{job_id}",
    response_model=ChatResponse,
    summary="Send a chat message that may update the job's files",
)
async def chat(
    job_id: str, body: ChatRequest, service: JobService = Depends(get_job_service)
) -> ChatResponse:
    try:
        outcome = await service.chat(job_id, body.message)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except JobFailedError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ChatResponse(
        reply=outcome.reply,
        filesUpdated=outcome.files_updated,
        updatedPaths=outcome.updated_paths,
        newFiles=outcome.updated_paths,
    )
