from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from dream2design.api.jobs.job_controller import get_job_service
from dream2design.api.jobs.job_service import JobService
from dream2design.run_utils.errors import JobNotFoundError, ProjectFileNotFound

router = APIRouter(prefix="/api/jobs", tags=["preview"])


@router.get(
    "/{job_id}/preview",
    response_class=HTMLResponse,
    summary="Get the preview document of a job",
)
def get_preview(job_id: str, service: JobService = Depends(get_job_service)) -> HTMLResponse:
    try:
        body = service.get_preview(job_id)
    except (JobNotFoundError, ProjectFileNotFound):
        raise HTTPException(status_code=404, detail="No preview found")
    return HTMLResponse(content=body)
