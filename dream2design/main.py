import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dream2design import config
from dream2design.api.jobs import job_controller
from dream2design.api.preview import router as preview_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Dream2Design API",
    version="1.0.0",
    description="Generate web projects from a prompt and refine them through chat.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(job_controller.router)
app.include_router(preview_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
