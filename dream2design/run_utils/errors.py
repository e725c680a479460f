class Dream2DesignError(Exception):
    """Base class for errors raised by the job pipeline."""


class InvalidRequestError(Dream2DesignError):
    pass


class JobNotFoundError(Dream2DesignError):
    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class ProjectFileNotFound(Dream2DesignError):
    def __init__(self, job_id: str, path: str):
        super().__init__(f"File not found: {path}")
        self.job_id = job_id
        self.path = path


class ModelCallError(Dream2DesignError):
    """A single completion call failed (HTTP error, API error or empty body)."""


class JobFailedError(Dream2DesignError):
    def __init__(self, job_id: str, message: str):
        super().__init__(message)
        self.job_id = job_id
