from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    prompt: str = Field("", description="Natural-language description of the app to build.")


class GenerateResponse(BaseModel):
    jobId: str = Field(..., description="Opaque identifier of the created job.")


class JobStatusResponse(BaseModel):
    id: str = Field(..., description="The job identifier.")
    status: str = Field(..., description="queued | processing | done | error")
    progress: List[str] = Field(..., description="Progress notes, oldest first.")
    result: Optional[Dict[str, Any]] = Field(
        None, description="Generated envelope when done, {error} when failed."
    )


class WriteFileRequest(BaseModel):
    path: str = Field(..., description="Path relative to the job directory.")
    content: str = Field("", description="Complete new file content.")


class ChatRequest(BaseModel):
    message: str = Field("", description="The user's chat message.")


class ChatResponse(BaseModel):
    reply: str = Field(..., description="Reply shown in the chat transcript.")
    filesUpdated: bool = Field(..., description="Whether any project file was written.")
    updatedPaths: List[str] = Field(..., description="Paths written by this turn.")
    newFiles: List[str] = Field(..., description="Alias of updatedPaths for older clients.")
