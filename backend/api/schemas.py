"""Pydantic request/response schemas for API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscriptSubmitRequest(BaseModel):
    transcript: Optional[str] = Field(None, description="Raw meeting transcript")


class SubmitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    success: bool = True
    job_id: str = Field(..., alias="jobId")
    status: str
    cached: bool = False
    message: Optional[str] = None
    data: Optional[dict] = None


class CompleteTaskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    success: bool = True
    updated_tasks: List[dict] = Field(default_factory=list, alias="updatedTasks")


class SettingsBody(BaseModel):
    """Extraction settings. aiMode: mock | llm."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")
    ai_mode: str = Field(default="mock", alias="aiMode", pattern="^(mock|llm)$")
    base_url: Optional[str] = Field(None, alias="baseUrl")
    api_key: Optional[str] = Field(None, alias="apiKey")
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
