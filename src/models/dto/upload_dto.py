"""
Data Transfer Objects for the upload client and receiver.
Defines status events pushed to the rendering collaborator and receiver responses.
"""
from typing import Optional
from urllib.parse import quote
from pydantic import BaseModel, Field
from src.models.upload_status import TaskStatus


class TaskStatusEvent(BaseModel):
    """Status update pushed to the collaborator while a task runs."""
    status: TaskStatus = Field(..., description="Current task status")
    message: str = Field(..., description="Human readable status line")
    current_file: Optional[str] = Field(default=None, description="Display path of the active file")
    file_percent: int = Field(default=0, ge=0, le=100, description="Rounded progress of the active file")
    overall_percent: float = Field(default=0.0, ge=0, le=100, description="Aggregate task progress")
    speed: Optional[str] = Field(default=None, description="Formatted transfer speed")


class ChunkHeaders(BaseModel):
    """Per-request metadata sent with every chunk and final marker."""
    file_name: str = Field(..., min_length=1, description="Relative path of the file")
    offset: int = Field(..., ge=0, description="Byte offset of the chunk start")
    final: bool = Field(default=False, description="True only for the final marker")

    def to_http(self) -> dict:
        return {
            # Header values must be ASCII; the receiver unquotes the name
            'X-File-Name': quote(self.file_name, safe="/"),
            'X-Chunk-Offset': str(self.offset),
            'X-Final-Chunk': 'true' if self.final else 'false',
            'Content-Type': 'application/octet-stream',
        }
