# docfill/models.py
"""
Pydantic models for fields, conversation turns and API payloads
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field as PydanticField


class FieldType(str, Enum):
    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    EMAIL = "email"
    STATE = "state"


class Field(BaseModel):
    """Represents one fillable [Marker] in the document"""
    name: str = PydanticField(..., description="Normalized identifier, e.g. COMPANY_NAME")
    original_text: str = PydanticField(..., description="Literal marker content between the brackets, untrimmed")
    type: FieldType = PydanticField(default=FieldType.TEXT, description="Drives validation, formatting and hints")
    description: str = PydanticField(..., description="User-friendly label")
    value: Optional[str] = PydanticField(default=None, description="The filled value")

    @property
    def filled(self) -> bool:
        return self.value is not None

    @property
    def is_state_like(self) -> bool:
        return self.type == FieldType.STATE or "STATE" in self.name

    @property
    def is_name_like(self) -> bool:
        return "NAME" in self.name or "name" in self.description.lower()


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = PydanticField(default_factory=lambda: datetime.now(timezone.utc))


class ExtractionOutcome(BaseModel):
    """Tagged result of one extraction attempt: extracted | unclear | invalid"""
    kind: Literal["extracted", "unclear", "invalid"]
    raw_value: Optional[str] = None
    reason: Optional[str] = None
    source: Optional[str] = None
    needs_confirmation: bool = False

    @classmethod
    def extracted(cls, raw_value: str, source: str = "pattern") -> "ExtractionOutcome":
        return cls(kind="extracted", raw_value=raw_value, source=source)

    @classmethod
    def unclear(cls) -> "ExtractionOutcome":
        return cls(kind="unclear")

    @classmethod
    def invalid(
        cls, reason: str, raw_value: Optional[str] = None, needs_confirmation: bool = False
    ) -> "ExtractionOutcome":
        return cls(kind="invalid", reason=reason, raw_value=raw_value, needs_confirmation=needs_confirmation)


class ValidationResult(BaseModel):
    valid: bool
    feedback: Optional[str] = None
    needs_confirmation: bool = False


class TurnResult(BaseModel):
    """Everything one conversation turn produces"""
    fields: List[Field]
    history: List[ConversationTurn] = []
    response: str
    is_complete: bool
    outcome: Optional[ExtractionOutcome] = None
    filled_field: Optional[str] = None


class UploadResponse(BaseModel):
    """Response from upload endpoint"""
    session_id: str = PydanticField(..., description="Unique session identifier")
    filename: str = PydanticField(..., description="Uploaded filename")
    fields: List[Field] = PydanticField(..., description="Detected fields")
    message: str = PydanticField(..., description="Opening assistant message")
    document_preview: str = PydanticField(default="", description="First 500 characters of the document")


class ChatRequest(BaseModel):
    """Request for chat endpoint"""
    session_id: str = PydanticField(..., description="Session UUID")
    message: str = PydanticField(..., description="User message")


class ChatResponse(BaseModel):
    """Response from chat endpoint"""
    assistant_message: str = PydanticField(..., description="Assistant reply to the user")
    fields: List[Field] = PydanticField(..., description="Updated field list")
    is_complete: bool = PydanticField(..., description="All fields filled?")


class StatusResponse(BaseModel):
    """Response from status endpoint"""
    session_id: str
    fields: List[Field]
    progress: str = PydanticField(..., description="e.g., '3/7'")
    completed: bool = PydanticField(..., description="All fields filled?")


class DownloadRequest(BaseModel):
    """Request for download endpoint"""
    session_id: str = PydanticField(..., description="Session UUID")
