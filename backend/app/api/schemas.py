from typing import Optional, List
from pydantic import BaseModel


# ============== Transcript Schemas ==============

class TranscriptResponse(BaseModel):
    text: str
    source: str


# ============== Diagnostics Schemas ==============

class DiagnosticEntryResponse(BaseModel):
    step: str
    reasons: Optional[List[str]] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class DebugResponse(BaseModel):
    tried: List[DiagnosticEntryResponse] = []
    final_length: Optional[int] = None

    class Config:
        from_attributes = True


# ============== Error Schemas ==============

class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    debug: Optional[DebugResponse] = None
