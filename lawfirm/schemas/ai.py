"""
schemas/ai.py
-------------
Request/response shapes for the AI endpoints.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from lawfirm.schemas.base import CamelModel


class AnalyzeDocumentRequest(CamelModel):
    document_id: str
    organization_id: str
    analysis_type: Literal["full", "key_terms", "risks"] = "full"


class AnalyzeDocumentResponse(CamelModel):
    success: bool = True
    analysis: Any
    job_id: str


class ConversationMessage(CamelModel):
    content: str
    is_from_client: bool = True


class ChatRequest(CamelModel):
    client_id: str
    organization_id: str
    message: str = Field(min_length=1, max_length=4000)
    session_token: str
    conversation_history: List[ConversationMessage] = Field(default_factory=list)


class ExecutedAction(CamelModel):
    action: str
    result: Dict[str, Any]


class ChatResponse(CamelModel):
    success: bool = True
    response: str
    suggested_actions: List[Dict[str, Any]]
    executed_actions: List[ExecutedAction]
    intent: Optional[str] = None
