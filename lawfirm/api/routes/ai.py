"""
api/routes/ai.py
----------------
AI endpoints.

POST /api/ai/analyze-document  Analyze a stored document (staff session).
POST /api/ai/chat              Client portal chatbot (portal session token).
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.db.session import get_db
from lawfirm.dependencies import get_current_account
from lawfirm.models.account import Account
from lawfirm.schemas.ai import (
    AnalyzeDocumentRequest,
    AnalyzeDocumentResponse,
    ChatRequest,
    ChatResponse,
)
from lawfirm.services.ai_service import AIService

router = APIRouter(prefix="/api/ai", tags=["AI"])


@router.post("/analyze-document", response_model=AnalyzeDocumentResponse, summary="Analyze a document")
async def analyze_document(
    body: AnalyzeDocumentRequest,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AnalyzeDocumentResponse:
    """
    analysisType: full (summary, key terms, risks), key_terms or risks.
    The run is recorded as an AIJob; a failed run leaves the job FAILED.
    """
    analysis, job = await AIService.analyze_document(db, account.id, body)
    return AnalyzeDocumentResponse(analysis=analysis, job_id=job.id)


@router.post("/chat", response_model=ChatResponse, summary="Client portal chatbot")
async def chat(
    body: ChatRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatResponse:
    """
    Authenticated by the portal sessionToken in the body, not the staff
    session. Actions that need no confirmation are executed immediately.
    """
    return await AIService.chat(db, body)
