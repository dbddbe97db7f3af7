"""
services/ai_service.py
----------------------
Orchestration for the AI endpoints.

Document analysis is tracked as an AIJob: the job row is committed as
PROCESSING before the model is called, then moved to COMPLETED with the
output or to FAILED with the error. Both transitions are committed before
returning or raising, so a failed analysis leaves its FAILED job behind even
though the request ends in an error.

Portal chat authenticates with a ClientPortalSession token (not the staff
session) and stores the client's message and the assistant's reply.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import AppError, NotFound, Unauthorized
from lawfirm.core.logging import get_logger
from lawfirm.db.base import utcnow
from lawfirm.integrations.storage import storage
from lawfirm.models.case import Case, CaseStatus
from lawfirm.models.client import Client, ClientPortalSession
from lawfirm.models.document import AIJob, AIJobStatus, Document
from lawfirm.models.message import Message, MessageContentType
from lawfirm.schemas.ai import AnalyzeDocumentRequest, ChatRequest, ChatResponse, ExecutedAction
from lawfirm.services import chatbot, document_analyzer
from lawfirm.services.organization_service import OrganizationService

logger = get_logger(__name__)

DOCUMENT_ANALYSIS_JOB = "DOCUMENT_ANALYSIS"


class AIService:

    # ── Document analysis ────────────────────────────────────────────────────

    @staticmethod
    async def _document_text(document: Document) -> str:
        if document.text_content:
            return document.text_content
        content = await storage.download_file(document.storage_key)
        return content.decode("utf-8", errors="replace")

    @staticmethod
    async def _run_analysis(document: Document, analysis_type: str) -> Tuple[Any, Dict[str, Any]]:
        """Returns (analysis payload, job output)."""
        text = await AIService._document_text(document)
        organization_id = document.organization_id

        if analysis_type == "key_terms":
            terms = await document_analyzer.extract_key_terms(text, organization_id)
            document.ai_key_terms = terms
            return terms, {"keyTerms": terms}

        if analysis_type == "risks":
            risks = await document_analyzer.identify_risks(text, organization_id)
            document.ai_risk_flags = risks
            return risks, {"risks": risks}

        result = await document_analyzer.analyze_document(text, document.category, organization_id)
        document.ai_summary = result.get("summary")
        document.ai_key_terms = result.get("keyTerms")
        document.ai_risk_flags = result.get("risks")
        return result, result

    @staticmethod
    async def analyze_document(
        db: AsyncSession, account_id: str, data: AnalyzeDocumentRequest
    ) -> Tuple[Any, AIJob]:
        """
        Raises:
            Forbidden: The caller is not a member of the organization.
            NotFound: No such document in the organization.
            AppError: The analysis failed (the job is left FAILED).
        """
        await OrganizationService.require_membership(db, account_id, data.organization_id)

        result = await db.execute(
            select(Document).where(
                Document.id == data.document_id,
                Document.organization_id == data.organization_id,
            )
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFound("Document not found")

        job = AIJob(
            organization_id=data.organization_id,
            type=DOCUMENT_ANALYSIS_JOB,
            status=AIJobStatus.PROCESSING.value,
            input={"documentId": document.id, "analysisType": data.analysis_type},
            entity_type="document",
            entity_id=document.id,
        )
        db.add(job)
        await db.commit()
        logger.info("Document analysis started", job_id=job.id, document_id=document.id)

        try:
            analysis, output = await AIService._run_analysis(document, data.analysis_type)
        except Exception as exc:
            job.status = AIJobStatus.FAILED.value
            job.error = str(exc) or "Analysis failed"
            await db.commit()
            logger.error("Document analysis failed", job_id=job.id, error=job.error, exc_info=True)
            raise AppError("Failed to analyze document") from exc

        document.is_analyzed = True
        job.status = AIJobStatus.COMPLETED.value
        job.output = output
        job.completed_at = utcnow()
        await db.commit()
        logger.info("Document analysis completed", job_id=job.id, analysis_type=data.analysis_type)
        return analysis, job

    # ── Portal chat ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_portal_session(
        db: AsyncSession, token: str, client_id: str, organization_id: str
    ) -> ClientPortalSession:
        result = await db.execute(
            select(ClientPortalSession)
            .join(Client, ClientPortalSession.client_id == Client.id)
            .where(
                ClientPortalSession.token == token,
                ClientPortalSession.client_id == client_id,
                ClientPortalSession.expires_at > utcnow(),
                Client.organization_id == organization_id,
            )
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise Unauthorized("Invalid session")
        return session

    @staticmethod
    async def get_active_case(db: AsyncSession, client_id: str) -> Optional[Case]:
        result = await db.execute(
            select(Case)
            .where(Case.client_id == client_id, Case.status == CaseStatus.ACTIVE.value)
            .order_by(Case.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def chat(db: AsyncSession, data: ChatRequest) -> ChatResponse:
        """
        Raises:
            Unauthorized: Unknown, expired, or mismatched portal session.
            AppError: The assistant failed to respond.
        """
        session = await AIService.get_portal_session(
            db, data.session_token, data.client_id, data.organization_id
        )
        client = session.client
        active_case = await AIService.get_active_case(db, client.id)
        attorney = active_case.primary_attorney if active_case else None

        context = chatbot.ClientContext(
            client_id=client.id,
            case_id=active_case.id if active_case else None,
            case_summary=active_case.title if active_case else None,
            attorney_name=attorney.full_name if attorney else None,
        )
        messages: List[Dict[str, str]] = [
            {"role": "user" if m.is_from_client else "assistant", "content": m.content}
            for m in data.conversation_history
        ]
        messages.append({"role": "user", "content": data.message})

        try:
            intent = await chatbot.detect_intent(data.message, data.organization_id)
            reply = await chatbot.generate_chat_response(messages, context, data.organization_id)
        except RuntimeError as exc:
            logger.error("Chatbot failed", client_id=client.id, error=str(exc))
            raise AppError("Failed to process message") from exc

        executed = []
        for action in reply.suggested_actions:
            if not action.requires_confirmation and action.type != "none":
                outcome = await chatbot.execute_action(action, client.id, data.organization_id)
                executed.append(ExecutedAction(action=action.type, result=outcome))

        case_id = active_case.id if active_case else None
        db.add_all([
            Message(
                organization_id=data.organization_id,
                client_id=client.id,
                case_id=case_id,
                content=data.message,
                content_type=MessageContentType.TEXT.value,
                is_from_client=True,
            ),
            Message(
                organization_id=data.organization_id,
                client_id=client.id,
                case_id=case_id,
                content=reply.response,
                content_type=MessageContentType.AI_RESPONSE.value,
                is_from_client=False,
            ),
        ])
        await db.flush()

        return ChatResponse(
            response=reply.response,
            suggested_actions=[a.to_payload() for a in reply.suggested_actions if a.requires_confirmation],
            executed_actions=executed,
            intent=intent["intent"],
        )
