"""Tests for document analysis jobs and the client portal chatbot."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from lawfirm.db.base import utcnow
from lawfirm.integrations.storage import storage
from lawfirm.models import Case, Client, ClientPortalSession, Document
from lawfirm.models.document import AIJob
from lawfirm.models.message import Message
from lawfirm.services.llm_service import llm_service

CONTRACT_TEXT = "This Agreement is entered into by Acme Legal and the Client."


async def seed_document(db, organization, **fields) -> Document:
    document = Document(
        organization_id=organization.id,
        name="engagement.txt",
        storage_key=f"{organization.id}/documents/abc.txt",
        mime_type="text/plain",
        size=len(CONTRACT_TEXT),
        text_content=fields.pop("text_content", CONTRACT_TEXT),
        **fields,
    )
    db.add(document)
    await db.commit()
    return document


async def analyze(client, headers, organization, document_id, analysis_type="full"):
    return await client.post(
        "/api/ai/analyze-document",
        json={"documentId": document_id, "organizationId": organization.id, "analysisType": analysis_type},
        headers=headers,
    )


async def job_for(db, document_id) -> AIJob:
    return await db.scalar(
        select(AIJob).where(AIJob.entity_id == document_id).execution_options(populate_existing=True)
    )


class TestAnalyzeDocument:

    async def test_full_analysis_in_mock_mode(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization)

        response = await analyze(client, owner_headers, organization, document.id)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analysis"]["summary"].startswith("[MOCK]")
        assert body["analysis"]["keyTerms"] == ["Agreement", "Term", "Termination"]

        job = await job_for(db, document.id)
        assert job.id == body["jobId"]
        assert job.status == "COMPLETED"
        assert job.type == "DOCUMENT_ANALYSIS"
        assert job.completed_at is not None

        await db.refresh(document)
        assert document.is_analyzed is True
        assert document.ai_summary == body["analysis"]["summary"]

    async def test_key_terms_only(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization)

        response = await analyze(client, owner_headers, organization, document.id, "key_terms")
        assert response.json()["analysis"] == ["Agreement", "Term", "Termination"]

        job = await job_for(db, document.id)
        assert job.output == {"keyTerms": ["Agreement", "Term", "Termination"]}

    async def test_risks_only(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization)
        response = await analyze(client, owner_headers, organization, document.id, "risks")
        assert response.json()["analysis"][0]["level"] == "low"

    async def test_text_fetched_from_storage(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization, text_content=None)
        download = AsyncMock(return_value=CONTRACT_TEXT.encode())

        with patch.object(storage, "download_file", download):
            response = await analyze(client, owner_headers, organization, document.id)

        assert response.status_code == 200
        download.assert_awaited_once_with(document.storage_key)

    async def test_non_member_forbidden(self, client, db, organization, outsider_headers):
        document = await seed_document(db, organization)
        response = await analyze(client, outsider_headers, organization, document.id)
        assert response.status_code == 403
        assert await job_for(db, document.id) is None

    async def test_missing_document(self, client, organization, owner_headers):
        response = await analyze(client, owner_headers, organization, "no-such-document")
        assert response.status_code == 404
        assert response.json() == {"error": "Document not found"}

    async def test_invalid_analysis_type(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization)
        response = await analyze(client, owner_headers, organization, document.id, "everything")
        assert response.status_code == 400

    async def test_provider_failure_leaves_failed_job(self, client, db, organization, owner_headers):
        document = await seed_document(db, organization)
        failing = AsyncMock(side_effect=RuntimeError("provider down"))

        with patch.object(llm_service, "generate_json", failing):
            response = await analyze(client, owner_headers, organization, document.id)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze document"}

        job = await job_for(db, document.id)
        assert job.status == "FAILED"
        assert job.error == "provider down"
        await db.refresh(document)
        assert document.is_analyzed is False


class TestChat:

    async def seed_portal(self, db, organization, owner, expires_in=timedelta(hours=1)):
        record = Client(organization_id=organization.id, email="cora@example.com", first_name="Cora", last_name="Client")
        db.add(record)
        await db.flush()
        db.add(Case(
            organization_id=organization.id,
            client_id=record.id,
            primary_attorney_id=owner.id,
            title="Smith v. Jones",
        ))
        session = ClientPortalSession(client_id=record.id, token="portal-token", expires_at=utcnow() + expires_in)
        db.add(session)
        await db.commit()
        return record

    def chat_payload(self, organization, record, **overrides):
        return {
            "clientId": record.id,
            "organizationId": organization.id,
            "message": "What is the status of my case?",
            "sessionToken": "portal-token",
            **overrides,
        }

    async def test_reply_and_messages_stored(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)

        response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record))
        assert response.status_code == 200
        body = response.json()
        assert body["intent"] == "question"
        assert body["response"].startswith("[MOCK]")
        assert body["executedActions"] == []

        messages = (await db.execute(
            select(Message).where(Message.client_id == record.id).order_by(Message.is_from_client.desc())
        )).scalars().all()
        assert [(m.is_from_client, m.content_type) for m in messages] == [(True, "TEXT"), (False, "AI_RESPONSE")]
        assert messages[0].content == "What is the status of my case?"

    async def test_expired_session(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner, expires_in=-timedelta(minutes=1))
        response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record))
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid session"}

    async def test_wrong_organization(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)
        payload = self.chat_payload(organization, record, organizationId="another-org")
        response = await client.post("/api/ai/chat", json=payload)
        assert response.status_code == 401

    async def test_unconfirmed_actions_run_confirmed_ones_suggested(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)

        async def fake_json(prompt, system_prompt, model, task, organization_id="unknown"):
            if task == "intent":
                return {"intent": "action_request", "confidence": 0.9, "entities": []}
            return {
                "response": "I can help with that.",
                "suggestedActions": [
                    {"type": "send_message", "requiresConfirmation": False, "data": {}},
                    {"type": "schedule_appointment", "requiresConfirmation": True, "data": {}},
                    {"type": "launch_rocket", "requiresConfirmation": False},
                ],
            }

        with patch.object(llm_service, "generate_json", AsyncMock(side_effect=fake_json)):
            response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record))

        body = response.json()
        assert body["intent"] == "action_request"
        assert body["executedActions"] == [
            {"action": "send_message", "result": {"success": True, "message": "Your message has been sent to your legal team."}}
        ]
        assert [a["type"] for a in body["suggestedActions"]] == ["schedule_appointment"]

    async def test_malformed_model_fields_tolerated(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)

        async def fake_json(prompt, system_prompt, model, task, organization_id="unknown"):
            if task == "intent":
                return {"intent": "question", "confidence": "very high", "entities": None}
            return {
                "response": "Your hearing is next week.",
                "suggestedActions": None,
            }

        with patch.object(llm_service, "generate_json", AsyncMock(side_effect=fake_json)):
            response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record))

        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "Your hearing is next week."
        assert body["suggestedActions"] == []
        assert body["executedActions"] == []

    async def test_assistant_failure(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)
        failing = AsyncMock(side_effect=RuntimeError("provider down"))
        with patch.object(llm_service, "generate_json", failing):
            response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record))
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process message"}

    async def test_empty_message_rejected(self, client, db, organization, owner):
        record = await self.seed_portal(db, organization, owner)
        response = await client.post("/api/ai/chat", json=self.chat_payload(organization, record, message=""))
        assert response.status_code == 400
