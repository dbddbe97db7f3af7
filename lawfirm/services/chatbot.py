"""
services/chatbot.py
-------------------
Client portal chatbot: intent detection, contextual replies and the
actions the assistant may take on a client's behalf.

Actions that require confirmation are only suggested back to the client;
the rest are executed immediately by the chat endpoint.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.services.llm_service import as_list, llm_service

logger = get_logger(__name__)

ACTION_TYPES = frozenset({
    "schedule_appointment",
    "request_document",
    "send_message",
    "update_case",
    "create_task",
    "none",
})
INTENTS = frozenset({"question", "action_request", "complaint", "update", "greeting", "other"})
HISTORY_WINDOW = 10

CHATBOT_SYSTEM_PROMPT = """You are an AI legal assistant for a law firm client portal. You can help clients with:

1. Answering questions about their case status
2. Scheduling appointments with their attorney
3. Requesting document uploads
4. Sending messages to their legal team
5. Explaining legal processes in simple terms
6. Providing general information about their case type

IMPORTANT RULES:
- Never provide legal advice - always recommend consulting with their attorney
- Be empathetic and professional
- If you don't have information, say so clearly
- For sensitive matters, recommend scheduling a call with their attorney
- You can take actions like scheduling appointments or requesting documents
- Always confirm before taking any action

When you want to take an action, indicate it clearly in your response."""

INTENT_SYSTEM_PROMPT = (
    "You are an intent classification system for a legal client portal chatbot. "
    'Return JSON with "intent", "confidence" and "entities".'
)


@dataclass
class ChatAction:
    type: str
    requires_confirmation: bool = True
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["ChatAction"]:
        action_type = payload.get("type")
        data = payload.get("data")
        if action_type not in ACTION_TYPES:
            return None
        return cls(
            type=action_type,
            requires_confirmation=bool(payload.get("requiresConfirmation", True)),
            data=data if isinstance(data, dict) else {},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "requiresConfirmation": self.requires_confirmation, "data": self.data}


@dataclass
class ClientContext:
    client_id: str
    case_id: Optional[str] = None
    case_summary: Optional[str] = None
    attorney_name: Optional[str] = None
    upcoming_appointments: List[str] = field(default_factory=list)
    pending_tasks: List[str] = field(default_factory=list)

    def describe(self) -> str:
        lines = [f"- Client ID: {self.client_id}"]
        if self.case_id:
            lines.append(f"- Active Case ID: {self.case_id}")
        if self.case_summary:
            lines.append(f"- Case Summary: {self.case_summary}")
        if self.attorney_name:
            lines.append(f"- Primary Attorney: {self.attorney_name}")
        if self.upcoming_appointments:
            lines.append(f"- Upcoming Appointments: {', '.join(self.upcoming_appointments)}")
        if self.pending_tasks:
            lines.append(f"- Pending Tasks: {', '.join(self.pending_tasks)}")
        return "\n".join(lines)


def _as_confidence(value: Any) -> float:
    """Model output clamped to [0, 1]; anything non-numeric is 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        confidence = float(value)
    except ValueError:
        return 0.0
    if math.isnan(confidence):
        return 0.0
    return min(max(confidence, 0.0), 1.0)


@dataclass
class ChatReply:
    response: str
    suggested_actions: List[ChatAction]


async def detect_intent(message: str, organization_id: str = "unknown") -> Dict[str, Any]:
    prompt = (
        f'Classify this client message intent:\n\n"{message}"\n\n'
        "Identify: intent type, confidence, any entities (dates, names, document types), "
        "and suggested action."
    )
    result = await llm_service.generate_json(
        prompt,
        INTENT_SYSTEM_PROMPT,
        settings.CLASSIFICATION_MODEL,
        task="intent",
        organization_id=organization_id,
    )
    intent = result.get("intent")
    if intent not in INTENTS:
        intent = "other"
    return {
        "intent": intent,
        "confidence": _as_confidence(result.get("confidence")),
        "entities": as_list(result.get("entities")),
    }


async def generate_chat_response(
    messages: List[Dict[str, str]],
    context: ClientContext,
    organization_id: str = "unknown",
) -> ChatReply:
    """
    Reply to the last message in ``messages`` ({role, content} dicts), with
    the client's case context and the most recent history in the prompt.
    """
    history = "\n".join(f"{m['role']}: {m['content']}" for m in messages[-HISTORY_WINDOW:])
    latest = messages[-1]["content"]
    prompt = (
        f"Client Context:\n{context.describe()}\n\n"
        f"Previous messages in this conversation:\n{history}\n\n"
        f'Latest user message: "{latest}"\n\n'
        "Respond helpfully and indicate any actions you'd like to take on behalf of the client.\n"
        'Return JSON with "response" and "suggestedActions" array '
        '({"type", "requiresConfirmation", "data"}).'
    )
    result = await llm_service.generate_json(
        prompt,
        CHATBOT_SYSTEM_PROMPT,
        settings.CHATBOT_MODEL,
        task="chat",
        organization_id=organization_id,
    )
    actions = [
        action
        for action in (ChatAction.from_payload(p) for p in as_list(result.get("suggestedActions")) if isinstance(p, dict))
        if action is not None
    ]
    response = result.get("response")
    return ChatReply(response=response if isinstance(response, str) else "", suggested_actions=actions)


async def execute_action(action: ChatAction, client_id: str, organization_id: str) -> Dict[str, Any]:
    logger.info("Executing chat action", action=action.type, client_id=client_id, organization_id=organization_id)

    if action.type == "schedule_appointment":
        return {
            "success": True,
            "message": "Appointment scheduling initiated. Please select a time slot.",
            "data": {"nextStep": "show_calendar"},
        }
    if action.type == "request_document":
        return {
            "success": True,
            "message": "Document request has been noted. Your legal team will follow up.",
            "data": {"documentType": action.data.get("documentType")},
        }
    if action.type == "send_message":
        return {"success": True, "message": "Your message has been sent to your legal team."}
    if action.type == "create_task":
        return {"success": True, "message": "Task has been created and assigned."}
    return {"success": False, "message": "Unknown action type"}
