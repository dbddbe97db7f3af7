"""
services/document_analyzer.py
-----------------------------
AI analysis of legal documents.

Each operation is a single JSON completion. Providers in JSON mode return
objects, so list results are requested wrapped ({"terms": [...]},
{"risks": [...]}) and unwrapped here.
"""

from typing import Any, Dict, List, Optional

from lawfirm.core.config import settings
from lawfirm.services.llm_service import as_list, llm_service

# Keeps prompts within the models' context window
MAX_DOCUMENT_CHARS = 60_000

DOCUMENT_ANALYSIS_PROMPT = """You are an expert legal document analyzer. Analyze the provided document and extract:

1. A concise summary (2-3 paragraphs)
2. Key terms and definitions
3. Important dates and deadlines
4. All parties mentioned
5. Potential risks or red flags (categorized as low/medium/high)
6. Recommendations for the legal team

Be thorough but concise. Focus on legally significant information.
Return JSON with the fields: summary, keyTerms, importantDates, parties, risks, recommendations."""

KEY_TERMS_PROMPT = 'You are a legal term extractor. Return JSON with a "terms" array of strings.'
RISKS_PROMPT = (
    'You are a legal risk analyst. Return JSON with a "risks" array of '
    '{"level": "low"|"medium"|"high", "description": string} objects.'
)


def _clip(text: str) -> str:
    return text[:MAX_DOCUMENT_CHARS]


async def analyze_document(
    document_text: str,
    document_type: Optional[str] = None,
    organization_id: str = "unknown",
) -> Dict[str, Any]:
    prompt = (
        f"Document Type: {document_type or 'Unknown'}\n\n"
        f"Document Content:\n{_clip(document_text)}\n\n"
        "Analyze this document and provide a structured analysis."
    )
    result = await llm_service.generate_json(
        prompt,
        DOCUMENT_ANALYSIS_PROMPT,
        settings.DOCUMENT_ANALYSIS_MODEL,
        task="document_analysis",
        organization_id=organization_id,
    )
    return dict(result)


async def extract_key_terms(document_text: str, organization_id: str = "unknown") -> List[str]:
    prompt = (
        "Extract all important legal terms, defined terms, and key concepts "
        f"from this document:\n\n{_clip(document_text)}"
    )
    result = await llm_service.generate_json(
        prompt,
        KEY_TERMS_PROMPT,
        settings.CLASSIFICATION_MODEL,
        task="key_terms",
        organization_id=organization_id,
    )
    return [str(term) for term in as_list(result.get("terms")) if isinstance(term, (str, int, float))]


async def identify_risks(document_text: str, organization_id: str = "unknown") -> List[Dict[str, str]]:
    prompt = (
        "Identify all potential legal risks, problematic clauses, or red flags "
        f"in this document:\n\n{_clip(document_text)}\n\n"
        "For each risk, provide a severity level (low/medium/high) and description."
    )
    result = await llm_service.generate_json(
        prompt,
        RISKS_PROMPT,
        settings.DOCUMENT_ANALYSIS_MODEL,
        task="risks",
        organization_id=organization_id,
    )
    return [risk for risk in as_list(result.get("risks")) if isinstance(risk, dict)]

