import json
import logging

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from assembler.config import settings
from assembler.errors import ExternalServiceError
from assembler.models.checks import FormattingSuggestion

logger = logging.getLogger(__name__)

_client: AsyncOpenAI | None = None

SYSTEM_PROMPT = """You are a legal document formatting expert specializing in California Rules of Court (CRC) 2.111.
Your task is to analyze petition text and identify ONLY formatting issues, not substantive legal content.

Focus on CRC 2.111 requirements:
- Line numbering (28 lines per page)
- Margins (1 inch top, 1.5 inch left, 0.5 inch right, 1 inch bottom)
- Font (Arial, Times New Roman, or Courier in 12-point)
- Line spacing (double-spaced with exceptions for headings and quotes)
- Page numbering
- Caption formatting
- Paragraph numbering
- Exhibit references

Return a JSON object with this structure:
{
  "suggestions": [
    {
      "section": "string (e.g., 'Line Numbering', 'Margins', 'Font')",
      "issue": "string (specific formatting problem found)",
      "suggestion": "string (how to fix it)",
      "severity": "critical" | "warning" | "info"
    }
  ]
}

If the document is properly formatted, return an empty suggestions array."""


def _get_client() -> AsyncOpenAI:
    global _client
    if not settings.openai_api_key:
        raise ExternalServiceError("OPENAI_API_KEY is not set")
    if _client is None:
        _client = AsyncOpenAI(api_key=settings.openai_api_key)
    return _client


async def request_suggestions(petition_text: str) -> list[FormattingSuggestion]:
    """ask the model for CRC 2.111 formatting suggestions. an empty list means
    no issues were found; anything unusable raises ExternalServiceError."""
    client = _get_client()
    try:
        resp = await client.chat.completions.create(
            model=settings.llm_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Analyze this petition text:\n\n{petition_text}"},
            ],
            temperature=0.3,
            max_tokens=2048,
            response_format={"type": "json_object"},
        )
    except openai.OpenAIError as exc:
        logger.error("suggestion request failed: %s", exc)
        raise ExternalServiceError(f"formatting analysis failed: {exc}") from exc

    content = resp.choices[0].message.content
    if content is None:
        raise ExternalServiceError("No response from formatting analysis")
    suggestions = parse_suggestions(content)
    logger.info("analysis complete, %d formatting issue(s)", len(suggestions))
    return suggestions


def parse_suggestions(content: str) -> list[FormattingSuggestion]:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.error("unparseable analysis response: %.200s", content)
        raise ExternalServiceError("Invalid response format from AI") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("suggestions", []), list):
        raise ExternalServiceError("Invalid response format from AI")

    try:
        return [FormattingSuggestion.model_validate(s) for s in payload.get("suggestions", [])]
    except PydanticValidationError as exc:
        raise ExternalServiceError("Invalid response format from AI") from exc
