"""
LLM receipt categorizer.

``OpenAICategorizer`` sends OCR text to a chat-completions model and returns
the raw reply. ``parse_suggestion`` is the only way a reply enters the
system: it validates the shape, forces categories into the fixed list and
clamps confidence scores.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Protocol

from openai import APIError, APITimeoutError, OpenAI
from pydantic import ValidationError

from receiptledger.errors import CollaboratorError, CollaboratorTimeout, MalformedAIResponse
from receiptledger.schemas import EXPENSE_CATEGORIES, CategorizationSuggestion

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a precise transaction categorizer. Always return valid JSON in the requested format."

USER_PROMPT_TEMPLATE = """
You are a transaction categorizer for expense tracking. Your job is to analyze receipt text and categorize line items.

RULES:
1. Use ONLY the provided category list - never create new categories
2. If uncertain, use "Uncategorized"
3. For receipts with multiple categories, split line by line
4. Provide confidence scores (0-100) for each categorization
5. Ensure line item amounts add up to the total (if available)
6. Extract merchant name and transaction date if visible

CATEGORY LIST:
{categories}

RECEIPT TEXT:
{ocr_text}

Please analyze this receipt and return a JSON response with this structure:
{{
  "merchant": "Store name",
  "date": "YYYY-MM-DD or null if not found",
  "total": 0.00,
  "lineItems": [
    {{
      "description": "Item description",
      "amount": 0.00,
      "category": "Category from list",
      "confidence": 85
    }}
  ],
  "isSplitTransaction": true/false
}}

If this is a simple single-category receipt (like gas station), set isSplitTransaction to false and return one line item with the full amount.
If this has multiple categories (like grocery store with food + household items), set isSplitTransaction to true and break down by category.
"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class Categorizer(Protocol):
    def categorize(self, ocr_text: str) -> str:
        """Return the model's raw JSON reply for *ocr_text*."""
        ...


def build_prompt(ocr_text: str) -> str:
    return USER_PROMPT_TEMPLATE.format(
        categories=", ".join(EXPENSE_CATEGORIES),
        ocr_text=ocr_text,
    )


def parse_suggestion(raw: str) -> CategorizationSuggestion:
    """Validate a raw model reply.

    Raises ``MalformedAIResponse`` for anything that is not a JSON object
    with a ``lineItems`` list of items carrying numeric amounts.
    """
    if not raw or not raw.strip():
        raise MalformedAIResponse("No response from AI")

    cleaned = _CODE_FENCE.sub("", raw.strip())
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse AI response: %.200s", raw)
        raise MalformedAIResponse("Invalid AI response format", details=str(exc)) from exc

    if not isinstance(payload, dict):
        raise MalformedAIResponse("Invalid AI response format: expected a JSON object")
    line_items = payload.get("lineItems", payload.get("line_items"))
    if not isinstance(line_items, list):
        raise MalformedAIResponse("Invalid line items in AI response")
    if not all(isinstance(item, dict) for item in line_items):
        raise MalformedAIResponse("Invalid line items in AI response")

    try:
        return CategorizationSuggestion.model_validate(payload)
    except ValidationError as exc:
        raise MalformedAIResponse(
            "Invalid AI response format",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


class OpenAICategorizer:
    """Chat-completions backed categorizer."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        if client is None:
            if not api_key:
                raise CollaboratorError("OpenAI API key not configured")
            client = OpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=max_retries,
            )
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def categorize(self, ocr_text: str) -> str:
        logger.info("Categorizing receipt text (%d chars) with %s", len(ocr_text), self._model)
        try:
            completion = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(ocr_text)},
                ],
                response_format={"type": "json_object"},
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except APITimeoutError as exc:
            raise CollaboratorTimeout("AI categorization timed out") from exc
        except APIError as exc:
            raise CollaboratorError(f"AI categorization failed: {exc}") from exc

        if not completion.choices:
            raise MalformedAIResponse("No response from AI")
        content = completion.choices[0].message.content
        if not content:
            raise MalformedAIResponse("No response from AI")
        return content
