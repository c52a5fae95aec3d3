from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

SUGGESTION_INSTRUCTIONS = (
    "You are an expert investment advisor. Analyze the following investment portfolio data "
    "and provide high-level suggestions about possible high and low performing sectors. "
    "Focus on providing actionable insights that the user can understand at a glance. "
    "Be concise. Educational analysis only; not financial or tax advice."
)


@dataclass(frozen=True)
class SuggestionResult:
    suggestions: str
    model: str


def build_openai_client() -> Any:
    api_key = os.getenv("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is not configured.")
    from openai import OpenAI

    return OpenAI(api_key=api_key)


def _as_dict(item: Any) -> dict[str, Any]:
    if item is None:
        return {}
    if isinstance(item, dict):
        return item
    if hasattr(item, "model_dump"):
        dumped = item.model_dump()
        if isinstance(dumped, dict):
            return dumped
    if hasattr(item, "__dict__"):
        return dict(item.__dict__)
    return {}


def extract_response_text(response: Any) -> str:
    text = str(getattr(response, "output_text", "") or "").strip()
    if text:
        return text

    snippets: list[str] = []
    for item in getattr(response, "output", []) or []:
        payload = _as_dict(item)
        if payload.get("type") != "message":
            continue
        for content in payload.get("content") or []:
            content_payload = _as_dict(content)
            if content_payload.get("type") not in {"output_text", "text"}:
                continue
            value = str(content_payload.get("text", "") or "").strip()
            if value:
                snippets.append(value)
    return "\n\n".join(snippets).strip()


def provide_investment_suggestions(
    portfolio_data: str,
    *,
    model: str,
    client: Any | None = None,
) -> SuggestionResult:
    data = str(portfolio_data or "").strip()
    if not data:
        raise ValueError("portfolio_data is required")

    local_client = client or build_openai_client()
    response = local_client.responses.create(
        model=model,
        instructions=SUGGESTION_INSTRUCTIONS,
        input=f"Portfolio Data:\n{data}",
    )
    suggestions = extract_response_text(response) or "No suggestions returned."
    return SuggestionResult(suggestions=suggestions, model=model)
