from __future__ import annotations

from types import SimpleNamespace

import pytest

from portfolio_ledger.assistant.suggestions import (
    SUGGESTION_INSTRUCTIONS,
    build_openai_client,
    extract_response_text,
    provide_investment_suggestions,
)


class _FakeResponses:
    def __init__(self, response: object) -> None:
        self.response = response
        self.calls: list[dict[str, object]] = []

    def create(self, **kwargs: object) -> object:
        self.calls.append(kwargs)
        return self.response


def test_provide_investment_suggestions_sends_portfolio_text():
    responses = _FakeResponses(SimpleNamespace(output_text="Trim tech exposure."))
    client = SimpleNamespace(responses=responses)

    result = provide_investment_suggestions("Total Investment: $100.00.", model="gpt-test", client=client)

    assert result.suggestions == "Trim tech exposure."
    assert result.model == "gpt-test"
    assert responses.calls == [
        {
            "model": "gpt-test",
            "instructions": SUGGESTION_INSTRUCTIONS,
            "input": "Portfolio Data:\nTotal Investment: $100.00.",
        }
    ]


def test_empty_response_falls_back_to_placeholder():
    client = SimpleNamespace(responses=_FakeResponses(SimpleNamespace(output_text="", output=[])))

    result = provide_investment_suggestions("data", model="gpt-test", client=client)

    assert result.suggestions == "No suggestions returned."


def test_blank_portfolio_data_is_rejected():
    with pytest.raises(ValueError, match="portfolio_data is required"):
        provide_investment_suggestions("   ", model="gpt-test", client=SimpleNamespace())


def test_extract_response_text_reads_message_output_items():
    response = SimpleNamespace(
        output_text=None,
        output=[
            {"type": "reasoning", "content": [{"type": "output_text", "text": "hidden"}]},
            SimpleNamespace(
                type="message",
                content=[
                    {"type": "output_text", "text": "Energy looks strong."},
                    {"type": "refusal", "text": "ignored"},
                    SimpleNamespace(type="text", text="Banks lag."),
                ],
            ),
        ],
    )

    assert extract_response_text(response) == "Energy looks strong.\n\nBanks lag."


def test_build_openai_client_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        build_openai_client()
