"""Tests for the vendor adapters: request construction and line decoding."""

from __future__ import annotations

import json

import pytest

from llm_stream_relay.api.gateway import (
    ClaudeAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    ProviderKind,
    VendorChunk,
    get_adapter,
    resolve_provider_kind,
)
from llm_stream_relay.core.errors import ParseError, UnsupportedProviderError


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [("openai", ProviderKind.OPENAI), (" Gemini ", ProviderKind.GEMINI), ("CLAUDE", ProviderKind.CLAUDE)],
)
def test_resolve_provider_kind_normalizes(raw, expected):
    assert resolve_provider_kind(raw) is expected


def test_unknown_provider_kind_raises():
    with pytest.raises(UnsupportedProviderError) as excinfo:
        get_adapter("mistral")
    assert str(excinfo.value) == "Unsupported provider type: mistral"


def test_get_adapter_returns_matching_class():
    assert isinstance(get_adapter("openai"), OpenAIAdapter)
    assert isinstance(get_adapter("gemini"), GeminiAdapter)
    assert isinstance(get_adapter("claude"), ClaudeAdapter)


def test_base_url_strips_whitespace_and_trailing_slash(make_descriptor):
    descriptor = make_descriptor("openai", base_url="  https://api.openai.test/v1/  ")

    assert OpenAIAdapter.base_url(descriptor) == "https://api.openai.test/v1"
    assert OpenAIAdapter().build(descriptor).url == "https://api.openai.test/v1/chat/completions"


# -----------------------------------------------------------------------------
# OpenAI-compatible
# -----------------------------------------------------------------------------

def test_openai_build_with_system_prompt(make_descriptor):
    request = OpenAIAdapter().build(
        make_descriptor("openai", base_url="https://api.openai.test/v1/", system_prompt="Be brief")
    )

    assert request.method == "POST"
    assert request.url == "https://api.openai.test/v1/chat/completions"
    assert request.headers == {"Content-Type": "application/json", "Authorization": "Bearer sk-test"}
    assert request.body == {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ],
        "stream": True,
        "temperature": 0.3,
    }


def test_openai_build_omits_authorization_without_key(make_descriptor):
    request = OpenAIAdapter().build(make_descriptor("openai", api_key=""))

    assert "Authorization" not in request.headers
    assert request.body["messages"] == [{"role": "user", "content": "Hello"}]


def test_openai_connection_check_is_non_streaming_single_token(make_descriptor):
    check = OpenAIAdapter().build_probe(make_descriptor("openai"))

    assert check.body["stream"] is False
    assert check.body["max_tokens"] == 1


def test_openai_decode_delta():
    chunk = OpenAIAdapter().decode_line('{"choices":[{"delta":{"content":"Hi"}}]}')

    assert chunk == VendorChunk(deltas=("Hi",))


def test_openai_decode_done_sentinel():
    assert OpenAIAdapter().decode_line("[DONE]") == VendorChunk(terminal=True)


def test_openai_empty_content_and_role_only_deltas_are_ignored():
    adapter = OpenAIAdapter()

    assert adapter.decode_line('{"choices":[{"delta":{"role":"assistant"}}]}') is None
    assert adapter.decode_line('{"choices":[{"delta":{"content":""}}]}') is None
    assert adapter.decode_line('{"choices":[]}') is None


def test_openai_finish_reason_is_terminal_and_ignores_later_choices():
    payload = json.dumps(
        {
            "choices": [
                {"delta": {"content": "a"}},
                {"delta": {"content": "b"}, "finish_reason": "stop"},
                {"delta": {"content": "c"}},
            ]
        }
    )

    assert OpenAIAdapter().decode_line(payload) == VendorChunk(deltas=("a", "b"), terminal=True)


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", '{"id": "x"}', '{"choices": "nope"}'])
def test_openai_malformed_payloads_raise_parse_error(payload):
    with pytest.raises(ParseError):
        OpenAIAdapter().decode_line(payload)


# -----------------------------------------------------------------------------
# Gemini
# -----------------------------------------------------------------------------

def test_gemini_build_url_and_body(make_descriptor):
    request = GeminiAdapter().build(make_descriptor("gemini", api_key="k/y+z", system_prompt="sys"))

    assert request.url == (
        "https://gemini.test/v1beta/models/gemini-1.5-flash:streamGenerateContent"
        "?key=k%2Fy%2Bz&alt=sse"
    )
    assert request.headers == {"Content-Type": "application/json"}
    assert request.body == {
        "contents": [{"parts": [{"text": "Hello"}]}],
        "generationConfig": {"temperature": 0.3},
        "systemInstruction": {"parts": [{"text": "sys"}]},
    }


def test_gemini_connection_check_uses_generate_content(make_descriptor):
    check = GeminiAdapter().build_probe(make_descriptor("gemini"))

    assert ":generateContent?key=sk-test" in check.url
    assert "alt=sse" not in check.url
    assert check.body["generationConfig"]["maxOutputTokens"] == 1
    assert "systemInstruction" not in check.body


def test_gemini_decode_collects_all_candidate_parts_in_order():
    payload = json.dumps(
        {
            "candidates": [
                {"content": {"parts": [{"text": "A"}, {"text": ""}, {"text": "B"}]}},
                {"content": {"parts": [{"text": "C"}]}},
            ]
        }
    )

    chunk = GeminiAdapter().decode_line(payload)

    assert chunk == VendorChunk(deltas=("A", "B", "C"))
    assert chunk.terminal is False


def test_gemini_decode_without_text_returns_none():
    adapter = GeminiAdapter()

    assert adapter.decode_line('{"usageMetadata": {"totalTokenCount": 3}}') is None
    assert adapter.decode_line('{"candidates": [{"finishReason": "STOP"}]}') is None


@pytest.mark.parametrize("payload", ["{oops", '"text"', '{"candidates": {"a": 1}}'])
def test_gemini_malformed_payloads_raise_parse_error(payload):
    with pytest.raises(ParseError):
        GeminiAdapter().decode_line(payload)


# -----------------------------------------------------------------------------
# Claude
# -----------------------------------------------------------------------------

def test_claude_build_headers_and_body(make_descriptor):
    request = ClaudeAdapter().build(make_descriptor("claude", system_prompt="sys"))

    assert request.url == "https://claude.test/v1/messages"
    assert request.headers == {
        "Content-Type": "application/json",
        "x-api-key": "sk-test",
        "anthropic-version": "2023-06-01",
    }
    assert request.body == {
        "model": "claude-sonnet-4-20250514",
        "max_tokens": 4096,
        "messages": [{"role": "user", "content": "Hello"}],
        "stream": True,
        "system": "sys",
    }


def test_claude_custom_api_version(make_descriptor):
    request = ClaudeAdapter().build(make_descriptor("claude", api_version="2024-01-01"))

    assert request.headers["anthropic-version"] == "2024-01-01"
    assert "system" not in request.body


def test_claude_connection_check_request(make_descriptor):
    check = ClaudeAdapter().build_probe(make_descriptor("claude"))

    assert check.body["stream"] is False
    assert check.body["max_tokens"] == 1


def test_claude_decode_events():
    adapter = ClaudeAdapter()

    assert adapter.decode_line(
        '{"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}'
    ) == VendorChunk(deltas=("Hi",))
    assert adapter.decode_line('{"type":"message_stop"}') == VendorChunk(terminal=True)
    assert adapter.decode_line('{"type":"message_start","message":{}}') is None
    assert adapter.decode_line('{"type":"ping"}') is None
    assert adapter.decode_line('{"type":"content_block_delta","delta":{"type":"input_json_delta"}}') is None


@pytest.mark.parametrize("payload", ["", "[]", '{"delta": {"text": "x"}}', '{"type": 3}'])
def test_claude_malformed_payloads_raise_parse_error(payload):
    with pytest.raises(ParseError):
        ClaudeAdapter().decode_line(payload)
