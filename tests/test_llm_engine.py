# tests/test_llm_engine.py
# ==============================================================================
# Tests for LLMEngine — forced tool calls, provider error mapping, singleton
# ==============================================================================

import sys
import os
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import FakeChatModel, ProviderError
from errors import (
    LLMNotConfiguredError, LLMResponseError, MissingToolCallError,
    QuotaExceededError, RateLimitError
)
from llm_engine import LLMEngine, _status_of

SCHEMA = {'type': 'object', 'properties': {'x': {'type': 'number'}}}


def engine_with(fake):
    return LLMEngine(model='test-model', temperature=0, chat_model=fake)


class TestSingleton:
    def test_get_instance_reuses(self):
        a = LLMEngine.get_instance()
        b = LLMEngine.get_instance()
        assert a is b

    def test_reset(self):
        a = LLMEngine.get_instance()
        LLMEngine.reset()
        assert LLMEngine.get_instance() is not a

    def test_unavailable_without_key(self):
        engine = LLMEngine.get_instance()
        assert not engine.is_available
        assert engine.get_stats()['available'] is False


class TestToolCalls:
    def test_returns_tool_args(self):
        fake = FakeChatModel(args={'x': 1})
        result = engine_with(fake).call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)
        assert result == {'x': 1}

    def test_tool_is_forced(self):
        fake = FakeChatModel(args={'x': 1})
        engine_with(fake).call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)
        assert fake.tool_choice == 'my_tool'
        tool = fake.bound_tools[0]
        assert tool['function']['name'] == 'my_tool'
        assert tool['function']['parameters'] == SCHEMA

    def test_prompts_sent_in_order(self):
        fake = FakeChatModel(args={'x': 1})
        engine_with(fake).call_tool('system text', 'user text', 'my_tool', 'desc', SCHEMA)
        sent = fake.calls[0]
        assert sent[0].content == 'system text'
        assert sent[1].content == 'user text'

    def test_string_args_decoded(self):
        response = SimpleNamespace(
            tool_calls=[{'name': 'my_tool', 'args': '{"x": 2}'}], usage_metadata=None)
        result = engine_with(FakeChatModel(response=response)).call_tool(
            'sys', 'user', 'my_tool', 'desc', SCHEMA)
        assert result == {'x': 2}

    def test_missing_tool_call(self):
        response = SimpleNamespace(tool_calls=[], usage_metadata=None)
        with pytest.raises(MissingToolCallError):
            engine_with(FakeChatModel(response=response)).call_tool(
                'sys', 'user', 'my_tool', 'desc', SCHEMA)

    def test_other_tool_name_ignored(self):
        with pytest.raises(MissingToolCallError):
            engine_with(FakeChatModel(args={'x': 1}, tool_name='other')).call_tool(
                'sys', 'user', 'my_tool', 'desc', SCHEMA)

    def test_stats_count_calls(self):
        engine = engine_with(FakeChatModel(args={'x': 1}))
        engine.call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)
        engine.call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)
        assert engine.get_stats()['total_calls'] == 2

    def test_not_configured(self):
        engine = LLMEngine(model='test-model', temperature=0)
        with pytest.raises(LLMNotConfiguredError):
            engine.call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)


class TestErrorMapping:
    def test_429_is_rate_limit(self):
        fake = FakeChatModel(error=ProviderError("slow down", status_code=429))
        with pytest.raises(RateLimitError):
            engine_with(fake).call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)

    def test_402_is_quota(self):
        fake = FakeChatModel(error=ProviderError("pay up", status_code=402))
        with pytest.raises(QuotaExceededError):
            engine_with(fake).call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)

    def test_500_is_generic(self):
        fake = FakeChatModel(error=ProviderError("boom", status_code=500))
        with pytest.raises(LLMResponseError) as exc:
            engine_with(fake).call_tool('sys', 'user', 'my_tool', 'desc', SCHEMA)
        assert not isinstance(exc.value, MissingToolCallError)
        assert exc.value.status_code == 500

    def test_status_from_response_attribute(self):
        exc = Exception("x")
        exc.response = SimpleNamespace(status_code=429)
        assert _status_of(exc) == 429

    def test_status_from_message(self):
        assert _status_of(Exception("Error code: rate_limit_exceeded")) == 429
        assert _status_of(Exception("connection reset")) is None
