# llm_engine.py
# ==============================================================================
# LLM Engine — a single structured call per request via Groq + LangChain.
# The model is forced to answer through one tool whose JSON schema is the
# reply contract; provider failures become typed errors, never retried.
# ==============================================================================

import json
import logging

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq

import config
from errors import (
    LLMNotConfiguredError, LLMResponseError, MissingToolCallError,
    QuotaExceededError, RateLimitError
)

logger = logging.getLogger(__name__)

RATE_LIMIT_KEYWORDS = ('rate_limit', 'rate limit', 'ratelimit', 'too many requests')
QUOTA_KEYWORDS = ('insufficient_quota', 'payment required', 'credits')


def _status_of(exc):
    """Best-effort HTTP status of a provider exception."""
    status = getattr(exc, 'status_code', None)
    if status is None:
        response = getattr(exc, 'response', None)
        status = getattr(response, 'status_code', None)
    if status is not None:
        return int(status)
    text = str(exc).lower()
    if any(kw in text for kw in RATE_LIMIT_KEYWORDS):
        return 429
    if any(kw in text for kw in QUOTA_KEYWORDS):
        return 402
    return None


def tool_spec(name, description, parameters):
    """OpenAI-style function tool definition."""
    return {
        'type': 'function',
        'function': {
            'name': name,
            'description': description,
            'parameters': parameters,
        },
    }


class LLMEngine:
    """Centralized LLM engine using Groq."""

    _instance = None

    def __init__(self, model=None, temperature=None, api_key=None, chat_model=None):
        self.model_name = model or config.groq_model()
        self.temperature = config.llm_temperature() if temperature is None else temperature
        self.call_count = 0
        self.total_tokens = 0
        self.llm = chat_model if chat_model is not None else self._initialize(api_key)

    @classmethod
    def get_instance(cls, **kwargs):
        if cls._instance is None:
            cls._instance = cls(**kwargs)
        return cls._instance

    @classmethod
    def reset(cls):
        cls._instance = None

    def _initialize(self, api_key):
        api_key = api_key or config.groq_api_key()
        if not api_key:
            logger.warning("GROQ_API_KEY not set; LLM calls will fail until configured")
            return None
        llm = ChatGroq(model=self.model_name, temperature=self.temperature,
                       api_key=api_key, max_retries=0)
        logger.info("LLM Engine initialized: %s via Groq", self.model_name)
        return llm

    @property
    def is_available(self):
        return self.llm is not None

    def call_tool(self, system_prompt, user_prompt, tool_name, description, parameters):
        """Ask the model to answer through `tool_name` and return its arguments.

        Raises:
            LLMNotConfiguredError: no API key
            RateLimitError: provider answered 429
            QuotaExceededError: provider answered 402
            LLMResponseError: any other failure, or no tool call in the reply
        """
        if self.llm is None:
            raise LLMNotConfiguredError("GROQ_API_KEY not configured")

        bound = self.llm.bind_tools(
            [tool_spec(tool_name, description, parameters)], tool_choice=tool_name)
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        try:
            response = bound.invoke(messages)
        except Exception as e:
            status = _status_of(e)
            logger.error("LLM call %s failed (status=%s): %s", tool_name, status, e)
            if status == 429:
                raise RateLimitError(f"LLM rate limit exceeded: {e}") from e
            if status == 402:
                raise QuotaExceededError(f"LLM credits exhausted: {e}") from e
            raise LLMResponseError(f"LLM call failed: {e}", status_code=status) from e

        self.call_count += 1
        usage = getattr(response, 'usage_metadata', None)
        if usage:
            self.total_tokens += usage.get('total_tokens', 0)

        for call in getattr(response, 'tool_calls', None) or []:
            if call.get('name') == tool_name:
                args = call.get('args')
                if isinstance(args, str):
                    try:
                        args = json.loads(args)
                    except json.JSONDecodeError as e:
                        raise LLMResponseError(f"Unparsable {tool_name} arguments") from e
                logger.debug("LLM call %s returned keys %s", tool_name, sorted(args))
                return args

        raise MissingToolCallError(f"LLM reply did not call {tool_name}")

    def get_stats(self):
        return {
            'model': self.model_name,
            'available': self.is_available,
            'total_calls': self.call_count,
            'total_tokens': self.total_tokens,
        }
