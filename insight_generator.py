# insight_generator.py
# ==============================================================================
# Insight Generation — one LLM call over the per-product summary; the reply
# replaces the user's insight set wholesale (last run wins)
# ==============================================================================

import json
import logging

from errors import (
    AnalysisError, LLMResponseError, MissingToolCallError,
    QuotaExceededError, RateLimitError
)
from kpi_evaluator import summarize_products
from llm_engine import LLMEngine

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_MESSAGE = "AI credits exhausted. Please add credits in Settings."

ANALYST_SYSTEM_PROMPT = """You are a supply chain analyst AI. Analyze inventory data and return a JSON array of product insights. For each product, provide:
- status: "healthy", "at_risk", or "critical"
- risk_level: "low", "medium", "high", or "critical"
- recommendation: a short action (e.g. "Reorder now", "Reduce stock", "Monitor")
- explanation: 2-3 sentences explaining the reasoning
- recommended_order_qty: integer (0 if no order needed)
- forecast_next_30: array of 30 numbers representing predicted daily demand

Base your analysis on: current stock vs reorder point, average daily sales, days of stock remaining, and trends.
Return ONLY valid JSON array, no markdown or extra text."""

TOOL_NAME = 'supply_chain_analysis'
TOOL_DESCRIPTION = "Return supply chain analysis results for all products"

REQUIRED_FIELDS = ['product_name', 'status', 'risk_level', 'recommendation',
                   'explanation', 'recommended_order_qty']

INSIGHT_SCHEMA = {
    'type': 'object',
    'properties': {
        'insights': {
            'type': 'array',
            'items': {
                'type': 'object',
                'properties': {
                    'product_name': {'type': 'string'},
                    'status': {'type': 'string', 'enum': ['healthy', 'at_risk', 'critical']},
                    'risk_level': {'type': 'string',
                                   'enum': ['low', 'medium', 'high', 'critical']},
                    'recommendation': {'type': 'string'},
                    'explanation': {'type': 'string'},
                    'recommended_order_qty': {'type': 'number'},
                    'forecast_next_30': {'type': 'array', 'items': {'type': 'number'}},
                },
                'required': REQUIRED_FIELDS,
                'additionalProperties': False,
            },
        },
    },
    'required': ['insights'],
    'additionalProperties': False,
}


def build_user_prompt(summaries):
    return f"Analyze these products:\n{json.dumps(summaries, indent=2)}"


def _check_required(insights):
    if not isinstance(insights, list):
        raise AnalysisError("AI did not return an insights array")
    for item in insights:
        missing = [f for f in REQUIRED_FIELDS if f not in item]
        if missing:
            raise AnalysisError(
                f"AI insight for {item.get('product_name', '?')} is missing "
                f"{', '.join(missing)}")


def generate_insights(data_layer, user_id, llm=None):
    """Analyze the user's inventory and store the returned insight set.

    Returns:
        number of insights stored

    Raises:
        AnalysisError: no data, generic provider failure, malformed reply
        RateLimitError / QuotaExceededError: provider 429 / 402
        LLMNotConfiguredError: no API key
    """
    sales = data_layer.get_sales(user_id)
    if not sales:
        raise AnalysisError("No sales data found. Please upload data first.")

    latest_upload = data_layer.latest_upload(user_id)
    if not latest_upload:
        raise AnalysisError("No upload found")

    summaries = summarize_products(sales)
    llm = llm or LLMEngine.get_instance()
    logger.info("Analyzing %d products for user %s", len(summaries), user_id)

    try:
        result = llm.call_tool(ANALYST_SYSTEM_PROMPT, build_user_prompt(summaries),
                               TOOL_NAME, TOOL_DESCRIPTION, INSIGHT_SCHEMA)
    except RateLimitError as e:
        raise RateLimitError(RATE_LIMIT_MESSAGE) from e
    except QuotaExceededError as e:
        raise QuotaExceededError(QUOTA_MESSAGE) from e
    except MissingToolCallError as e:
        raise AnalysisError("AI did not return expected tool call") from e
    except LLMResponseError as e:
        raise AnalysisError("AI analysis failed") from e

    insights = result.get('insights')
    _check_required(insights)

    count = data_layer.replace_insights(user_id, latest_upload['id'], insights)
    logger.info("Stored %d insights for user %s", count, user_id)
    return count


def failure_message(exc):
    """(title, description) shown when an analysis run fails."""
    if isinstance(exc, RateLimitError):
        return "Rate limit reached", RATE_LIMIT_MESSAGE
    if isinstance(exc, QuotaExceededError):
        return "AI credits exhausted", QUOTA_MESSAGE
    return "Analysis failed", str(exc) or "Analysis failed"
