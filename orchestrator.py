# orchestrator.py
# ==============================================================================
# Agent Coordination Workflow — LangGraph pipeline that opens a session,
# summarizes inventory, asks the LLM for the full agent message cascade and
# persists the messages and report
# ==============================================================================

import json
import logging
from typing import Optional, TypedDict

from langgraph.graph import StateGraph, END

from agent_roster import load_roster
from errors import (
    CoordinationError, LLMNotConfiguredError, LLMResponseError, MissingToolCallError,
    QuotaExceededError, RateLimitError
)
from kpi_evaluator import coordination_summary
from llm_engine import LLMEngine
from messages import Message

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limited. Try again shortly."

TOOL_NAME = 'coordination_result'
TOOL_DESCRIPTION = "Return the full multi-agent coordination result"

MESSAGE_FIELDS = ['from', 'to', 'type', 'content', 'timestamp_offset_ms']

COORDINATION_SCHEMA = {
    'type': 'object',
    'properties': {
        'messages': {
            'type': 'array',
            'items': {
                'type': 'object',
                'properties': {
                    'from': {'type': 'string'},
                    'to': {'type': 'string'},
                    'type': {'type': 'string'},
                    'content': {'type': 'object'},
                    'timestamp_offset_ms': {'type': 'number'},
                },
                'required': MESSAGE_FIELDS,
            },
        },
        'report': {'type': 'object'},
    },
    'required': ['messages', 'report'],
}

RESULT_STRUCTURE = """{
  "messages": [
    {
      "from": "agent_id",
      "to": "agent_id",
      "type": "discovery|query|response|negotiate|confirm|alert",
      "content": { "summary": "short description", "details": { ... relevant data } },
      "timestamp_offset_ms": number (0 to 30000, simulating time progression)
    }
  ],
  "report": {
    "title": "string",
    "summary": "2-3 sentence executive summary",
    "total_agents": number,
    "total_messages": number,
    "coordination_time_ms": number,
    "decisions": [
      { "agent": "agent_id", "action": "string", "details": "string", "cost_estimate": number, "timeline_days": number }
    ],
    "risk_assessment": { "level": "low|medium|high|critical", "factors": ["string"] },
    "bottlenecks": [{ "node": "agent_id", "issue": "string", "severity": "low|medium|high" }],
    "graph": {
      "nodes": [{ "id": "agent_id", "role": "string", "status": "active|stressed|critical" }],
      "edges": [{ "from": "agent_id", "to": "agent_id", "type": "material|information|financial", "label": "string", "weight": number }]
    }
  }
}"""


def build_system_prompt(roster) -> str:
    agent_lines = "\n".join(a.prompt_line() for a in roster)
    return (
        f"You are simulating a multi-agent supply chain coordination network. "
        f"There are {len(roster)} agents:\n"
        f"{agent_lines}\n\n"
        "Simulate a realistic coordination cascade where agents discover each other, "
        "share data, negotiate, and reach agreements. Generate the full message "
        "exchange and final coordination report.\n\n"
        f"Return a JSON object with this exact structure:\n{RESULT_STRUCTURE}\n\n"
        "Generate 8-15 realistic messages showing the full coordination cascade. "
        "Make it feel like real agents communicating."
    )


def build_scenario(inventory, disruption: Optional[dict] = None) -> str:
    """User prompt: a disruption scenario or a plain demand signal."""
    inventory_json = json.dumps(inventory, separators=(',', ':'))
    if disruption:
        products = ", ".join(disruption.get('products') or []) or "all"
        return (f"DISRUPTION SCENARIO: {disruption.get('type')} - "
                f"{disruption.get('description')}. Products affected: {products}. "
                f"Current inventory: {inventory_json}")
    return ("DEMAND SIGNAL: Retailer detected increased demand. "
            f"Current inventory: {inventory_json}")


# ==============================================================================
# State Definition
# ==============================================================================

class CoordinationState(TypedDict):
    """State passed through the coordination workflow."""
    user_id: str
    trigger_type: str
    disruption: Optional[dict]
    session_id: Optional[str]
    inventory: list
    scenario: str
    messages: list
    report: dict


# ==============================================================================
# Orchestrator
# ==============================================================================

class CoordinationOrchestrator:
    """Runs one coordination session per call.

    Workflow (linear):
    - open_session: session row in 'running'
    - summarize_inventory: per-product stock picture from the user's sales
    - request_cascade: one forced tool call for messages + report
    - persist: store messages, mark the session completed

    A failure in request_cascade propagates and leaves the session in
    'running'; nothing is retried.
    """

    def __init__(self, data_layer, llm=None, roster=None):
        self.data_layer = data_layer
        self.llm = llm
        self.roster = roster if roster is not None else load_roster()
        self.system_prompt = build_system_prompt(self.roster)
        self._workflow = self._build_workflow()

    # =========================================================================
    # LangGraph Workflow Definition
    # =========================================================================

    def _build_workflow(self):
        workflow = StateGraph(CoordinationState)

        workflow.add_node("open_session", self._node_open_session)
        workflow.add_node("summarize_inventory", self._node_summarize_inventory)
        workflow.add_node("request_cascade", self._node_request_cascade)
        workflow.add_node("persist", self._node_persist)

        workflow.set_entry_point("open_session")
        workflow.add_edge("open_session", "summarize_inventory")
        workflow.add_edge("summarize_inventory", "request_cascade")
        workflow.add_edge("request_cascade", "persist")
        workflow.add_edge("persist", END)

        return workflow.compile()

    # =========================================================================
    # Nodes
    # =========================================================================

    def _node_open_session(self, state: CoordinationState) -> dict:
        session = self.data_layer.create_session(state['user_id'], state['trigger_type'])
        logger.info("Coordination session %s opened (%s)", session['id'], state['trigger_type'])
        return {'session_id': session['id']}

    def _node_summarize_inventory(self, state: CoordinationState) -> dict:
        sales = self.data_layer.get_sales(state['user_id'])
        inventory = coordination_summary(sales)
        return {
            'inventory': inventory,
            'scenario': build_scenario(inventory, state.get('disruption')),
        }

    def _node_request_cascade(self, state: CoordinationState) -> dict:
        llm = self.llm or LLMEngine.get_instance()
        try:
            result = llm.call_tool(self.system_prompt, state['scenario'],
                                   TOOL_NAME, TOOL_DESCRIPTION, COORDINATION_SCHEMA)
        except RateLimitError as e:
            raise RateLimitError(RATE_LIMIT_MESSAGE) from e
        except QuotaExceededError as e:
            raise CoordinationError("AI coordination failed") from e
        except MissingToolCallError as e:
            raise CoordinationError("AI did not return coordination result") from e
        except LLMResponseError as e:
            raise CoordinationError("AI coordination failed") from e

        messages = result.get('messages') or []
        for m in messages:
            missing = [f for f in MESSAGE_FIELDS if f not in m]
            if missing:
                raise CoordinationError(
                    f"AI message is missing {', '.join(missing)}")

        return {'messages': messages, 'report': result.get('report') or {}}

    def _node_persist(self, state: CoordinationState) -> dict:
        user_id, session_id = state['user_id'], state['session_id']
        if state['messages']:
            rows = [Message.from_dict(m).to_row() for m in state['messages']]
            self.data_layer.insert_messages(user_id, session_id, rows)
        self.data_layer.complete_session(user_id, session_id, state['report'])
        logger.info("Coordination session %s completed with %d messages",
                    session_id, len(state['messages']))
        return {}

    # =========================================================================
    # Public API
    # =========================================================================

    def run(self, user_id, trigger_type=None, disruption=None) -> dict:
        """Run one coordination session.

        Returns:
            {success, session_id, agents, messages, report}

        Raises:
            LLMNotConfiguredError: no API key; no session row is written
        """
        if not (self.llm or LLMEngine.get_instance()).is_available:
            raise LLMNotConfiguredError("GROQ_API_KEY not configured")

        initial_state = {
            'user_id': user_id,
            'trigger_type': trigger_type or 'demand_signal',
            'disruption': disruption,
            'session_id': None,
            'inventory': [],
            'scenario': '',
            'messages': [],
            'report': {},
        }
        final = self._workflow.invoke(initial_state)
        return {
            'success': True,
            'session_id': final['session_id'],
            'agents': [a.to_dict() for a in self.roster],
            'messages': final['messages'],
            'report': final['report'],
        }

    def load_session(self, user_id, session_id) -> Optional[dict]:
        """A past session in the same shape `run` returns."""
        session = self.data_layer.get_session(user_id, session_id)
        if session is None:
            return None
        return {
            'success': session['status'] == 'completed',
            'session_id': session_id,
            'agents': [a.to_dict() for a in self.roster],
            'messages': self.data_layer.get_session_messages(user_id, session_id),
            'report': session.get('report') or {},
        }
