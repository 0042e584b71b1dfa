# tests/conftest.py
# ==============================================================================
# Shared fixtures — in-memory storage, a scripted chat model, sample CSVs
# ==============================================================================

import sys
import os
from datetime import date

import pytest
from langchain_core.messages import AIMessage

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data_layer import DataLayer
from llm_engine import LLMEngine


class ProviderError(Exception):
    """Stands in for a provider SDK error carrying an HTTP status."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class FakeChatModel:
    """Chat model that answers every call with one scripted tool call."""

    def __init__(self, args=None, tool_name=None, error=None, response=None):
        self.args = args or {}
        self.tool_name = tool_name
        self.error = error
        self.response = response
        self.calls = []
        self.bound_tools = None
        self.tool_choice = None

    def bind_tools(self, tools, tool_choice=None, **kwargs):
        self.bound_tools = tools
        self.tool_choice = tool_choice
        return self

    def invoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response
        name = self.tool_name or self.tool_choice
        return AIMessage(content='', tool_calls=[
            {'name': name, 'args': self.args, 'id': 'call_1'}
        ])


@pytest.fixture(autouse=True)
def reset_llm_engine():
    LLMEngine.reset()
    # Keep real keys out of the tests
    saved = {k: os.environ.pop(k, None) for k in ('GROQ_API_KEY', 'ELEVENLABS_API_KEY')}
    yield
    LLMEngine.reset()
    for key, value in saved.items():
        if value is not None:
            os.environ[key] = value


@pytest.fixture
def dl():
    return DataLayer('sqlite://')


def make_engine(args=None, **kwargs):
    return LLMEngine(model='test-model', temperature=0,
                     chat_model=FakeChatModel(args=args, **kwargs))


def sales_row(product, day, sold, price=10.0, stock=100.0, reorder=20.0, line_no=1):
    return {
        'product_name': product,
        'sale_date': date(2024, 1, day),
        'quantity_sold': sold,
        'unit_price': price,
        'current_stock': stock,
        'reorder_point': reorder,
        'line_no': line_no,
    }


SAMPLE_CSV = (
    "Product Name,Date,Quantity Sold,Unit Price,Current Stock,Reorder Point\n"
    "Wireless Mouse,2024-01-01,10,25.00,120,50\n"
    "Wireless Mouse,2024-01-02,14,25.00,106,50\n"
    "USB-C Hub,2024-01-01,5,40.00,30,40\n"
    "USB-C Hub,2024-01-02,7,40.00,23,40\n"
)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV.encode('utf-8')


# A canned coordination reply
FIXTURE_MESSAGES = [
    {'from': 'retailer', 'to': 'analytics', 'type': 'discovery',
     'content': {'summary': 'Demand rising on Mouse'}, 'timestamp_offset_ms': 0},
    {'from': 'analytics', 'to': 'retailer', 'type': 'response',
     'content': {'summary': 'Forecast +40%'}, 'timestamp_offset_ms': 1500},
    {'from': 'retailer', 'to': 'manufacturer', 'type': 'negotiate',
     'content': {'summary': 'Need 500 units'}, 'timestamp_offset_ms': 4000},
    {'from': 'manufacturer', 'to': 'retailer', 'type': 'confirm',
     'content': {'summary': 'Confirmed in 5 days'}, 'timestamp_offset_ms': 6000},
]

FIXTURE_REPORT = {
    'title': 'Demand Response Plan',
    'summary': 'Agents agreed on a 500 unit production run.',
    'total_agents': 5,
    'total_messages': 12,
    'coordination_time_ms': 6000,
    'decisions': [{'agent': 'manufacturer', 'action': 'Produce 500 units',
                   'details': 'Rush run', 'cost_estimate': 12000, 'timeline_days': 5}],
    'risk_assessment': {'level': 'medium', 'factors': ['Lead time']},
    'bottlenecks': [],
    'graph': {'nodes': [], 'edges': []},
}
