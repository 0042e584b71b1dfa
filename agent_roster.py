# agent_roster.py
# ==============================================================================
# Agent Roster — the five supply chain agents and the disruption scenarios,
# held as capability records rather than inline prompt text
# ==============================================================================

import json
import logging

import config

logger = logging.getLogger(__name__)


class AgentProfile:
    """Static description of one agent in the coordination network."""

    def __init__(self, id: str, name: str, role: str, capabilities: list,
                 location: str, policies: dict):
        self.id = id
        self.name = name
        self.role = role
        self.capabilities = list(capabilities)
        self.location = location
        self.policies = dict(policies)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'capabilities': self.capabilities,
            'location': self.location,
            'policies': self.policies,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AgentProfile':
        return cls(
            id=data['id'],
            name=data['name'],
            role=data['role'],
            capabilities=data.get('capabilities', []),
            location=data.get('location', ''),
            policies=data.get('policies', {}),
        )

    def prompt_line(self) -> str:
        policies = json.dumps(self.policies, separators=(',', ':'))
        return (f"- {self.name} ({self.role}): "
                f"capabilities={', '.join(self.capabilities)}, "
                f"location={self.location}, policies={policies}")

    def __repr__(self):
        return f"AgentProfile({self.id}: {self.name})"


DEFAULT_ROSTER = [
    AgentProfile(
        id='retailer', name='RetailBot', role='Retailer',
        capabilities=['demand_forecasting', 'order_placement', 'inventory_tracking'],
        location='New York, US',
        policies={'min_stock_days': 7, 'max_order_value': 50000},
    ),
    AgentProfile(
        id='manufacturer', name='MfgCore', role='Manufacturer',
        capabilities=['production_planning', 'capacity_management', 'quality_control'],
        location='Detroit, US',
        policies={'lead_time_days': 5, 'max_capacity_units': 10000},
    ),
    AgentProfile(
        id='supplier', name='SupplyLink', role='Supplier',
        capabilities=['raw_materials', 'component_supply', 'bulk_pricing'],
        location='Shenzhen, CN',
        policies={'min_order_qty': 100, 'shipping_days': 3},
    ),
    AgentProfile(
        id='logistics', name='LogiFlow', role='Logistics',
        capabilities=['routing', 'warehousing', 'last_mile_delivery', 'cold_chain'],
        location='Memphis, US',
        policies={'max_weight_kg': 5000, 'delivery_guarantee_days': 2},
    ),
    AgentProfile(
        id='analytics', name='InsightAI', role='Analytics',
        capabilities=['risk_assessment', 'demand_prediction', 'cost_optimization'],
        location='Cloud',
        policies={'confidence_threshold': 0.85},
    ),
]


def load_roster(path=None):
    """Roster from a JSON list of agent records, or the built-in five."""
    path = path or config.agent_roster_path()
    if not path:
        return list(DEFAULT_ROSTER)
    with open(path, 'r', encoding='utf-8') as f:
        roster = [AgentProfile.from_dict(a) for a in json.load(f)]
    logger.info("Loaded %d agents from %s", len(roster), path)
    return roster


def agent_names(roster=None):
    """id -> display name, used to label timeline and report entries."""
    return {a.id: a.name for a in (roster or DEFAULT_ROSTER)}


# ==============================================================================
# Disruption scenarios
# ==============================================================================

DISRUPTION_SCENARIOS = {
    'none': {
        'label': "Normal Demand Signal",
    },
    'stockout': {
        'label': "⚠️ Supplier Stockout",
        'type': 'inventory_shortage',
        'description': "Primary supplier reports critical component shortage, "
                       "affecting 60% of production capacity",
        'products': ['Webcam HD', 'USB-C Hub'],
    },
    'logistics_delay': {
        'label': "🚚 Logistics Delay",
        'type': 'logistics_disruption',
        'description': "Major shipping route blocked, expected 7-day delay on "
                       "all inbound shipments",
        'products': ['Monitor Stand', 'Mechanical Keyboard'],
    },
    'demand_spike': {
        'label': "📈 Demand Spike",
        'type': 'demand_surge',
        'description': "Unexpected 300% increase in demand detected from retail channels",
        'products': ['Wireless Mouse', 'Laptop Sleeve'],
    },
}


def scenario_request(key):
    """(trigger_type, disruption payload or None) for a scenario key."""
    if key == 'none' or key not in DISRUPTION_SCENARIOS:
        return 'demand_signal', None
    s = DISRUPTION_SCENARIOS[key]
    return 'disruption', {
        'type': s['type'],
        'description': s['description'],
        'products': list(s['products']),
    }
