# report.py
# ==============================================================================
# Coordination Report — read-only view over the report object the model
# returned: decisions, risk, bottlenecks and the supply graph
# ==============================================================================

from typing import List

from agent_roster import agent_names

RISK_COLORS = {
    'low': '#22c55e',
    'medium': '#eab308',
    'high': '#f97316',
    'critical': '#ef4444',
}


class CoordinationReport:
    """Wraps the stored report dict.

    Nothing here checks the model's values against the agents' policies;
    fields are shown as returned, with empty defaults for anything missing.
    """

    def __init__(self, report: dict, messages=None, agents=None):
        self.data = report or {}
        self.messages = list(messages or [])
        self.agents = list(agents or [])

    @property
    def title(self) -> str:
        return self.data.get('title') or "Coordination Complete"

    @property
    def summary(self) -> str:
        return self.data.get('summary') or ''

    @property
    def decisions(self) -> List[dict]:
        return self.data.get('decisions') or []

    @property
    def risk_assessment(self) -> dict:
        return self.data.get('risk_assessment') or {}

    @property
    def risk_level(self) -> str:
        return self.risk_assessment.get('level', '')

    @property
    def risk_color(self) -> str:
        return RISK_COLORS.get(self.risk_level, '#64748b')

    @property
    def bottlenecks(self) -> List[dict]:
        return self.data.get('bottlenecks') or []

    @property
    def graph_nodes(self) -> List[dict]:
        return (self.data.get('graph') or {}).get('nodes') or []

    @property
    def graph_edges(self) -> List[dict]:
        return (self.data.get('graph') or {}).get('edges') or []

    def badges(self) -> dict:
        """Header counts. The message count comes from the actual cascade."""
        total_agents = self.data.get('total_agents')
        if total_agents is None:
            total_agents = len(self.agents)
        return {
            'total_agents': total_agents,
            'total_messages': len(self.messages),
            'coordination_seconds': round((self.data.get('coordination_time_ms') or 0) / 1000, 1),
        }

    def total_cost(self) -> float:
        return sum(d.get('cost_estimate') or 0 for d in self.decisions)

    def explain(self) -> str:
        """Plain-text rendering for the CLI and logs."""
        names = agent_names()
        b = self.badges()
        lines = [self.title]
        if self.summary:
            lines.append(f"  {self.summary}")
        lines.append(f"  {b['total_agents']} agents | {b['total_messages']} messages | "
                     f"{b['coordination_seconds']:.1f}s coordination")

        if self.risk_assessment:
            lines.append(f"  Risk: {self.risk_level}")
            for f in self.risk_assessment.get('factors') or []:
                lines.append(f"    - {f}")

        if self.decisions:
            lines.append("  Decisions:")
            for d in self.decisions:
                who = names.get(d.get('agent'), d.get('agent', '?'))
                extra = []
                if d.get('cost_estimate') is not None:
                    extra.append(f"${d['cost_estimate']:,.0f}")
                if d.get('timeline_days') is not None:
                    extra.append(f"{d['timeline_days']}d")
                suffix = f" ({', '.join(extra)})" if extra else ""
                lines.append(f"    - {who}: {d.get('action', '')}{suffix}")
                if d.get('details'):
                    lines.append(f"        {d['details']}")

        if self.bottlenecks:
            lines.append("  Bottlenecks:")
            for bn in self.bottlenecks:
                who = names.get(bn.get('node'), bn.get('node', '?'))
                lines.append(f"    - [{bn.get('severity', '?')}] {who}: {bn.get('issue', '')}")

        return "\n".join(lines)
