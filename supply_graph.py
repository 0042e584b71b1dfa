# supply_graph.py
# ==============================================================================
# Supply Network Graph — fixed pentagon layout of the report's graph nodes,
# drawn with plotly
# ==============================================================================

import math

import plotly.graph_objects as go

CENTER_X, CENTER_Y, RADIUS = 250, 180, 130

STATUS_COLORS = {
    'active': 'hsl(152, 60%, 42%)',
    'stressed': 'hsl(38, 92%, 50%)',
    'critical': 'hsl(0, 84%, 60%)',
}

EDGE_COLORS = {
    'material': 'hsl(217, 91%, 50%)',
    'information': 'hsl(152, 60%, 42%)',
    'financial': 'hsl(38, 92%, 50%)',
}
DEFAULT_EDGE_COLOR = '#64748b'

ROLE_LABELS = {
    'retailer': "🏪 Retailer",
    'manufacturer': "🏭 Manufacturer",
    'supplier': "📦 Supplier",
    'logistics': "🚚 Logistics",
    'analytics': "🧠 Analytics",
}


def pentagon_layout(nodes):
    """{node id: (x, y)} evenly spaced on a circle, first node at the top.

    Screen coordinates: y grows downward.
    """
    positions = {}
    n = len(nodes)
    for i, node in enumerate(nodes):
        angle = i * 2 * math.pi / n - math.pi / 2
        positions[node['id']] = (CENTER_X + RADIUS * math.cos(angle),
                                 CENTER_Y + RADIUS * math.sin(angle))
    return positions


def node_color(status):
    return STATUS_COLORS.get(status, STATUS_COLORS['active'])


def edge_style(edge):
    """Line dict for an edge; information flows are dashed."""
    return {
        'color': EDGE_COLORS.get(edge.get('type'), DEFAULT_EDGE_COLOR),
        'width': max(1.5, (edge.get('weight') or 0) / 2),
        'dash': 'dash' if edge.get('type') == 'information' else 'solid',
    }


def build_figure(nodes, edges):
    """Plotly figure for the report graph, or None when there are no nodes.

    Edges whose endpoints are not among the nodes are skipped.
    """
    if not nodes:
        return None

    pos = pentagon_layout(nodes)
    fig = go.Figure()

    for edge in edges:
        start, end = pos.get(edge.get('from')), pos.get(edge.get('to'))
        if start is None or end is None:
            continue
        style = edge_style(edge)
        fig.add_trace(go.Scatter(
            x=[start[0], end[0]], y=[start[1], end[1]], mode='lines',
            line=style, opacity=0.6, hoverinfo='skip', showlegend=False))
        if edge.get('label'):
            fig.add_annotation(
                x=(start[0] + end[0]) / 2, y=(start[1] + end[1]) / 2 - 10,
                text=edge['label'], showarrow=False,
                font={'size': 9, 'color': style['color']})

    fig.add_trace(go.Scatter(
        x=[pos[n['id']][0] for n in nodes],
        y=[pos[n['id']][1] for n in nodes],
        mode='markers+text',
        marker={'size': 42, 'color': [node_color(n.get('status')) for n in nodes],
                'opacity': 0.85, 'line': {'width': 2.5, 'color': '#0f172a'}},
        text=[ROLE_LABELS.get(n['id'], n.get('role', n['id'])) for n in nodes],
        textposition='bottom center',
        hovertext=[f"{n.get('role', n['id'])}: {n.get('status', 'active')}" for n in nodes],
        hoverinfo='text',
        showlegend=False,
    ))

    fig.update_layout(
        height=420, template='plotly_dark',
        margin=dict(l=10, r=10, t=10, b=10),
        xaxis=dict(visible=False, range=[0, 500]),
        yaxis=dict(visible=False, range=[370, 0]),
        paper_bgcolor='rgba(0,0,0,0)')
    return fig
