# tests/test_supply_graph.py
# ==============================================================================
# Tests for the supply network graph layout and figure
# ==============================================================================

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from supply_graph import (
    CENTER_X, CENTER_Y, EDGE_COLORS, RADIUS, STATUS_COLORS,
    build_figure, edge_style, node_color, pentagon_layout
)

NODES = [{'id': a, 'role': a.title(), 'status': 'active'}
         for a in ('retailer', 'manufacturer', 'supplier', 'logistics', 'analytics')]


class TestLayout:
    def test_first_node_at_top(self):
        x, y = pentagon_layout(NODES)['retailer']
        assert x == pytest.approx(CENTER_X)
        assert y == pytest.approx(CENTER_Y - RADIUS)

    def test_all_on_circle(self):
        for x, y in pentagon_layout(NODES).values():
            assert ((x - CENTER_X) ** 2 + (y - CENTER_Y) ** 2) ** 0.5 == pytest.approx(RADIUS)

    def test_second_node_clockwise(self):
        x, _ = pentagon_layout(NODES)['manufacturer']
        assert x > CENTER_X


class TestStyles:
    def test_information_edges_dashed(self):
        assert edge_style({'type': 'information', 'weight': 2})['dash'] == 'dash'
        assert edge_style({'type': 'material', 'weight': 2})['dash'] == 'solid'

    def test_edge_width_floor(self):
        assert edge_style({'type': 'financial', 'weight': 1})['width'] == 1.5
        assert edge_style({'type': 'financial', 'weight': 8})['width'] == 4

    def test_colors(self):
        assert edge_style({'type': 'material'})['color'] == EDGE_COLORS['material']
        assert node_color('critical') == STATUS_COLORS['critical']
        assert node_color('unknown') == STATUS_COLORS['active']


class TestFigure:
    def test_no_nodes(self):
        assert build_figure([], []) is None

    def test_unknown_endpoints_skipped(self):
        edges = [{'from': 'retailer', 'to': 'supplier', 'type': 'material', 'label': 'PO'},
                 {'from': 'retailer', 'to': 'ghost', 'type': 'material'}]
        fig = build_figure(NODES, edges)
        # one edge trace plus the node trace
        assert len(fig.data) == 2
        assert fig.layout.annotations[0].text == 'PO'
