# kpi_evaluator.py
# ==============================================================================
# KPI Evaluator — per-product inventory summaries for the LLM prompts and
# dashboard KPIs / chart data, all computed from already-fetched rows
# ==============================================================================

import math

import pandas as pd


def js_round(value, ndigits=0):
    """Round half up, toward +inf (Python's round() is banker's rounding)."""
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    return rounded if ndigits else int(rounded)


def _as_frame(sales):
    if isinstance(sales, pd.DataFrame):
        return sales
    return pd.DataFrame(list(sales))


def _group_products(sales):
    """Yield (name, rows) per product, in first-appearance order.

    Sales rows are expected oldest-first, so the last row is the latest.
    """
    frame = _as_frame(sales)
    if frame.empty:
        return
    for name, rows in frame.groupby('product_name', sort=False):
        yield name, rows


def summarize_products(sales):
    """Per-product summary sent with the insight request."""
    summaries = []
    for name, rows in _group_products(sales):
        latest = rows.iloc[-1]
        total_sold = float(rows['quantity_sold'].sum())
        avg_sold = total_sold / len(rows)
        stock = float(latest['current_stock'])
        days = js_round(stock / avg_sold) if stock > 0 and avg_sold > 0 else 0
        summaries.append({
            'name': name,
            'avgDailySales': js_round(avg_sold, 2),
            'totalSold': total_sold,
            'currentStock': stock,
            'reorderPoint': float(latest['reorder_point']),
            'unitPrice': float(latest['unit_price']),
            'dataPoints': len(rows),
            'daysOfStock': days,
        })
    return summaries


def coordination_summary(sales):
    """Smaller per-product summary embedded in the coordination scenario.

    A product with no sales reports 999 days of stock.
    """
    summaries = []
    for name, rows in _group_products(sales):
        latest = rows.iloc[-1]
        avg_sold = float(rows['quantity_sold'].sum()) / len(rows)
        stock = float(latest['current_stock'])
        summaries.append({
            'name': name,
            'avgDailySales': js_round(avg_sold, 2),
            'currentStock': stock,
            'reorderPoint': float(latest['reorder_point']),
            'daysOfStock': js_round(stock / avg_sold) if avg_sold > 0 else 999,
        })
    return summaries


class KPIEvaluator:
    """Dashboard metrics over a user's sales rows and current insights.

    Tracks:
    - Total Products / Inventory Value / Total Units Sold
    - Critical, At Risk and Healthy insight counts
    - Sales trend, stock health and top actions for the charts
    """

    def __init__(self, sales, insights=None):
        self.sales = _as_frame(sales)
        self.insights = list(insights or [])

    @property
    def is_empty(self):
        return self.sales.empty

    def products(self):
        if self.is_empty:
            return []
        return list(dict.fromkeys(self.sales['product_name']))

    def status_counts(self):
        counts = {'critical': 0, 'at_risk': 0, 'healthy': 0}
        for i in self.insights:
            if i.get('status') in counts:
                counts[i['status']] += 1
        return counts

    def calculate_kpis(self):
        counts = self.status_counts()
        if self.is_empty:
            value = 0.0
            sold = 0.0
        else:
            value = float((self.sales['current_stock'] * self.sales['unit_price']).sum())
            sold = float(self.sales['quantity_sold'].sum())
        return {
            'Total Products': len(self.products()),
            'Critical': counts['critical'],
            'At Risk': counts['at_risk'],
            'Healthy': counts['healthy'],
            'Inventory Value': round(value, 2),
            'Total Units Sold': sold,
        }

    def sales_trend(self):
        """Units sold per date, oldest first."""
        if self.is_empty:
            return pd.DataFrame(columns=['date', 'quantity'])
        trend = (self.sales.groupby('sale_date')['quantity_sold'].sum()
                 .sort_index().reset_index())
        trend.columns = ['date', 'quantity']
        return trend

    def stock_health(self, limit=10):
        """Latest stock vs reorder point for the first `limit` products."""
        rows = []
        for name, product_rows in _group_products(self.sales):
            latest = product_rows.iloc[-1]
            rows.append({
                'product': name if len(name) <= 15 else name[:15] + '…',
                'stock': float(latest['current_stock'] or 0),
                'reorderPoint': float(latest['reorder_point'] or 0),
            })
        return pd.DataFrame(rows[:limit], columns=['product', 'stock', 'reorderPoint'])

    def top_actions(self, limit=5):
        return [i for i in self.insights if i.get('risk_level') != 'low'][:limit]
