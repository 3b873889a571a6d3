# brew_cashier/dashboard.py
"""
Read-only views over a snapshot of orders:

- barista_board(): the staff queue, one column per status, newest first.
- owner_summary(): revenue and popularity figures for the owner.

Neither function changes an order; status changes go through the lifecycle
manager.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, List

from .models import Order, OrderStatus


def order_card(order: Order) -> Dict[str, Any]:
    return {
        "order_id": order.order_id,
        "reference": order.reference,
        "time": order.created_at.strftime("%H:%M"),
        "status": order.status.value,
        "customer_name": order.customer_name,
        "items": [
            {
                "label": f"{item.quantity}x {item.name}",
                "details": " · ".join(item.details()),
            }
            for item in order.items
        ],
        "special_notes": order.special_notes,
        "total": order.total,
    }


def barista_board(orders: Iterable[Order]) -> Dict[str, List[Dict[str, Any]]]:
    newest_first = sorted(orders, key=lambda o: o.created_at, reverse=True)
    board: Dict[str, List[Dict[str, Any]]] = {status.value: [] for status in OrderStatus}
    for order in newest_first:
        board[order.status.value].append(order_card(order))
    return board


def owner_summary(orders: Iterable[Order]) -> Dict[str, Any]:
    orders = list(orders)
    total_orders = len(orders)
    total_revenue = sum(o.total for o in orders)
    completed = sum(1 for o in orders if o.status is OrderStatus.COMPLETED)

    item_counts: Counter = Counter()
    milk_counts: Counter = Counter()
    hourly_revenue: Dict[int, float] = defaultdict(float)
    for order in orders:
        hourly_revenue[order.created_at.hour] += order.total
        for item in order.items:
            item_counts[item.name] += item.quantity
            if item.milk:
                milk_counts[item.milk] += 1

    return {
        "total_revenue": round(total_revenue, 2),
        "total_orders": total_orders,
        "average_order_value": round(total_revenue / total_orders, 2) if total_orders else 0.0,
        "completion_rate": round(completed / total_orders * 100, 1) if total_orders else 0.0,
        "popular_items": [
            {"name": name, "count": count} for name, count in item_counts.most_common(5)
        ],
        "hourly_revenue": [
            {"hour": f"{hour}:00", "revenue": round(revenue, 2)}
            for hour, revenue in sorted(hourly_revenue.items())
        ],
        "milk_preferences": [
            {"name": name, "value": count} for name, count in milk_counts.items()
        ],
        "status_counts": {
            status.value: sum(1 for o in orders if o.status is status) for status in OrderStatus
        },
    }
