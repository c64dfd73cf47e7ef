# storeadmin/aggregates.py

"""
Numbers derived from full-table reads: customers, dashboard stats,
product order counts. Recomputed on every load, nothing is stored.
"""

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from storeadmin.date_range import Window, filter_records, parse_timestamp
from storeadmin.models import OrderStatus
from storeadmin.workflow import describe, next_status

IN_PROGRESS = (OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value, OrderStatus.PROCESSING.value)


def derive_customers(orders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group orders by userid: first order, order count, total spent"""
    customers: Dict[Any, Dict[str, Any]] = {}
    for order in orders:
        userid = order.get("userid")
        total = order.get("totalprice") or 0
        created = order.get("created_at")
        customer = customers.get(userid)
        if customer is None:
            customers[userid] = {
                "userid": userid,
                "first_order": created,
                "orders": 1,
                "total_spent": total,
            }
            continue
        customer["orders"] += 1
        customer["total_spent"] += total
        current = parse_timestamp(customer["first_order"])
        candidate = parse_timestamp(created)
        if candidate is not None and (current is None or candidate < current):
            customer["first_order"] = created
    return list(customers.values())


def product_order_counts(order_items: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for item in order_items:
        product = item.get("product") or {}
        raw = product.get("id") or product.get("productid") or product.get("product_id") or 0
        try:
            pid = int(raw)
        except (TypeError, ValueError):
            continue
        if not pid:
            continue
        counts[pid] = counts.get(pid, 0) + (item.get("quantity") or 1)
    return counts


def customer_label(order: Dict[str, Any]) -> str:
    checkout = order.get("checkoutdata") or {}
    return checkout.get("name") or checkout.get("phone") or "Unknown"


def order_row(order: Dict[str, Any]) -> Dict[str, Any]:
    checkout = order.get("checkoutdata") or {}
    total = order.get("totalprice")
    upcoming = next_status(order.get("status"))
    return {
        "id": order.get("id"),
        "createdAt": order.get("created_at"),
        "customer": customer_label(order),
        "total": total if total else None,
        "paymentStatus": checkout.get("paymentStatus") or "Unpaid",
        "items": len(order.get("cartitems") or []),
        "orderStatus": order.get("status") or "",
        "statusDescription": describe(order.get("status")),
        "nextStatus": upcoming.value if upcoming else None,
    }


def status_summary(orders: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    summary = {status.value: 0 for status in OrderStatus}
    in_progress = 0
    for order in orders:
        status = order.get("status")
        if status in summary:
            summary[status] += 1
        if status in IN_PROGRESS:
            in_progress += 1
    summary["In Progress"] = in_progress
    return summary


def _sort_key(record: Dict[str, Any]) -> datetime:
    return parse_timestamp(record.get("created_at")) or datetime.min


def _scoped(records: List[Dict[str, Any]], bounds: Optional[Window]) -> List[Dict[str, Any]]:
    # Catalog rows are only narrowed when they carry a creation timestamp at all
    if records and "created_at" in records[0]:
        return filter_records(records, bounds)
    return records


def dashboard_stats(
    categories: List[Dict[str, Any]],
    products: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    bounds: Optional[Window],
) -> Dict[str, Any]:
    orders = filter_records(orders, bounds)
    products = _scoped(products, bounds)
    categories = _scoped(categories, bounds)

    category_stats = []
    for cat in categories:
        name = cat.get("name")
        category_stats.append({
            **cat,
            "productCount": sum(1 for p in products if p.get("category") == name),
            "orderCount": sum(
                1 for o in orders
                if any((item.get("product") or {}).get("category") == name for item in o.get("cartitems") or [])
            ),
        })

    recent = sorted(orders, key=_sort_key, reverse=True)[:5]

    by_day: Dict[str, int] = {}
    for order in orders:
        ts = parse_timestamp(order.get("created_at"))
        if ts is not None:
            key = ts.strftime("%Y-%m-%d")
            by_day[key] = by_day.get(key, 0) + 1

    by_user: Dict[str, int] = {}
    for order in orders:
        name = (order.get("checkoutdata") or {}).get("phone") or str(order.get("id") or "Unknown")
        by_user[name] = by_user.get(name, 0) + 1

    return {
        "totalProducts": len(products),
        "totalCategories": len(categories),
        "totalOrders": len(orders),
        "totalRevenue": sum(o.get("totalprice") or 0 for o in orders),
        "categoryStats": category_stats,
        "recentOrders": [order_row(o) for o in recent],
        "ordersByDay": [{"date": day[5:], "orders": by_day[day]} for day in sorted(by_day)],
        "ordersByUser": [
            {"name": name, "count": count}
            for name, count in sorted(by_user.items(), key=lambda kv: kv[1], reverse=True)
        ],
    }


def paginate(rows: List[Any], page: int, per_page: int) -> Dict[str, Any]:
    total_pages = max(1, math.ceil(len(rows) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return {
        "items": rows[start:start + per_page],
        "page": page,
        "perPage": per_page,
        "total": len(rows),
        "totalPages": total_pages,
    }
