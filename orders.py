from typing import Any, Dict, List, Optional

from schemas import GameKey, Order, OrderStatus, KeyStatus, User, UserStatus

ORDER_BADGES = {
    OrderStatus.PENDING: ("Pending", "secondary"),
    OrderStatus.COMPLETED: ("Completed", "default"),
    OrderStatus.CANCELLED: ("Cancelled", "destructive"),
}

KEY_BADGES = {
    KeyStatus.AVAILABLE: ("Available", "default"),
    KeyStatus.ASSIGNED: ("Used", "secondary"),
    KeyStatus.CANCELLED: ("Cancelled", "destructive"),
}

UNKNOWN_BADGE = ("Unknown", "secondary")


def _badge(table, status: int) -> Dict[str, str]:
    label, variant = table.get(status, UNKNOWN_BADGE)
    return {"label": label, "variant": variant}


def format_date(value: Optional[str]) -> str:
    if not value:
        return "-"
    parts = str(value).split("T")[0].split("-")
    if len(parts) != 3:
        return str(value)
    year, month, day = parts
    return f"{day}/{month}/{year}"


def visible_keys(order: Order) -> List[GameKey]:
    """Keys are shown only once the order is completed."""
    if order.status != OrderStatus.COMPLETED or not order.keys:
        return []
    return list(order.keys)


def order_view(order: Order) -> Dict[str, Any]:
    keys = visible_keys(order)
    return {
        "id": order.id,
        "date": format_date(order.created_at),
        "total": order.total,
        "status": order.status,
        "badge": _badge(ORDER_BADGES, order.status),
        "items": [
            {"gameTitle": i.game_title, "quantity": i.quantity, "price": i.price}
            for i in order.items
        ],
        "keys": [{"id": k.id, "gameTitle": k.game_title, "key": k.key} for k in keys],
        "showKeys": bool(keys),
    }


# ----------------------- Admin -----------------------

def filter_orders(orders: List[Order], status: Optional[int] = None) -> List[Order]:
    if status is None:
        return list(orders)
    return [o for o in orders if o.status == status]


def admin_order_view(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "userName": order.user_name,
        "date": format_date(order.created_at),
        "total": order.total,
        "status": order.status,
        "badge": _badge(ORDER_BADGES, order.status),
        "itemCount": sum(i.quantity for i in order.items),
        "canComplete": order.status == OrderStatus.PENDING,
        "canCancel": order.status == OrderStatus.PENDING,
    }


def filter_keys(keys: List[GameKey], status: Optional[int] = None, game_id: Optional[int] = None) -> List[GameKey]:
    out = []
    for k in keys:
        if status is not None and k.status != status:
            continue
        if game_id is not None and k.game_id != game_id:
            continue
        out.append(k)
    return out


def key_view(key: GameKey) -> Dict[str, Any]:
    return {
        "id": key.id,
        "gameId": key.game_id,
        "gameTitle": key.game_title,
        "key": key.key,
        "status": key.status,
        "badge": _badge(KEY_BADGES, key.status),
        "date": format_date(key.created_at),
    }


def parse_key_batch(text: str) -> List[str]:
    """One key per line; surrounding whitespace and blank lines are dropped."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def user_stats(users: List[User]) -> Dict[str, int]:
    return {
        "active": sum(1 for u in users if u.status == UserStatus.ACTIVE),
        "blocked": sum(1 for u in users if u.status == UserStatus.BLOCKED),
        "admins": sum(1 for u in users if u.is_admin),
    }


def dashboard_stats(games: list, orders: List[Order], keys: list, users: list) -> Dict[str, Any]:
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    conversion = round(len(completed) / len(orders) * 100, 1) if orders else 0.0
    return {
        "games": len(games),
        "orders": len(orders),
        "keys": len(keys),
        "users": len(users),
        "revenue": round(sum(o.total for o in completed), 2),
        "completedOrders": len(completed),
        "conversionRate": conversion,
    }
