"""
Order lifecycle: pricing, placement and admin status updates.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo.database import Database

from email_templates import order_status_email
from inventory import check_low_stock, decrement_ingredient
from mailer import MailerError
from schemas import Order, OrderStatus, Pizza

logger = logging.getLogger(__name__)

# each status may only advance to the next one
ALLOWED_TRANSITIONS = {
    OrderStatus.RECEIVED: {OrderStatus.IN_KITCHEN},
    OrderStatus.IN_KITCHEN: {OrderStatus.SENT_TO_DELIVERY},
    OrderStatus.SENT_TO_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
}


class OrderError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class UnknownIngredient(OrderError):
    pass


class OrderNotFound(OrderError):
    status_code = 404


class InvalidTransition(OrderError):
    status_code = 409


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def price_pizza(db: Database, pizza: Pizza) -> float:
    """Total of the catalogue unit prices of every selected ingredient."""
    picked = pizza.ingredients()
    wanted = [{"category": c, "name": n} for c, n in set(picked)]
    prices = {
        (item["category"], item["name"]): float(item.get("price", 0))
        for item in db["inventory"].find({"$or": wanted})
    }
    missing = [f"{c}/{n}" for c, n in picked if (c, n) not in prices]
    if missing:
        raise UnknownIngredient(f"Unknown ingredients: {', '.join(sorted(set(missing)))}")
    return round(sum(prices[key] for key in picked), 2)


def generate_order_number(db: Database, now: datetime) -> str:
    # timestamp + running count, not unique under concurrent creation
    count = db["order"].count_documents({})
    return f"ORD{int(now.timestamp() * 1000)}{count + 1}"


def place_order(db: Database, mailer, user: dict, pizza: Pizza, payment_id: str,
                client_total: Optional[float] = None) -> dict:
    """Create the order, then take one unit of each ingredient out of stock.

    Decrements are independent writes with no rollback: a failed one is
    logged and the order stands. The low-stock scan runs afterwards.
    """
    total = price_pizza(db, pizza)
    if client_total is not None and round(client_total, 2) != total:
        logger.warning("Client total %.2f differs from catalogue price %.2f, using catalogue",
                       client_total, total)

    now = datetime.now(timezone.utc)
    order = {
        "user_id": str(user["_id"]),
        "order_number": generate_order_number(db, now),
        "pizza": pizza.model_dump(),
        "total_price": total,
        "payment_id": payment_id,
        "payment_status": "completed",
        "status": OrderStatus.RECEIVED.value,
        "status_history": [{"status": OrderStatus.RECEIVED.value, "timestamp": now}],
        "created_at": now,
        "updated_at": now,
    }
    Order.model_validate(order)
    res = db["order"].insert_one(order)
    logger.info("Order %s placed by user %s", order["order_number"], order["user_id"])

    failed = [f"{c}/{n}" for c, n in pizza.ingredients() if not decrement_ingredient(db, c, n)]
    if failed:
        logger.warning("Order %s: stock not decremented for %s", order["order_number"], ", ".join(failed))

    check_low_stock(db, mailer)
    return db["order"].find_one({"_id": res.inserted_id})


def update_order_status(db: Database, mailer, order_id: ObjectId, status: OrderStatus) -> dict:
    """Advance an order one step and email its owner."""
    order = db["order"].find_one({"_id": order_id})
    if not order:
        raise OrderNotFound("Order not found")

    current = OrderStatus(order["status"])
    if not can_transition(current, status):
        raise InvalidTransition(f"Cannot move order from '{current.value}' to '{status.value}'")

    now = datetime.now(timezone.utc)
    res = db["order"].update_one(
        {"_id": order_id, "status": current.value},
        {
            "$set": {"status": status.value, "updated_at": now},
            "$push": {"status_history": {"status": status.value, "timestamp": now}},
        },
    )
    if res.matched_count == 0:
        raise InvalidTransition("Order status changed concurrently, reload and retry")
    order = db["order"].find_one({"_id": order_id})

    owner = None
    if ObjectId.is_valid(order["user_id"]):
        owner = db["user"].find_one({"_id": ObjectId(order["user_id"])})
    if owner is None:
        logger.warning("Order %s has no owner to notify", order["order_number"])
        return order
    try:
        mailer.send_email(
            to=owner["email"],
            subject=f"Order {order['order_number']} Status Update",
            html=order_status_email(owner.get("name", ""), order["order_number"], status.value),
        )
    except MailerError:
        logger.exception("Status email for order %s could not be sent", order["order_number"])
    return order
