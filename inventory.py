"""
Ingredient stock: per-order decrements and the low-stock alert.
"""
import logging
import os
from typing import List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from email_templates import low_stock_alert
from mailer import MailerError
from schemas import DEFAULT_THRESHOLD

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@pizzaapp.com")

CATEGORY_GROUPS = {
    "base": "bases",
    "sauce": "sauces",
    "cheese": "cheeses",
    "veggie": "veggies",
    "meat": "meats",
}


def decrement_ingredient(db: Database, category: str, name: str, amount: int = 1) -> bool:
    """Take ``amount`` units of one ingredient out of stock.

    There is no floor check, quantity can go below zero. Returns False when
    the write failed or no item matched; the caller carries on either way.
    """
    try:
        res = db["inventory"].update_one(
            {"category": category, "name": name},
            {"$inc": {"quantity": -amount}},
        )
    except PyMongoError:
        logger.exception("Stock decrement failed for %s/%s", category, name)
        return False
    if res.matched_count == 0:
        logger.warning("No inventory item %s/%s to decrement", category, name)
        return False
    return True


def available_by_category(db: Database) -> dict:
    organized = {group: [] for group in CATEGORY_GROUPS.values()}
    for item in db["inventory"].find({"quantity": {"$gt": 0}}).sort([("category", 1), ("name", 1)]):
        group = CATEGORY_GROUPS.get(item.get("category"))
        if group:
            organized[group].append(item)
    return organized


def is_low_stock(item: dict) -> bool:
    return item.get("quantity", 0) <= item.get("threshold", DEFAULT_THRESHOLD)


def find_low_stock(db: Database) -> List[dict]:
    """All items at or below their reorder threshold."""
    items = db["inventory"].find().sort([("category", 1), ("name", 1)])
    return [item for item in items if is_low_stock(item)]


def check_low_stock(db: Database, mailer, admin_email: Optional[str] = None) -> List[dict]:
    """Email the operator one alert listing every low-stock item.

    Failures are logged and swallowed so order placement and the hourly job
    never fail because of the alert.
    """
    try:
        low = find_low_stock(db)
    except PyMongoError:
        logger.exception("Error checking stock")
        return []
    if not low:
        return low

    logger.info("Found %d low stock items", len(low))
    rows = [
        {
            "name": item.get("name", "?"),
            "category": item.get("category", "?"),
            "quantity": item.get("quantity", 0),
            "threshold": item.get("threshold", DEFAULT_THRESHOLD),
        }
        for item in low
    ]
    try:
        mailer.send_email(
            to=admin_email or ADMIN_EMAIL,
            subject="Low Stock Alert - PizzaHub",
            html=low_stock_alert(rows),
        )
    except MailerError:
        logger.exception("Low stock alert could not be sent")
    else:
        logger.info("Low stock alert email sent to admin")
    return low
