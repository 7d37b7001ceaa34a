"""
Default catalogue and accounts. Run ``python seed.py`` against an empty
database, or call ``seed_inventory`` from the admin seed endpoint.
"""
import logging
from datetime import datetime, timezone

from pymongo.database import Database

from auth import get_password_hash
from database import create_document, get_db

logger = logging.getLogger(__name__)

INVENTORY = [
    # Bases
    {"category": "base", "name": "Thin Crust", "quantity": 50, "price": 100, "threshold": 20},
    {"category": "base", "name": "Thick Crust", "quantity": 50, "price": 120, "threshold": 20},
    {"category": "base", "name": "Cheese Burst", "quantity": 40, "price": 150, "threshold": 20},
    {"category": "base", "name": "Whole Wheat", "quantity": 30, "price": 130, "threshold": 20},
    {"category": "base", "name": "Gluten Free", "quantity": 25, "price": 180, "threshold": 15},
    # Sauces
    {"category": "sauce", "name": "Marinara", "quantity": 60, "price": 30, "threshold": 20},
    {"category": "sauce", "name": "BBQ Sauce", "quantity": 55, "price": 35, "threshold": 20},
    {"category": "sauce", "name": "Pesto", "quantity": 45, "price": 40, "threshold": 20},
    {"category": "sauce", "name": "White Sauce", "quantity": 50, "price": 35, "threshold": 20},
    {"category": "sauce", "name": "Hot Sauce", "quantity": 40, "price": 30, "threshold": 20},
    # Cheeses
    {"category": "cheese", "name": "Mozzarella", "quantity": 70, "price": 50, "threshold": 25},
    {"category": "cheese", "name": "Cheddar", "quantity": 60, "price": 55, "threshold": 25},
    {"category": "cheese", "name": "Parmesan", "quantity": 50, "price": 60, "threshold": 20},
    {"category": "cheese", "name": "Feta", "quantity": 40, "price": 65, "threshold": 20},
    {"category": "cheese", "name": "Vegan Cheese", "quantity": 35, "price": 70, "threshold": 15},
    # Veggies
    {"category": "veggie", "name": "Tomatoes", "quantity": 80, "price": 20, "threshold": 30},
    {"category": "veggie", "name": "Onions", "quantity": 80, "price": 15, "threshold": 30},
    {"category": "veggie", "name": "Bell Peppers", "quantity": 70, "price": 25, "threshold": 25},
    {"category": "veggie", "name": "Mushrooms", "quantity": 65, "price": 30, "threshold": 25},
    {"category": "veggie", "name": "Olives", "quantity": 60, "price": 35, "threshold": 20},
    {"category": "veggie", "name": "Jalapeños", "quantity": 55, "price": 25, "threshold": 20},
    {"category": "veggie", "name": "Corn", "quantity": 70, "price": 20, "threshold": 25},
    {"category": "veggie", "name": "Spinach", "quantity": 50, "price": 25, "threshold": 20},
    {"category": "veggie", "name": "Broccoli", "quantity": 45, "price": 30, "threshold": 20},
    # Meat
    {"category": "meat", "name": "Pepperoni", "quantity": 60, "price": 60, "threshold": 25},
    {"category": "meat", "name": "Chicken", "quantity": 55, "price": 65, "threshold": 25},
    {"category": "meat", "name": "Bacon", "quantity": 50, "price": 70, "threshold": 20},
    {"category": "meat", "name": "Sausage", "quantity": 45, "price": 65, "threshold": 20},
    {"category": "meat", "name": "Ham", "quantity": 40, "price": 60, "threshold": 20},
    {"category": "meat", "name": "Beef", "quantity": 35, "price": 75, "threshold": 15},
]

USERS = [
    {"name": "Admin", "email": "admin@pizzaapp.com", "password": "admin123", "role": "admin"},
    {"name": "Test User", "email": "user@test.com", "password": "user123", "role": "user"},
]


def seed_inventory(db: Database) -> int:
    """Insert catalogue items that are not there yet, return how many were added."""
    added = 0
    for item in INVENTORY:
        if db["inventory"].find_one({"category": item["category"], "name": item["name"]}):
            continue
        create_document(db, "inventory", {**item, "last_restocked": datetime.now(timezone.utc)})
        added += 1
    return added


def seed_users(db: Database) -> int:
    added = 0
    for u in USERS:
        if db["user"].find_one({"email": u["email"]}):
            continue
        create_document(db, "user", {
            "name": u["name"],
            "email": u["email"],
            "password_hash": get_password_hash(u["password"]),
            "role": u["role"],
            "is_verified": True,
        })
        added += 1
    return added


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    db = get_db()
    logger.info("Created %d users", seed_users(db))
    logger.info("Created %d inventory items", seed_inventory(db))
