from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_access_token
from database import get_db
from main import app
from mailer import MailerError, get_mailer


class RecordingMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_email(self, to, subject, text=None, html=None):
        if self.fail:
            raise MailerError("Email could not be sent")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})


@pytest.fixture
def db():
    return mongomock.MongoClient().db


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(db, mailer):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role="user", name="Pat", password_hash="x"):
    res = db["user"].insert_one({
        "name": name,
        "email": email,
        "password_hash": password_hash,
        "role": role,
        "is_verified": True,
        "created_at": datetime.now(timezone.utc),
    })
    return db["user"].find_one({"_id": res.inserted_id})


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user['_id'])})}"}


def add_item(db, category, name, quantity=50, price=10, threshold=5):
    db["inventory"].insert_one({
        "category": category,
        "name": name,
        "quantity": quantity,
        "price": price,
        "threshold": threshold,
    })


@pytest.fixture
def user(db):
    return make_user(db, "customer@example.com", name="Casey")


@pytest.fixture
def user_headers(user):
    return headers_for(user)


@pytest.fixture
def admin(db):
    return make_user(db, "boss@example.com", role="admin", name="Admin")


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def menu(db):
    add_item(db, "base", "Thin Crust", quantity=10, price=100)
    add_item(db, "sauce", "Marinara", quantity=10, price=30)
    add_item(db, "cheese", "Mozzarella", quantity=10, price=50)
    add_item(db, "veggie", "Olives", quantity=0, price=35)
    add_item(db, "veggie", "Corn", quantity=10, price=20)
    add_item(db, "meat", "Ham", quantity=1, price=60)
