import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field, field_validator
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import (
    RESET_TOKEN_TTL, VERIFICATION_TOKEN_TTL, consume_token, create_access_token,
    generate_token_pair, get_current_user, get_password_hash, public_user,
    require_admin, verify_password,
)
from database import create_document, ensure_indexes, get_db, get_documents, serialize_doc, to_object_id
from email_templates import reset_password_email, reset_password_text, verification_email, verification_text
from inventory import available_by_category, find_low_stock
from mailer import MailerError, get_mailer
from orders import OrderError, place_order, update_order_status
from scheduler import run_hourly_stock_check
from schemas import Inventory, OrderStatus, Pizza, User
from seed import seed_inventory

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
STOCK_CHECK_ENABLED = os.getenv("STOCK_CHECK_ENABLED", "1") == "1"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_dep = app.dependency_overrides.get(get_db, get_db)
    mailer_dep = app.dependency_overrides.get(get_mailer, get_mailer)
    ensure_indexes(db_dep())
    task = None
    if STOCK_CHECK_ENABLED:
        task = asyncio.create_task(run_hourly_stock_check(db_dep, mailer_dep))
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="PizzaHub API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = f"{field}: {first.get('msg')}" if field else first.get("msg", detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


# Request / response models
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class EmailIn(BaseModel):
    email: EmailStr


class TokenIn(BaseModel):
    token: str = Field(..., min_length=1)


class ResetPasswordIn(TokenIn):
    password: str = Field(..., min_length=6)


class InventoryUpdate(BaseModel):
    quantity: Optional[int] = None
    price: Optional[float] = Field(None, ge=0)
    threshold: Optional[int] = Field(None, ge=0)


class OrderCreate(BaseModel):
    pizza: Pizza
    payment_id: str = Field(..., min_length=1)
    total_price: Optional[float] = Field(None, description="Ignored, the server prices the pizza")


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


def token_response(user: dict) -> dict:
    return {
        "access_token": create_access_token({"sub": str(user["_id"])}),
        "token_type": "bearer",
        "user": public_user(user),
    }


# Routes
@app.get("/")
def root():
    return {"message": "PizzaHub API is running"}


@app.get("/api/health")
def health():
    return {"status": "OK", "message": "Server is running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_name": None,
        "collections": [],
    }
    try:
        response["database_name"] = db.name
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "Connected & Working"
    except Exception as e:
        response["database"] = f"Error: {str(e)[:50]}"
    response["database_url"] = "Set" if os.getenv("DATABASE_URL") else "Not Set"
    return response


# Auth endpoints
@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterIn, db: Database = Depends(get_db), mailer=Depends(get_mailer)):
    email = payload.email.lower()
    if db["user"].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User already exists")

    token, digest, expires = generate_token_pair(VERIFICATION_TOKEN_TTL)
    user = User(
        name=payload.name,
        email=email,
        password_hash=get_password_hash(payload.password),
        verification_token=digest,
        verification_token_expire=expires,
    ).model_dump()
    try:
        uid = create_document(db, "user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")

    url = f"{FRONTEND_URL}/verify-email/{token}"
    try:
        mailer.send_email(
            to=email,
            subject="Verify Your Email - PizzaHub",
            text=verification_text(payload.name, url),
            html=verification_email(payload.name, url),
        )
    except MailerError:
        logger.exception("Verification email failed for %s", email)
        db["user"].update_one(
            {"_id": to_object_id(uid)},
            {"$unset": {"verification_token": "", "verification_token_expire": ""}},
        )
        raise HTTPException(
            status_code=500,
            detail="Registration succeeded, but email could not be sent. Please contact support.",
        )
    return {
        "success": True,
        "message": "Registration successful! Please check your email to verify your account.",
        "user": public_user(db["user"].find_one({"_id": to_object_id(uid)})),
    }


@app.post("/api/auth/login", response_model=Token)
def login(payload: LoginIn, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return token_response(user)


@app.get("/api/auth/me")
def me(user=Depends(get_current_user)):
    return public_user(user)


@app.post("/api/auth/forgotpassword")
def forgot_password(payload: EmailIn, db: Database = Depends(get_db), mailer=Depends(get_mailer)):
    message = {"success": True, "message": "If an account with that email exists, a password reset link has been sent."}
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user:
        return message

    token, digest, expires = generate_token_pair(RESET_TOKEN_TTL)
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"reset_password_token": digest, "reset_password_expire": expires}},
    )
    url = f"{FRONTEND_URL}/reset-password/{token}"
    try:
        mailer.send_email(
            to=user["email"],
            subject="Password Reset Request - PizzaHub",
            text=reset_password_text(url),
            html=reset_password_email(user.get("name", ""), url),
        )
    except MailerError:
        logger.exception("Reset email failed for %s", user["email"])
        db["user"].update_one(
            {"_id": user["_id"]},
            {"$unset": {"reset_password_token": "", "reset_password_expire": ""}},
        )
        raise HTTPException(status_code=500, detail="Email could not be sent, please try again later.")
    return message


@app.put("/api/auth/resetpassword")
def reset_password(payload: ResetPasswordIn, db: Database = Depends(get_db)):
    user = consume_token(db, payload.token, "reset_password_token", "reset_password_expire")
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": get_password_hash(payload.password),
                  "updated_at": datetime.now(timezone.utc)}},
    )
    return {"success": True, "message": "Password reset successful. You can now log in."}


@app.put("/api/auth/verifyemail", response_model=Token)
def verify_email(payload: TokenIn, db: Database = Depends(get_db)):
    user = consume_token(db, payload.token, "verification_token", "verification_token_expire")
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"is_verified": True}})
    user["is_verified"] = True
    return token_response(user)


# Inventory endpoints
@app.get("/api/inventory")
def list_inventory(user=Depends(get_current_user), db: Database = Depends(get_db)):
    items = get_documents(db, "inventory", sort=[("category", 1), ("name", 1)])
    return [serialize_doc(d) for d in items]


@app.get("/api/inventory/available")
def available_inventory(user=Depends(get_current_user), db: Database = Depends(get_db)):
    grouped = available_by_category(db)
    return {group: [serialize_doc(d) for d in items] for group, items in grouped.items()}


@app.get("/api/inventory/low-stock/list", dependencies=[Depends(require_admin)])
def low_stock(db: Database = Depends(get_db)):
    return [serialize_doc(d) for d in find_low_stock(db)]


@app.post("/api/inventory", status_code=201, dependencies=[Depends(require_admin)])
def create_inventory_item(payload: Inventory, db: Database = Depends(get_db)):
    if db["inventory"].find_one({"category": payload.category, "name": payload.name}):
        raise HTTPException(status_code=400, detail="Item already exists")
    doc = payload.model_dump()
    doc["last_restocked"] = datetime.now(timezone.utc)
    try:
        iid = create_document(db, "inventory", doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Item already exists")
    return serialize_doc(db["inventory"].find_one({"_id": to_object_id(iid)}))


@app.put("/api/inventory/{item_id}", dependencies=[Depends(require_admin)])
def update_inventory_item(item_id: str, payload: InventoryUpdate, db: Database = Depends(get_db)):
    oid = to_object_id(item_id)
    item = db["inventory"].find_one({"_id": oid})
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    updates = payload.model_dump(exclude_none=True)
    if not updates:
        return serialize_doc(item)
    now = datetime.now(timezone.utc)
    if "quantity" in updates and updates["quantity"] > item.get("quantity", 0):
        updates["last_restocked"] = now
    updates["updated_at"] = now
    db["inventory"].update_one({"_id": oid}, {"$set": updates})
    return serialize_doc(db["inventory"].find_one({"_id": oid}))


@app.delete("/api/inventory/{item_id}", dependencies=[Depends(require_admin)])
def delete_inventory_item(item_id: str, db: Database = Depends(get_db)):
    res = db["inventory"].delete_one({"_id": to_object_id(item_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Item not found")
    return {"message": "Item deleted successfully"}


# Orders
def attach_users(db: Database, orders: List[dict]) -> List[dict]:
    ids = {o["user_id"] for o in orders if o.get("user_id")}
    users = {
        str(u["_id"]): {"id": str(u["_id"]), "name": u.get("name", ""), "email": u["email"]}
        for u in db["user"].find({"_id": {"$in": [to_object_id(i) for i in ids]}})
    }
    out = []
    for o in orders:
        doc = serialize_doc(o)
        doc["user"] = users.get(o.get("user_id"))
        out.append(doc)
    return out


@app.post("/api/orders", status_code=201)
def create_order(payload: OrderCreate, user=Depends(get_current_user),
                 db: Database = Depends(get_db), mailer=Depends(get_mailer)):
    order = place_order(db, mailer, user, payload.pizza, payload.payment_id,
                        client_total=payload.total_price)
    return attach_users(db, [order])[0]


@app.get("/api/orders/my-orders")
def my_orders(user=Depends(get_current_user), db: Database = Depends(get_db)):
    docs = get_documents(db, "order", {"user_id": str(user["_id"])}, sort=[("created_at", -1)])
    return [serialize_doc(d) for d in docs]


@app.get("/api/orders", dependencies=[Depends(require_admin)])
def list_orders(db: Database = Depends(get_db)):
    docs = get_documents(db, "order", sort=[("created_at", -1)])
    return attach_users(db, docs)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    doc = db["order"].find_one({"_id": to_object_id(order_id)})
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    if doc.get("user_id") != str(user["_id"]) and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")
    return attach_users(db, [doc])[0]


@app.put("/api/orders/{order_id}/status", dependencies=[Depends(require_admin)])
def set_order_status(order_id: str, payload: OrderStatusUpdate,
                     db: Database = Depends(get_db), mailer=Depends(get_mailer)):
    order = update_order_status(db, mailer, to_object_id(order_id), payload.status)
    return attach_users(db, [order])[0]


# Seed the default catalogue (admin only)
@app.post("/api/seed", dependencies=[Depends(require_admin)])
def seed(db: Database = Depends(get_db)):
    return {"status": "ok", "added": seed_inventory(db)}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
