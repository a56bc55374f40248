import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, HTTPException
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import config
from database import create_document, get_db
from errors import server_errors
from helpers import oid_to_str, parse_object_id
from schemas import (
    ForgotPasswordPayload,
    LoginPayload,
    OrderStatus,
    OrderStatusPayload,
    ProfilePayload,
    RegisterPayload,
    Role,
    User,
)
from security import AuthUser, create_access_token, get_password_hash, require_admin, require_sign_in, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

PHONE_RE = re.compile(r"^\+?\d{7,15}$")


def normalize_email(value: str) -> Optional[str]:
    """Return the normalized address, or None when it is not a valid email."""
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        return None


def is_phone(value: str) -> bool:
    return bool(PHONE_RE.match(re.sub(r"[\s\-().]", "", value)))


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    data = oid_to_str(user)
    data.pop("password", None)
    data.pop("answer", None)
    return data


def populate_orders(db: Database, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace product and buyer references with their documents."""
    product_ids = {pid for o in orders for pid in o.get("products", [])}
    buyer_ids = {o.get("buyer") for o in orders if o.get("buyer") is not None}
    products = {p["_id"]: oid_to_str(p) for p in db["product"].find({"_id": {"$in": list(product_ids)}}, {"photo": 0})}
    buyers = {u["_id"]: {"id": str(u["_id"]), "name": u.get("name")} for u in db["user"].find({"_id": {"$in": list(buyer_ids)}}, {"name": 1})}
    populated = []
    for order in orders:
        data = oid_to_str(order)
        data["products"] = [products[pid] for pid in order.get("products", []) if pid in products]
        data["buyer"] = buyers.get(order.get("buyer"))
        populated.append(data)
    return populated


@router.post("/register", status_code=201)
def register(payload: RegisterPayload, db: Database = Depends(get_db)):
    required = [
        ("name", "Name is Required"),
        ("email", "Email is Required"),
        ("password", "Password is Required"),
        ("phone", "Phone no is Required"),
        ("address", "Address is Required"),
        ("answer", "Answer is Required"),
    ]
    for field, message in required:
        if not getattr(payload, field):
            raise HTTPException(400, message)
    email = normalize_email(payload.email)
    if not email:
        raise HTTPException(400, "Invalid email format")
    if not is_phone(payload.phone):
        raise HTTPException(400, "Invalid phone number format")

    with server_errors("Error in Registration"):
        if db["user"].find_one({"email": email}):
            raise HTTPException(409, "Already Registered please login")
        user = User(
            name=payload.name.strip(),
            email=email,
            password=get_password_hash(payload.password),
            phone=payload.phone,
            address=payload.address,
            answer=payload.answer,
            role=Role.CUSTOMER,
        )
        try:
            user_id = create_document(db, "user", user)
        except DuplicateKeyError:
            raise HTTPException(409, "Already Registered please login")
        created = db["user"].find_one({"_id": ObjectId(user_id)})
    logger.info("Registered user %s", user_id)
    return {"success": True, "message": "User Register Successfully", "user": public_user(created)}


@router.post("/login")
def login(payload: LoginPayload, db: Database = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(400, "Invalid email or password")
    email = normalize_email(payload.email)
    if not email:
        raise HTTPException(400, "Invalid email format")

    with server_errors("Error in login"):
        user = db["user"].find_one({"email": email})
        if not user:
            raise HTTPException(404, "Email is not registered")
        if not verify_password(payload.password, user.get("password", "")):
            raise HTTPException(401, "Invalid Password")
        token = create_access_token({"sub": str(user["_id"])})
    return {
        "success": True,
        "message": "login successfully",
        "user": {
            "id": str(user["_id"]),
            "name": user.get("name"),
            "email": user.get("email"),
            "phone": user.get("phone"),
            "address": user.get("address"),
            "role": user.get("role", Role.CUSTOMER),
        },
        "token": token,
    }


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordPayload, db: Database = Depends(get_db)):
    if not payload.email:
        raise HTTPException(400, "Email is required")
    if not payload.answer:
        raise HTTPException(400, "Answer is required")
    if not payload.new_password:
        raise HTTPException(400, "New Password is required")
    email = normalize_email(payload.email)
    if not email:
        raise HTTPException(400, "Invalid email format")

    with server_errors("Something went wrong"):
        user = db["user"].find_one({"email": email, "answer": payload.answer})
        if not user:
            raise HTTPException(404, "Wrong Email Or Answer")
        db["user"].update_one(
            {"_id": user["_id"]},
            {"$set": {"password": get_password_hash(payload.new_password), "updated_at": datetime.now(timezone.utc)}},
        )
    return {"success": True, "message": "Password Reset Successfully"}


@router.get("/user-auth")
def user_auth(current: AuthUser = Depends(require_sign_in)):
    return {"ok": True}


@router.get("/admin-auth")
def admin_auth(admin: Dict[str, Any] = Depends(require_admin)):
    return {"ok": True}


@router.put("/profile")
def update_profile(payload: ProfilePayload, current: AuthUser = Depends(require_sign_in), db: Database = Depends(get_db)):
    if payload.password and len(payload.password) < config.MIN_PASSWORD_LENGTH:
        raise HTTPException(400, f"Password is required and {config.MIN_PASSWORD_LENGTH} character long")
    if payload.phone and not is_phone(payload.phone):
        raise HTTPException(400, "Invalid phone number format")

    with server_errors("Error While Update profile"):
        update: Dict[str, Any] = {}
        if payload.name:
            update["name"] = payload.name.strip()
        if payload.phone:
            update["phone"] = payload.phone
        if payload.address:
            update["address"] = payload.address
        if payload.password:
            update["password"] = get_password_hash(payload.password)
        update["updated_at"] = datetime.now(timezone.utc)
        updated = db["user"].find_one_and_update(
            {"_id": ObjectId(current.id)},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise HTTPException(404, "User not found")
    return {"success": True, "message": "Profile Updated Successfully", "updatedUser": public_user(updated)}


@router.get("/orders")
def get_orders(current: AuthUser = Depends(require_sign_in), db: Database = Depends(get_db)):
    with server_errors("Error While Getting Orders"):
        orders = list(db["order"].find({"buyer": ObjectId(current.id)}).sort("created_at", DESCENDING))
        return {"success": True, "orders": populate_orders(db, orders)}


@router.get("/all-orders")
def get_all_orders(admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    with server_errors("Error While Getting Orders"):
        orders = list(db["order"].find({}).sort("created_at", DESCENDING))
        return {"success": True, "orders": populate_orders(db, orders)}


@router.put("/order-status/{order_id}")
def update_order_status(order_id: str, payload: OrderStatusPayload, admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    try:
        status = OrderStatus(payload.status)
    except ValueError:
        raise HTTPException(400, "Invalid order status")
    oid = parse_object_id(order_id, "Invalid order id")

    with server_errors("Error While Updating Order"):
        order = db["order"].find_one_and_update(
            {"_id": oid},
            {"$set": {"status": status.value, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if not order:
            raise HTTPException(404, "Order not found")
    logger.info("Order %s set to %s", order_id, status.value)
    return {"success": True, "message": "Order Status Updated", "order": oid_to_str(order)}
