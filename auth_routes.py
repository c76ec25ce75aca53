import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, now, populate, serialize_doc, to_object_id
from errors import fail, server_error
from schemas import (
    ORDER_STATUSES,
    ForgotPasswordInput,
    LoginInput,
    OrderStatusUpdate,
    ProfileUpdate,
    RegisterInput,
    User as UserSchema,
)
from security import create_access_token, hash_password, is_admin, require_sign_in, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User fields safe to hand to the client."""
    return serialize_doc({
        "_id": user["_id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "phone": user.get("phone"),
        "address": user.get("address"),
        "role": user.get("role", 0),
    })


@router.post("/register", status_code=201)
def register(payload: RegisterInput, db: Database = Depends(get_db)):
    # validations, in the order the signup form shows them
    for field, label in (("name", "Name"), ("email", "Email"), ("password", "Password"),
                         ("phone", "Phone no"), ("address", "Address"), ("answer", "Answer")):
        if not getattr(payload, field):
            fail(400, message=f"{label} is Required")
    try:
        if db["user"].find_one({"email": payload.email}):
            fail(409, message="Already Register please login")
        user = UserSchema(
            name=payload.name.strip(),
            email=payload.email,
            password=hash_password(payload.password),
            phone=payload.phone,
            address=payload.address,
            answer=payload.answer,
        )
        user_id = create_document(db, "user", user)
        created = db["user"].find_one({"_id": user_id})
    except HTTPException:
        raise
    except DuplicateKeyError:
        fail(409, message="Already Register please login")
    except Exception as e:
        server_error("Error in Registration", e)
    logger.info("Registered user %s", user_id)
    return {"success": True, "message": "User Register Successfully", "user": public_user(created)}


@router.post("/login")
def login(payload: LoginInput, db: Database = Depends(get_db)):
    if not payload.email or not payload.password:
        fail(400, message="Missing email or password")
    try:
        user = db["user"].find_one({"email": payload.email})
        if not user:
            fail(404, message="Email is not registered")
        if not verify_password(payload.password, user.get("password", "")):
            fail(401, message="Invalid Password")
        token = create_access_token(user["_id"])
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error in login", e)
    return {"success": True, "message": "login successfully", "user": public_user(user), "token": token}


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordInput, db: Database = Depends(get_db)):
    if not payload.email:
        fail(400, message="Email is required")
    if not payload.answer:
        fail(400, message="Answer is required")
    if not payload.newPassword:
        fail(400, message="New Password is required")
    try:
        user = db["user"].find_one({"email": payload.email, "answer": payload.answer})
        if not user:
            fail(404, message="Wrong Email Or Answer")
        db["user"].update_one(
            {"_id": user["_id"]},
            {"$set": {"password": hash_password(payload.newPassword), "updated_at": now()}},
        )
    except HTTPException:
        raise
    except Exception as e:
        server_error("Something went wrong", e)
    logger.info("Password reset for user %s", user["_id"])
    return {"success": True, "message": "Password Reset Successfully"}


@router.get("/test")
def protected_test(admin: dict = Depends(is_admin)):
    return {"success": True, "message": "Protected Route"}


@router.get("/user-auth")
def user_auth(claims: dict = Depends(require_sign_in)):
    return {"ok": True}


@router.get("/admin-auth")
def admin_auth(admin: dict = Depends(is_admin)):
    return {"ok": True}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    user_id = to_object_id(claims["_id"])
    if user_id is None:
        fail(404, error="User not found")
    if payload.password and len(payload.password) < 6:
        fail(400, error="Password is required and 6 character long")
    try:
        user = db["user"].find_one({"_id": user_id})
        if not user:
            fail(404, error="User not found")
        updates = {
            "name": payload.name or user.get("name"),
            "password": hash_password(payload.password) if payload.password else user.get("password"),
            "phone": payload.phone or user.get("phone"),
            "address": payload.address or user.get("address"),
            "updated_at": now(),
        }
        db["user"].update_one({"_id": user_id}, {"$set": updates})
        updated = db["user"].find_one({"_id": user_id})
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error While Update profile", e)
    return {"success": True, "message": "Profile Updated Successfully", "updatedUser": public_user(updated)}


def _populated_orders(db: Database, orders):
    populate(db, orders, "products", "product", {"photo": 0})
    populate(db, orders, "buyer", "user", {"name": 1})
    return serialize_doc(orders)


@router.get("/orders")
def get_orders(claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    buyer = to_object_id(claims["_id"])
    if buyer is None:
        fail(401, message="Invalid or expired token")
    try:
        orders = list(db["order"].find({"buyer": buyer}).sort("created_at", DESCENDING))
        data = _populated_orders(db, orders)
    except Exception as e:
        server_error("Error While Getting Orders", e)
    message = "Orders fetched" if data else "No orders found"
    return {"success": True, "message": message, "orders": data}


@router.get("/all-orders")
def get_all_orders(admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    try:
        orders = list(db["order"].find({}).sort("created_at", DESCENDING))
        data = _populated_orders(db, orders)
    except Exception as e:
        server_error("Error While Getting Orders", e)
    message = "Orders fetched" if data else "No orders found"
    return {"success": True, "message": message, "orders": data}


@router.put("/order-status/{order_id}")
def order_status(order_id: str, payload: OrderStatusUpdate, admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    if payload.status not in ORDER_STATUSES:
        fail(400, error="Invalid status value. Valid statuses: " + ", ".join(ORDER_STATUSES))
    oid = to_object_id(order_id)
    if oid is None:
        fail(404, error="Order not found")
    try:
        order = db["order"].find_one_and_update(
            {"_id": oid},
            {"$set": {"status": payload.status, "updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
    except Exception as e:
        server_error("Error While Updating Order", e)
    if not order:
        fail(404, error="Order not found")
    logger.info("Order %s moved to %s by %s", order_id, payload.status, admin["_id"])
    return {"success": True, "message": "Order status updated successfully", "order": serialize_doc(order)}


@router.get("/all-users")
def all_users(admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    try:
        users = list(db["user"].find({}, {"password": 0, "answer": 0}).sort("created_at", DESCENDING))
    except Exception as e:
        server_error("Error While getting users", e)
    return {"success": True, "message": "All users fetched successfully", "users": serialize_doc(users)}
