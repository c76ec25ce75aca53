import logging
import math
import re
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from slugify import slugify

import config
from cart import Cart, save_cart
from database import create_document, get_db, now, populate, serialize_doc, to_object_id
from errors import fail, server_error
from payments import charge, get_gateway, summarize_result, to_amount
from schemas import FilterInput, Order as OrderSchema, PaymentInput, Photo, Product as ProductSchema
from security import is_admin, require_sign_in

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/product", tags=["product"])

NO_PHOTO = {"photo": 0}

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


def _parse_product_form(name, description, price, category, quantity, shipping, photo: Optional[UploadFile]) -> Dict[str, Any]:
    """Validate the multipart product form and return the fields to store.

    Checks run in a fixed order and stop at the first failure.
    """
    photo_bytes = None
    if photo is not None and photo.filename:
        photo_bytes = photo.file.read()
    for value, label in ((name, "Name"), (description, "Description"), (price, "Price"),
                         (category, "Category"), (quantity, "Quantity"), (shipping, "Shipping")):
        if not value or not str(value).strip():
            fail(400, error=f"{label} is required")
    if photo_bytes is not None and len(photo_bytes) > config.MAX_PHOTO_BYTES:
        fail(400, error="Photo should be less than 1MB")

    try:
        price_value = float(price)
    except ValueError:
        fail(400, error="Price must be a number")
    if not math.isfinite(price_value) or price_value < 0:
        fail(400, error="Price must be a number")
    try:
        quantity_value = int(quantity)
    except ValueError:
        fail(400, error="Quantity must be a whole number")
    if quantity_value < 0:
        fail(400, error="Quantity must be a whole number")
    flag = shipping.strip().lower()
    if flag not in TRUTHY | FALSY:
        fail(400, error="Shipping must be yes or no")

    fields = {
        "name": name.strip(),
        "slug": slugify(name.strip()),
        "description": description,
        "price": price_value,
        "category": to_object_id(category),
        "quantity": quantity_value,
        "shipping": flag in TRUTHY,
    }
    if photo_bytes is not None:
        fields["photo"] = Photo(data=photo_bytes, content_type=photo.content_type).model_dump()
    return fields


def _require_category(db: Database, category_id) -> None:
    if category_id is None or not db["category"].find_one({"_id": category_id}):
        fail(404, message="Category not found")


@router.post("/create-product", status_code=201)
def create_product(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    shipping: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    admin: dict = Depends(is_admin),
    db: Database = Depends(get_db),
):
    fields = _parse_product_form(name, description, price, category, quantity, shipping, photo)
    try:
        if db["product"].find_one({"slug": fields["slug"]}):
            fail(409, message="Product with this name already exists")
        _require_category(db, fields["category"])
        product_id = create_document(db, "product", ProductSchema(**fields))
        product = db["product"].find_one({"_id": product_id}, NO_PHOTO)
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error in creating product", e)
    logger.info("Product %r created by %s", fields["name"], admin["_id"])
    return {"success": True, "message": "Product created successfully", "product": serialize_doc(product)}


@router.put("/update-product/{pid}")
def update_product(
    pid: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    shipping: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    admin: dict = Depends(is_admin),
    db: Database = Depends(get_db),
):
    oid = to_object_id(pid)
    if oid is None:
        fail(404, message="Product not found")
    fields = _parse_product_form(name, description, price, category, quantity, shipping, photo)
    try:
        if not db["product"].find_one({"_id": oid}, {"_id": 1}):
            fail(404, message="Product not found")
        clash = db["product"].find_one({"slug": fields["slug"]}, {"_id": 1})
        if clash and clash["_id"] != oid:
            fail(409, message="Product with this name already exists")
        _require_category(db, fields["category"])
        fields["updated_at"] = now()
        product = db["product"].find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            projection=NO_PHOTO,
            return_document=ReturnDocument.AFTER,
        )
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error in updating product", e)
    logger.info("Product %s updated by %s", pid, admin["_id"])
    return {"success": True, "message": "Product updated successfully", "product": serialize_doc(product)}


@router.delete("/delete-product/{pid}")
def delete_product(pid: str, admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    oid = to_object_id(pid)
    if oid is None:
        fail(404, message="Product not found")
    try:
        deleted = db["product"].find_one_and_delete({"_id": oid}, projection={"_id": 1})
    except Exception as e:
        server_error("Error while deleting product", e)
    if not deleted:
        fail(404, message="Product not found")
    logger.info("Product %s deleted by %s", pid, admin["_id"])
    return {"success": True, "message": "Product deleted successfully"}


@router.get("/get-product")
def list_products(db: Database = Depends(get_db)):
    try:
        products = list(db["product"].find({}, NO_PHOTO).sort("created_at", DESCENDING))
        populate(db, products, "category", "category")
    except Exception as e:
        server_error("Error in getting products", e)
    return {"success": True, "countTotal": len(products), "message": "All Products", "products": serialize_doc(products)}


@router.get("/get-product/{slug}")
def get_product(slug: str, db: Database = Depends(get_db)):
    try:
        product = db["product"].find_one({"slug": slug}, NO_PHOTO)
        if product:
            populate(db, [product], "category", "category")
    except Exception as e:
        server_error("Error while getting single product", e)
    if not product:
        fail(404, error="Single Product Not Found")
    return {"success": True, "message": "Single Product Fetched", "product": serialize_doc(product)}


@router.get("/product-photo/{pid}")
def product_photo(pid: str, db: Database = Depends(get_db)):
    oid = to_object_id(pid)
    if oid is None:
        fail(400, error="Invalid product id")
    try:
        product = db["product"].find_one({"_id": oid}, {"photo": 1})
    except Exception as e:
        server_error("Error while getting photo", e)
    if not product:
        fail(404, error="Product not found")
    photo = product.get("photo") or {}
    if not photo.get("data"):
        fail(404, error="Product photo not found")
    return Response(content=bytes(photo["data"]), media_type=photo.get("content_type") or "application/octet-stream")


@router.post("/product-filters")
def product_filters(payload: FilterInput, db: Database = Depends(get_db)):
    args: Dict[str, Any] = {}
    if payload.checked:
        ids = [to_object_id(c) for c in payload.checked]
        if any(i is None for i in ids):
            fail(400, error="Invalid category id")
        args["category"] = {"$in": ids}
    if payload.radio:
        if len(payload.radio) != 2:
            fail(400, error="Invalid radio(price) filter")
        args["price"] = {"$gte": payload.radio[0], "$lte": payload.radio[1]}
    try:
        products = list(db["product"].find(args, NO_PHOTO))
    except Exception as e:
        server_error("Error while Filtering Products", e)
    return {"success": True, "products": serialize_doc(products)}


@router.get("/product-count")
def product_count(db: Database = Depends(get_db)):
    try:
        total = db["product"].estimated_document_count()
    except Exception as e:
        server_error("Error while getting product count", e)
    return {"success": True, "total": total}


@router.get("/product-list")
@router.get("/product-list/{page}")
def product_list(page: str = "1", db: Database = Depends(get_db)):
    try:
        page_number = int(page)
    except ValueError:
        page_number = 0
    if page_number <= 0:
        fail(400, error="Invalid page param")
    per_page = config.PRODUCTS_PER_PAGE
    try:
        products = list(
            db["product"].find({}, NO_PHOTO)
            .sort("created_at", DESCENDING)
            .skip((page_number - 1) * per_page)
            .limit(per_page)
        )
    except Exception as e:
        server_error("Error while getting products per page", e)
    return {"success": True, "products": serialize_doc(products)}


@router.get("/search/{keyword}")
def search_products(keyword: str, db: Database = Depends(get_db)):
    keyword = keyword.strip()
    if not keyword:
        fail(400, error="Keyword param is required")
    pattern = {"$regex": re.escape(keyword), "$options": "i"}
    try:
        results = list(db["product"].find({"$or": [{"name": pattern}, {"description": pattern}]}, NO_PHOTO))
    except Exception as e:
        server_error("Error In Search Product API", e)
    return {"success": True, "products": serialize_doc(results)}


@router.get("/related-product/{pid}/{cid}")
def related_products(pid: str, cid: str, db: Database = Depends(get_db)):
    product_id, category_id = to_object_id(pid), to_object_id(cid)
    if product_id is None or category_id is None:
        fail(400, error="pid & cid are required")
    try:
        products = list(db["product"].find({"category": category_id, "_id": {"$ne": product_id}}, NO_PHOTO).limit(3))
        populate(db, products, "category", "category")
    except Exception as e:
        server_error("Error while getting related product", e)
    return {"success": True, "products": serialize_doc(products)}


@router.get("/product-category/{slug}")
def products_by_category(slug: str, db: Database = Depends(get_db)):
    try:
        category = db["category"].find_one({"slug": slug})
        if not category:
            fail(404, error="Category not found")
        products = list(db["product"].find({"category": category["_id"]}, NO_PHOTO))
        populate(db, products, "category", "category")
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error While Getting products by category", e)
    return {"success": True, "category": serialize_doc(category), "products": serialize_doc(products)}


# payment gateway

@router.get("/braintree/token")
def braintree_token(gateway=Depends(get_gateway)):
    try:
        token = gateway.client_token.generate()
    except Exception as e:
        server_error("Error while generating payment token", e)
    return {"success": True, "clientToken": token}


def _claim_checkout(db: Database, buyer: ObjectId, key: str) -> Optional[ObjectId]:
    """Reserve ``key`` for ``buyer``; None when another request already holds it."""
    try:
        return db["checkout"].insert_one({"buyer": buyer, "idempotency_key": key, "order": None, "created_at": now()}).inserted_id
    except DuplicateKeyError:
        return None


def _release_checkout(db: Database, claim_id: Optional[ObjectId]) -> None:
    if claim_id is not None:
        db["checkout"].delete_one({"_id": claim_id})


@router.post("/braintree/payment")
def braintree_payment(
    payload: PaymentInput,
    claims: dict = Depends(require_sign_in),
    db: Database = Depends(get_db),
    gateway=Depends(get_gateway),
):
    if not payload.nonce:
        fail(400, message="Payment nonce is required")
    if not payload.cart:
        fail(400, message="Cart is empty")
    buyer = to_object_id(claims["_id"])
    if buyer is None:
        fail(401, message="Invalid or expired token")
    product_ids = [to_object_id(item.id) for item in payload.cart]
    if None in product_ids:
        fail(400, message="Invalid product id")

    claim_id = None
    if payload.idempotency_key:
        claim_id = _claim_checkout(db, buyer, payload.idempotency_key)
        if claim_id is None:
            logger.info("Payment %s already claimed by %s", payload.idempotency_key, buyer)
            return {"ok": True, "duplicate": True}

    # Line prices are summed as sent; quantity is not multiplied in.
    cart = Cart(user=str(buyer), items=tuple(payload.cart))
    try:
        result = charge(gateway, to_amount(cart.total), payload.nonce)
    except Exception as e:
        _release_checkout(db, claim_id)
        server_error("Error while processing payment", e)
    if not result.is_success:
        logger.warning("Sale declined for %s: %s", buyer, result.message)
        _release_checkout(db, claim_id)
        fail(500, message="Payment failed", error=result.message)

    try:
        order = OrderSchema(
            products=product_ids,
            payment=summarize_result(result),
            buyer=buyer,
            idempotency_key=payload.idempotency_key,
        )
        order_id = create_document(db, "order", order)
        if claim_id is not None:
            db["checkout"].update_one({"_id": claim_id}, {"$set": {"order": order_id}})
        save_cart(db, cart.clear())
    except Exception as e:
        server_error("Error while saving order", e)
    logger.info("Order %s placed by %s for %s", order_id, buyer, to_amount(cart.total))
    return {"ok": True}
