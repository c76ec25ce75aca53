import logging

from fastapi import APIRouter, Depends
from pymongo.database import Database

from cart import Cart, load_cart, save_cart
from database import get_db, to_object_id
from errors import fail, server_error
from schemas import CartItem
from security import require_sign_in

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cart", tags=["cart"])


def _owner(claims: dict) -> str:
    if to_object_id(claims["_id"]) is None:
        fail(401, message="Invalid or expired token")
    return claims["_id"]


def _envelope(cart: Cart):
    return {"success": True, "cart": cart.lines(), "total": cart.total}


@router.get("")
def get_cart(claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    try:
        cart = load_cart(db, _owner(claims))
    except Exception as e:
        server_error("Error while getting cart", e)
    return _envelope(cart)


@router.post("/add")
def add_to_cart(item: CartItem, claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    if to_object_id(item.id) is None:
        fail(400, message="Invalid product id")
    user_id = _owner(claims)
    try:
        cart = load_cart(db, user_id).add(item)
        save_cart(db, cart)
    except Exception as e:
        server_error("Error while adding to cart", e)
    return _envelope(cart)


@router.delete("/remove/{index}")
def remove_from_cart(index: int, claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    user_id = _owner(claims)
    cart = load_cart(db, user_id)
    try:
        cart = cart.remove(index)
    except IndexError:
        fail(404, message="Cart item not found")
    save_cart(db, cart)
    return _envelope(cart)


@router.delete("")
def clear_cart(claims: dict = Depends(require_sign_in), db: Database = Depends(get_db)):
    cart = load_cart(db, _owner(claims)).clear()
    save_cart(db, cart)
    logger.info("Cart cleared for %s", claims["_id"])
    return _envelope(cart)
