"""
Cart aggregate

A cart is an ordered snapshot of line items owned by one user. Mutations
never touch the snapshot they are called on; they return a new one.
Adding appends unconditionally, so the same product may appear on several
lines. Removal is by position.
"""

from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pymongo import ReturnDocument
from pymongo.database import Database

from database import now
from schemas import CartItem


class Cart(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: str
    items: Tuple[CartItem, ...] = ()

    @property
    def total(self) -> float:
        return sum(item.price for item in self.items)

    def add(self, item: CartItem) -> "Cart":
        return self.model_copy(update={"items": self.items + (item,)})

    def remove(self, index: int) -> "Cart":
        if index < 0 or index >= len(self.items):
            raise IndexError(f"No cart item at position {index}")
        return self.model_copy(update={"items": self.items[:index] + self.items[index + 1:]})

    def clear(self) -> "Cart":
        return self.model_copy(update={"items": ()})

    def lines(self) -> List[Dict[str, Any]]:
        """Items as stored and returned: ``_id`` keyed dicts."""
        return self.model_dump(mode="json", by_alias=True)["items"]


def load_cart(db: Database, user_id: str) -> Cart:
    doc = db["cart"].find_one({"user": ObjectId(user_id)}) or {}
    return Cart.model_validate({"user": user_id, "items": doc.get("items", [])})


def save_cart(db: Database, cart: Cart) -> Optional[Dict[str, Any]]:
    stamp = now()
    return db["cart"].find_one_and_update(
        {"user": ObjectId(cart.user)},
        {"$set": {"items": cart.lines(), "updated_at": stamp}, "$setOnInsert": {"created_at": stamp}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
