import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from slugify import slugify

from database import create_document, get_db, now, serialize_doc, to_object_id
from errors import fail, server_error
from schemas import Category as CategorySchema, CategoryInput
from security import is_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/category", tags=["category"])


@router.post("/create-category", status_code=201)
def create_category(payload: CategoryInput, admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    name = (payload.name or "").strip()
    if not name:
        fail(400, message="Name is required")
    try:
        if db["category"].find_one({"name": name}):
            fail(409, message="Category already exists")
        category_id = create_document(db, "category", CategorySchema(name=name, slug=slugify(name)))
        category = db["category"].find_one({"_id": category_id})
    except HTTPException:
        raise
    except DuplicateKeyError:
        fail(409, message="Category already exists")
    except Exception as e:
        server_error("Error while creating category", e)
    logger.info("Category %r created", name)
    return {"success": True, "message": "New category created", "category": serialize_doc(category)}


@router.put("/update-category/{category_id}")
def update_category(category_id: str, payload: CategoryInput, admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    name = (payload.name or "").strip()
    if not name:
        fail(400, message="Name is required")
    oid = to_object_id(category_id)
    if oid is None:
        fail(404, message="Category with this ID not found")
    try:
        existing = db["category"].find_one({"name": name})
        if existing and existing["_id"] != oid:
            fail(409, message="Category with this name already exists")
        category = db["category"].find_one_and_update(
            {"_id": oid},
            {"$set": {"name": name, "slug": slugify(name), "updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
    except HTTPException:
        raise
    except Exception as e:
        server_error("Error while updating category", e)
    if not category:
        fail(404, message="Category with this ID not found")
    return {"success": True, "message": "Category updated successfully", "category": serialize_doc(category)}


@router.get("/get-category")
def list_categories(db: Database = Depends(get_db)):
    try:
        categories = list(db["category"].find({}))
    except Exception as e:
        server_error("Error while getting all categories", e)
    return {"success": True, "message": "All Categories List", "category": serialize_doc(categories)}


@router.get("/single-category/{slug}")
def single_category(slug: str, db: Database = Depends(get_db)):
    try:
        category = db["category"].find_one({"slug": slug})
    except Exception as e:
        server_error("Error While getting Single Category", e)
    if not category:
        fail(404, message="Category not found")
    return {"success": True, "message": "Get Single Category Successfully", "category": serialize_doc(category)}


@router.delete("/delete-category/{category_id}")
def delete_category(category_id: str, admin: dict = Depends(is_admin), db: Database = Depends(get_db)):
    oid = to_object_id(category_id)
    if oid is None:
        fail(404, message="Category not found")
    try:
        deleted = db["category"].find_one_and_delete({"_id": oid})
    except Exception as e:
        server_error("Error while deleting category", e)
    if not deleted:
        fail(404, message="Category not found")
    logger.info("Category %s deleted", category_id)
    return {"success": True, "message": "Category deleted successfully"}
