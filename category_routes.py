import logging
from datetime import datetime, timezone
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db
from errors import server_errors
from helpers import oid_to_str, parse_object_id, slugify
from schemas import Category, CategoryPayload
from security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/category", tags=["category"])


def category_name(payload: CategoryPayload) -> str:
    name = " ".join((payload.name or "").split())
    if not name or not slugify(name):
        raise HTTPException(400, "Name is required")
    return name


@router.post("/create-category", status_code=201)
def create_category(payload: CategoryPayload, admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    name = category_name(payload)
    with server_errors("Error in Category"):
        if db["category"].find_one({"name": name}):
            raise HTTPException(409, "Category Already Exists")
        try:
            category_id = create_document(db, "category", Category(name=name, slug=slugify(name)))
        except DuplicateKeyError:
            raise HTTPException(409, "Category Already Exists")
        category = db["category"].find_one({"_id": ObjectId(category_id)})
    logger.info("Created category %s", category["slug"])
    return {"success": True, "message": "new category created", "category": oid_to_str(category)}


@router.put("/update-category/{category_id}")
def update_category(category_id: str, payload: CategoryPayload, admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    name = category_name(payload)
    oid = parse_object_id(category_id, "Invalid category id")
    with server_errors("Error while updating category"):
        try:
            category = db["category"].find_one_and_update(
                {"_id": oid},
                {"$set": {"name": name, "slug": slugify(name), "updated_at": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise HTTPException(409, "Category Already Exists")
        if not category:
            raise HTTPException(404, "Category not found")
    return {"success": True, "message": "Category Updated Successfully", "category": oid_to_str(category)}


@router.get("/get-category")
def list_categories(db: Database = Depends(get_db)):
    with server_errors("Error while getting all categories"):
        categories = [oid_to_str(c) for c in db["category"].find({}).sort("name", 1)]
    return {"success": True, "message": "All Categories List", "category": categories}


@router.get("/get-one-category/{slug}")
def get_category(slug: str, db: Database = Depends(get_db)):
    with server_errors("Error While getting Single Category"):
        category = db["category"].find_one({"slug": slug})
        if not category:
            raise HTTPException(404, "Category not found")
    return {"success": True, "message": "Get Single Category Successfully", "category": oid_to_str(category)}


@router.delete("/delete-category/{category_id}")
def delete_category(category_id: str, admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    oid = parse_object_id(category_id, "Invalid category id")
    with server_errors("error while deleting category"):
        res = db["category"].delete_one({"_id": oid})
        if res.deleted_count == 0:
            raise HTTPException(404, "Category not found")
    logger.info("Deleted category %s", category_id)
    return {"success": True, "message": "Category Deleted Successfully"}
