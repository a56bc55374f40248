import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

import config
from checkout import place_order
from database import create_document, get_db
from errors import server_errors
from gateway import PaymentGateway, get_gateway
from helpers import is_object_id, oid_to_str, parse_object_id, slugify
from schemas import FilterPayload, PaymentPayload, Photo, Product
from security import AuthUser, require_admin, require_sign_in

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/product", tags=["product"])

PHOTO_ERROR = "Photo is Required and should be less than 1mb"
NO_PHOTO = {"photo": 0}
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


# Helpers

def product_out(doc: Dict[str, Any], categories: Optional[Dict[ObjectId, Dict[str, Any]]] = None) -> Dict[str, Any]:
    data = dict(doc)
    data.pop("photo", None)
    category_id = data.get("category")
    if categories is not None and category_id in categories:
        data["category"] = categories[category_id]
    return oid_to_str(data)


def with_categories(db: Database, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    ids = list({d.get("category") for d in docs if d.get("category") is not None})
    categories = {c["_id"]: oid_to_str(c) for c in db["category"].find({"_id": {"$in": ids}})}
    return [product_out(d, categories) for d in docs]


def read_photo(photo: Optional[UploadFile]) -> Optional[Photo]:
    if photo is None:
        return None
    data = photo.file.read(config.MAX_PHOTO_BYTES + 1)
    if not data:
        return None
    if len(data) > config.MAX_PHOTO_BYTES:
        raise HTTPException(400, PHOTO_ERROR)
    return Photo(data=data, content_type=photo.content_type or "application/octet-stream")


def parse_shipping(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise HTTPException(400, "Shipping must be true or false")


def product_fields(db: Database, name, description, price, category, quantity, shipping) -> Dict[str, Any]:
    """Validate multipart product fields in form order and return typed values."""
    required = [
        (name, "Name is Required"),
        (description, "Description is Required"),
        (price, "Price is Required"),
        (category, "Category is Required"),
        (quantity, "Quantity is Required"),
        (shipping, "Shipping is Required"),
    ]
    for value, message in required:
        if value is None or str(value).strip() == "":
            raise HTTPException(400, message)

    try:
        price_value = float(price)
    except ValueError:
        raise HTTPException(400, "Price must be a positive number")
    if not price_value > 0:
        raise HTTPException(400, "Price must be a positive number")
    try:
        quantity_value = int(quantity)
    except ValueError:
        raise HTTPException(400, "Quantity must be a non-negative integer")
    if quantity_value < 0:
        raise HTTPException(400, "Quantity must be a non-negative integer")

    if not is_object_id(category) or not db["category"].find_one({"_id": ObjectId(category)}):
        raise HTTPException(404, "Category not found")

    name = " ".join(name.split())
    return {
        "name": name,
        "slug": slugify(name),
        "description": description,
        "price": price_value,
        "category": ObjectId(category),
        "quantity": quantity_value,
        "shipping": parse_shipping(shipping),
    }


def filter_query(checked: Any, radio: Any) -> Dict[str, Any]:
    """Build the product query for category ids and an inclusive price range."""
    if not isinstance(checked, list) or not isinstance(radio, list) or len(radio) not in (0, 2):
        raise HTTPException(400, "Invalid filter type")
    args: Dict[str, Any] = {}
    if checked:
        if not all(is_object_id(c) for c in checked):
            raise HTTPException(400, "Invalid filter values")
        args["category"] = {"$in": [ObjectId(c) for c in checked]}
    if radio:
        low, high = radio
        if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in radio):
            raise HTTPException(400, "Invalid filter values")
        if low < 0 or high < 0 or low > high:
            raise HTTPException(400, "Invalid filter values")
        args["price"] = {"$gte": low, "$lte": high}
    return args


def page_number(page: Optional[str]) -> int:
    try:
        number = int(page)
    except (TypeError, ValueError):
        return 1
    if number < 1:
        raise HTTPException(400, "Page number should be greater than 0")
    return number


# Admin CRUD

@router.post("/create-product", status_code=201)
def create_product(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    shipping: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    admin: Dict[str, Any] = Depends(require_admin),
    db: Database = Depends(get_db),
):
    fields = product_fields(db, name, description, price, category, quantity, shipping)
    stored_photo = read_photo(photo)
    if stored_photo is None:
        raise HTTPException(400, PHOTO_ERROR)

    with server_errors("Error in creating product"):
        product_id = create_document(db, "product", Product(**fields, photo=stored_photo))
        product = db["product"].find_one({"_id": ObjectId(product_id)}, NO_PHOTO)
    logger.info("Created product %s", fields["slug"])
    return {"success": True, "message": "Product Created Successfully", "products": product_out(product)}


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
    admin: Dict[str, Any] = Depends(require_admin),
    db: Database = Depends(get_db),
):
    fields = product_fields(db, name, description, price, category, quantity, shipping)
    stored_photo = read_photo(photo)
    oid = parse_object_id(pid, "Invalid product id")

    with server_errors("Error in updating product"):
        update = Product(**fields, photo=stored_photo).model_dump(exclude_none=True)
        update["updated_at"] = datetime.now(timezone.utc)
        product = db["product"].find_one_and_update(
            {"_id": oid},
            {"$set": update},
            projection=NO_PHOTO,
            return_document=ReturnDocument.AFTER,
        )
        if not product:
            raise HTTPException(404, "Product not found")
    return {"success": True, "message": "Product Updated Successfully", "products": product_out(product)}


@router.delete("/delete-product/{pid}")
def delete_product(pid: str, admin: Dict[str, Any] = Depends(require_admin), db: Database = Depends(get_db)):
    oid = parse_object_id(pid, "Invalid product id")
    with server_errors("Error while deleting product"):
        res = db["product"].delete_one({"_id": oid})
        if res.deleted_count == 0:
            raise HTTPException(404, "Product not found")
    logger.info("Deleted product %s", pid)
    return {"success": True, "message": "Product Deleted successfully"}


# Catalog

@router.get("/get-product")
def list_products(db: Database = Depends(get_db)):
    with server_errors("Error in getting products"):
        docs = list(db["product"].find({}, NO_PHOTO).sort("created_at", DESCENDING).limit(config.PRODUCT_LIST_LIMIT))
        products = with_categories(db, docs)
    return {"success": True, "countTotal": len(products), "message": "All Products", "products": products}


@router.get("/get-product/{slug}")
def get_product(slug: str, db: Database = Depends(get_db)):
    with server_errors("Error while getting single product"):
        doc = db["product"].find_one({"slug": slug}, NO_PHOTO)
        if not doc:
            raise HTTPException(404, "Product not found")
        product = with_categories(db, [doc])[0]
    return {"success": True, "message": "Single Product Fetched", "product": product}


@router.get("/product-photo/{pid}")
def product_photo(pid: str, db: Database = Depends(get_db)):
    oid = parse_object_id(pid, "Invalid product id")
    with server_errors("Error while getting photo"):
        doc = db["product"].find_one({"_id": oid}, {"photo": 1})
        photo = (doc or {}).get("photo") or {}
        if not photo.get("data"):
            raise HTTPException(404, "Photo not found")
    return Response(content=bytes(photo["data"]), media_type=photo.get("content_type"))


@router.post("/product-filters")
def product_filters(payload: FilterPayload, db: Database = Depends(get_db)):
    args = filter_query(payload.checked, payload.radio)
    with server_errors("Error while filtering products"):
        products = with_categories(db, list(db["product"].find(args, NO_PHOTO)))
    return {"success": True, "products": products}


@router.get("/product-count")
def product_count(db: Database = Depends(get_db)):
    with server_errors("Error in product count"):
        total = db["product"].estimated_document_count()
    return {"success": True, "total": total}


@router.get("/product-list")
@router.get("/product-list/{page}")
def product_list(page: Optional[str] = None, db: Database = Depends(get_db)):
    number = page_number(page)
    with server_errors("Error in per page control"):
        docs = list(
            db["product"].find({}, NO_PHOTO)
            .sort("created_at", DESCENDING)
            .skip((number - 1) * config.PER_PAGE)
            .limit(config.PER_PAGE)
        )
        products = with_categories(db, docs)
    return {"success": True, "products": products}


@router.get("/search")
@router.get("/search/{keyword}")
def search_products(keyword: Optional[str] = None, db: Database = Depends(get_db)):
    if not keyword or not keyword.strip():
        raise HTTPException(400, "Keyword is required")
    pattern = re.escape(keyword.strip())
    with server_errors("Error in Search Product API"):
        docs = list(db["product"].find(
            {"$or": [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]},
            NO_PHOTO,
        ))
        products = with_categories(db, docs)
    return {"success": True, "products": products}


@router.get("/related-product/{pid}/{cid}")
def related_products(pid: str, cid: str, db: Database = Depends(get_db)):
    if not is_object_id(pid) or not is_object_id(cid):
        raise HTTPException(400, "Product id and category id are required")
    with server_errors("Error while getting related products"):
        docs = list(
            db["product"].find({"category": ObjectId(cid), "_id": {"$ne": ObjectId(pid)}}, NO_PHOTO)
            .limit(config.RELATED_LIMIT)
        )
        products = with_categories(db, docs)
    return {"success": True, "products": products}


@router.get("/product-category/{slug}")
def products_by_category(slug: str, db: Database = Depends(get_db)):
    with server_errors("Error while getting products"):
        category = db["category"].find_one({"slug": slug})
        if not category:
            raise HTTPException(404, "Category not found")
        docs = list(db["product"].find({"category": category["_id"]}, NO_PHOTO))
        products = with_categories(db, docs)
    return {"success": True, "category": oid_to_str(category), "products": products}


# Payment

@router.get("/braintree/token")
def braintree_token(current: AuthUser = Depends(require_sign_in), gateway: PaymentGateway = Depends(get_gateway)):
    with server_errors("Error while generating client token"):
        client_token = gateway.generate_client_token()
    return {"success": True, "clientToken": client_token}


@router.post("/braintree/payment")
def braintree_payment(
    payload: PaymentPayload,
    current: AuthUser = Depends(require_sign_in),
    db: Database = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    with server_errors("Error while processing payment"):
        order = place_order(db, gateway, current.id, payload.nonce, payload.cart)
    approved = bool(order["payment"].get("success"))
    return {
        "ok": True,
        "success": True,
        "message": "Payment Completed Successfully" if approved else "Payment Declined",
        "order": oid_to_str(order),
    }
