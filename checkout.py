"""
Server side of checkout.

The amount charged is computed here from the cart lines; any total sent by
the client is ignored. Once the gateway answers, exactly one order is
written whether the sale was approved or declined, with the gateway result
stored as the order's payment. Exceptions raised while talking to the
gateway propagate and no order is written.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import HTTPException
from pymongo.database import Database

from database import create_document
from helpers import is_object_id
from schemas import Order, OrderStatus

logger = logging.getLogger(__name__)


def line_id(line: Dict[str, Any]):
    return line.get("_id") or line.get("id")


def cart_total(lines: List[Dict[str, Any]]) -> Decimal:
    total = Decimal("0")
    for line in lines:
        try:
            price = Decimal(str(line["price"]))
            quantity = Decimal(str(line.get("quantity", 1)))
        except (KeyError, TypeError, ValueError, InvalidOperation):
            raise HTTPException(400, "Invalid cart item")
        if isinstance(line.get("price"), bool) or isinstance(line.get("quantity"), bool):
            raise HTTPException(400, "Invalid cart item")
        if not price.is_finite() or not quantity.is_finite():
            raise HTTPException(400, "Invalid cart item")
        if price < 0 or quantity < 1 or quantity != quantity.to_integral_value():
            raise HTTPException(400, "Invalid cart item")
        total += price * quantity
    return total


def format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01')):.2f}"


def cart_product_ids(lines: List[Dict[str, Any]]) -> List[ObjectId]:
    ids: List[ObjectId] = []
    for line in lines:
        pid = line_id(line)
        if not is_object_id(pid):
            raise HTTPException(400, "Invalid cart item")
        oid = ObjectId(pid)
        if oid not in ids:
            ids.append(oid)
    return ids


def place_order(db: Database, gateway, buyer_id: str, nonce: str, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not lines:
        raise HTTPException(400, "Cart is empty")
    if not nonce:
        raise HTTPException(400, "Payment nonce is required")

    product_ids = cart_product_ids(lines)
    amount = format_amount(cart_total(lines))

    logger.info("Submitting sale of %s for buyer %s", amount, buyer_id)
    payment = gateway.sale(amount, nonce)
    if payment.get("success"):
        logger.info("Sale approved for buyer %s", buyer_id)
    else:
        logger.warning("Sale declined for buyer %s: %s", buyer_id, payment.get("message"))

    order = Order(
        products=product_ids,
        payment=payment,
        buyer=ObjectId(buyer_id),
        status=OrderStatus.NOT_PROCESS,
    )
    order_id = create_document(db, "order", order)
    return db["order"].find_one({"_id": ObjectId(order_id)})
