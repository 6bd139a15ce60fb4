import logging
import math
import re
import secrets
import time

from sqlalchemy import func, select

from storeapi.errors import OrderError
from storeapi.models import Order, Product
from storeapi.timeutils import isoformat

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("unpaid", "paid", "failed")

# payment outcome -> (order.payment_status, order.status)
PAYMENT_OUTCOMES = {
    "success": ("paid", "confirmed"),
    "failed": ("failed", "cancelled"),
}

ORDER_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def card_type(card_number: str) -> str:
    if card_number.startswith("4"):
        return "Visa"
    if card_number.startswith(("5", "2")):
        return "MasterCard"
    if card_number.startswith("3"):
        return "Amex"
    if card_number.startswith("6"):
        return "Discover"
    return "Other"


def generate_order_number() -> str:
    return f"ORD{time.time_ns() // 1_000_000}{secrets.randbelow(1000):03d}"


def validate_order_id(order_id):
    if not order_id or order_id in ("undefined", "null"):
        raise OrderError("Valid order ID is required")
    if not ORDER_ID_PATTERN.match(order_id):
        raise OrderError("Invalid order ID format")


def _card_summary(card):
    number = re.sub(r"\D", "", str(card.get("number") or ""))
    holder = card.get("holder")
    if not number or not holder:
        raise OrderError("Invalid card details")
    # Only what the storefront needs to display; the PAN and CVV are dropped.
    return {
        "cardNumberLast4": number[-4:],
        "holderName": str(holder).upper(),
        "expiry": card.get("expiry"),
        "cardType": card_type(number),
    }


def _line_item(db, item):
    quantity = item.get("quantity")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise OrderError("Invalid product quantity")

    product = db.scalars(
        select(Product).where(Product.id == str(item.get("id")), Product.status == "active")
    ).first()
    if product is None:
        raise OrderError(f"Product with ID {item.get('id')} not found or inactive")
    if product.stock_quantity < quantity:
        raise OrderError(
            f"Insufficient stock for {product.name}. "
            f"Available: {product.stock_quantity}, Requested: {quantity}"
        )

    images = product.images or []
    return {
        "productId": product.id,
        "name": product.name,
        "brand": product.brand,
        "weight": product.weight,
        "image": images[0].get("url", "") if images else "",
        "category": product.category,
        "mrp": product.mrp,
        "dmartPrice": product.dmart_price,
        "discount": product.discount,
        "discountPercent": product.discount_percent,
        "quantity": quantity,
        "totalPrice": product.dmart_price * quantity,
        "isVeg": product.is_veg,
        "rating": product.rating,
    }


def create_order(db, data: dict) -> Order:
    required = ("deliveryAddress", "cardDetails", "products", "orderSummary")
    if any(data.get(field) is None for field in required):
        raise OrderError("Missing required order information")

    products = data["products"]
    if not isinstance(products, list) or not products:
        raise OrderError("At least one product is required")
    if not isinstance(data["cardDetails"], dict):
        raise OrderError("Invalid card details")

    line_items = [_line_item(db, item if isinstance(item, dict) else {}) for item in products]

    order = Order(
        id=secrets.token_hex(12),
        order_number=generate_order_number(),
        user_id=data.get("userId") or None,
        delivery_address=data["deliveryAddress"],
        card_details=_card_summary(data["cardDetails"]),
        products=line_items,
        order_summary=data["orderSummary"],
        coupon_used=data.get("couponUsed") or {},
        payment_method=data.get("paymentMethod") or "card",
        data_source=data.get("dataSource") or "cart",
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("order_created", extra={"order_id": order.id, "order_number": order.order_number})
    return order


def list_orders(db, user_id=None, status=None, page=1, limit=10):
    query = select(Order)
    if user_id:
        query = query.where(Order.user_id == user_id)
    if status:
        query = query.where(Order.status == status)

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    orders = db.scalars(
        query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit)
    ).all()

    total_pages = math.ceil(total / limit)
    pagination = {
        "currentPage": page,
        "totalPages": total_pages,
        "totalOrders": total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
    return orders, pagination


def get_order(db, order_id) -> Order:
    validate_order_id(order_id)
    order = db.get(Order, order_id)
    if order is None:
        raise OrderError("Order not found", status_code=404)
    return order


def get_order_by_number(db, order_number) -> Order:
    order = db.scalars(select(Order).where(Order.order_number == order_number)).first()
    if order is None:
        raise OrderError("Order not found", status_code=404)
    return order


def update_order_status(db, order_id, status) -> Order:
    if status not in ORDER_STATUSES:
        raise OrderError("Invalid order status")
    order = db.get(Order, order_id)
    if order is None:
        raise OrderError("Order not found", status_code=404)

    order.status = status
    db.commit()
    db.refresh(order)
    logger.info("order_status_updated", extra={"order_id": order_id, "status": status})
    return order


def delete_order(db, order_id) -> dict:
    order = get_order(db, order_id)
    deleted = {"orderId": order.id, "orderNumber": order.order_number}
    db.delete(order)
    db.commit()
    logger.info("order_deleted", extra={"order_id": order_id, "order_number": deleted["orderNumber"]})
    return deleted


def apply_payment_outcome(db, order_id, outcome) -> bool:
    """Stage the order update for a settled payment; the caller commits."""
    order = db.get(Order, order_id)
    if order is None:
        logger.warning("payment_order_missing", extra={"order_id": order_id})
        return False

    mapped = PAYMENT_OUTCOMES.get(outcome)
    if mapped is None:
        return False
    order.payment_status, order.status = mapped
    return True


def serialize_order(order: Order) -> dict:
    return {
        "_id": order.id,
        "orderNumber": order.order_number,
        "userId": order.user_id,
        "deliveryAddress": order.delivery_address,
        "cardDetails": order.card_details,
        "products": order.products,
        "orderSummary": order.order_summary,
        "couponUsed": order.coupon_used,
        "paymentMethod": order.payment_method,
        "dataSource": order.data_source,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "createdAt": isoformat(order.created_at),
        "updatedAt": isoformat(order.updated_at),
    }
