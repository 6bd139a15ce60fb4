from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storeapi import orders
from storeapi.auth import require_admin
from storeapi.database import get_db
from storeapi.timeutils import isoformat

router = APIRouter(prefix="/api")


class OrderRequest(BaseModel):
    userId: Optional[str] = None
    deliveryAddress: Optional[dict] = None
    cardDetails: Optional[dict] = None
    products: Optional[list] = None
    orderSummary: Optional[dict] = None
    couponUsed: Optional[dict] = None
    paymentMethod: Optional[str] = None
    dataSource: Optional[str] = None


class OrderStatusRequest(BaseModel):
    status: Optional[str] = None


@router.post("/createOrder")
def create_order_api(request: OrderRequest, db=Depends(get_db)):
    order = orders.create_order(db, request.model_dump())
    return JSONResponse(status_code=201, content={
        "success": True,
        "message": "Order created successfully",
        "data": {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
            "finalTotal": order.order_summary.get("finalTotal"),
            "productCount": len(order.products),
            "createdAt": isoformat(order.created_at),
        },
    })


def _list_orders(db, user_id, status, page, limit):
    found, pagination = orders.list_orders(db, user_id=user_id, status=status, page=page, limit=limit)
    return {
        "success": True,
        "data": [orders.serialize_order(order) for order in found],
        "pagination": pagination,
    }


@router.get("/orders")
def list_orders_api(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db=Depends(get_db)
):
    return _list_orders(db, None, status, page, limit)


@router.get("/orders/{user_id}")
def list_user_orders_api(
    user_id: str,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db=Depends(get_db)
):
    return _list_orders(db, user_id, status, page, limit)


@router.get("/order/number/{order_number}")
def order_by_number_api(order_number: str, db=Depends(get_db)):
    order = orders.get_order_by_number(db, order_number)
    return {"success": True, "data": orders.serialize_order(order)}


@router.get("/order/{order_id}")
def order_api(order_id: str, db=Depends(get_db)):
    order = orders.get_order(db, order_id)
    return {"success": True, "data": orders.serialize_order(order)}


@router.put("/order/{order_id}/status")
def update_order_status_api(
    order_id: str,
    request: OrderStatusRequest,
    db=Depends(get_db),
    auth=Depends(require_admin)
):
    order = orders.update_order_status(db, order_id, request.status)
    return {
        "success": True,
        "message": "Order status updated successfully",
        "data": {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
        },
    }


@router.delete("/order/{order_id}")
def delete_order_api(order_id: str, db=Depends(get_db), auth=Depends(require_admin)):
    deleted = orders.delete_order(db, order_id)
    return {"success": True, "message": "Order deleted successfully", "data": deleted}
