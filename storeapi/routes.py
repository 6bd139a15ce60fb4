from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storeapi.auth import require_admin
from storeapi.config import Settings, get_settings
from storeapi.database import get_db
from storeapi.errors import InvalidRequest
from storeapi.merchant import MerchantDirectory, get_merchant_upi, set_merchant_upi
from storeapi.payments import PaymentIntentManager
from storeapi.signature import Signer

router = APIRouter(prefix="/api/payment")


class CreatePaymentRequest(BaseModel):
    amount: Optional[Decimal] = None
    payType: Optional[str] = None
    orderId: Optional[str] = None
    userId: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    tid: Optional[str] = None
    status: Optional[str] = None
    signature: Optional[str] = None


class MerchantUpiRequest(BaseModel):
    upi: Optional[str] = None


def get_payment_manager(db=Depends(get_db), settings: Settings = Depends(get_settings)):
    return PaymentIntentManager(
        db,
        Signer(settings.merchant_secret),
        MerchantDirectory(db, settings.merchant_upi),
        ttl_seconds=settings.payment_ttl_seconds,
    )


@router.post("/create")
def create_payment_api(
    request: CreatePaymentRequest,
    manager: PaymentIntentManager = Depends(get_payment_manager)
):
    return manager.create_intent(
        request.amount, request.payType, order_id=request.orderId, user_id=request.userId
    )


@router.get("/status/")
def payment_status_missing_tid():
    raise InvalidRequest("Transaction ID is required")


@router.get("/status/{tid}")
def payment_status_api(tid: str, manager: PaymentIntentManager = Depends(get_payment_manager)):
    return manager.get_status(tid)


@router.post("/verify")
def verify_payment_api(
    request: VerifyPaymentRequest,
    manager: PaymentIntentManager = Depends(get_payment_manager)
):
    return manager.verify(request.tid, request.status, signature=request.signature)


@router.post("/expire")
def expire_payments_api(
    manager: PaymentIntentManager = Depends(get_payment_manager),
    auth=Depends(require_admin)
):
    return {"expired": manager.expire_overdue()}


@router.get("/merchant-upi")
def merchant_upi_api(db=Depends(get_db), settings: Settings = Depends(get_settings)):
    return {"upi": get_merchant_upi(db, settings.merchant_upi)}


@router.put("/merchant-upi")
def update_merchant_upi_api(
    request: MerchantUpiRequest,
    db=Depends(get_db),
    auth=Depends(require_admin)
):
    return {"upi": set_merchant_upi(db, request.upi)}
