"""Payment intent lifecycle: create, lazy expiry, verification, order reconciliation.

Every state change is a conditional UPDATE on ``status = 'pending'`` so two
requests racing on the same transaction cannot both win.
"""

import logging
import secrets
import string
import time
from decimal import Decimal, InvalidOperation

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storeapi.config import DEFAULT_PAYMENT_TTL_SECONDS
from storeapi.deeplinks import SUPPORTED_PAY_TYPES, build_deep_link, format_amount
from storeapi.errors import (
    AlreadyProcessed,
    InternalFailure,
    InvalidRequest,
    NotFound,
    SignatureMismatch,
)
from storeapi.models import Transaction
from storeapi.orders import apply_payment_outcome
from storeapi.timeutils import from_epoch, isoformat, to_epoch, utcnow

logger = logging.getLogger(__name__)

PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"
EXPIRED = "expired"
VERIFIABLE_OUTCOMES = (SUCCESS, FAILED)

MAX_TID_ATTEMPTS = 3
_BASE36 = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_tid() -> str:
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(11))
    return f"cw{_base36(millis)}{suffix}"


def generate_note() -> str:
    return f"s{secrets.randbelow(900) + 100}"


def parse_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidRequest("Invalid payload")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidRequest("Invalid payload")
    if not amount.is_finite() or amount <= 0:
        raise InvalidRequest("Invalid payload")
    return amount


def amount_number(amount: Decimal):
    """JSON number for a stored amount: 100 stays an int, 50.5 becomes a float."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


class PaymentIntentManager:
    def __init__(self, db, signer, merchant_lookup,
                 ttl_seconds=DEFAULT_PAYMENT_TTL_SECONDS, clock=utcnow):
        self.db = db
        self.signer = signer
        self.merchant_lookup = merchant_lookup
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def create_intent(self, amount, pay_type, order_id=None, user_id=None) -> dict:
        """Validate, sign and persist a pending intent; returns the deep-link response."""
        if not amount or not pay_type or not isinstance(pay_type, str):
            raise InvalidRequest("Invalid payload")
        value = parse_amount(amount)

        pay_type = pay_type.strip().lower()
        if pay_type not in SUPPORTED_PAY_TYPES:
            raise InvalidRequest("Unsupported payment type")

        upi = self.merchant_lookup()

        for attempt in range(1, MAX_TID_ATTEMPTS + 1):
            now = self.clock()
            tid = generate_tid()
            expires = to_epoch(now) + self.ttl_seconds
            note = generate_note()
            link = build_deep_link(
                pay_type, upi=upi, amount=value, note=note, tid=tid, expires=expires
            )
            signature = self.signer.sign(link.payload)

            self.db.add(Transaction(
                tid=tid,
                user_id=user_id or None,
                order_id=order_id or None,
                amount=value,
                pay_type=pay_type,
                upi=upi,
                status=PENDING,
                payload=link.payload,
                signature=signature,
                redirect_url=link.redirect_url,
                note=note,
                expires_at=from_epoch(expires),
                created_at=now,
            ))
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning("payment_tid_collision", extra={"tid": tid, "attempt": attempt})
                continue
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("payment_create_failed", extra={"pay_type": pay_type})
                raise InternalFailure("Failed to create payment")

            logger.info(
                "payment_intent_created",
                extra={"tid": tid, "pay_type": pay_type, "order_id": order_id, "upi": upi},
            )
            return {
                "redirect_url": link.redirect_url,
                "payload": link.payload,
                "sig": signature,
                "expires": expires,
                "tid": tid,
                "amount": format_amount(value),
            }

        raise InternalFailure("Failed to create payment")

    def get_status(self, tid) -> dict:
        if not tid or not tid.strip():
            raise InvalidRequest("Transaction ID is required")
        intent = self._load(tid)

        if intent.status == PENDING and self.clock() > intent.expires_at:
            try:
                if self._transition(tid, EXPIRED, completed_at=None):
                    logger.info("payment_intent_expired", extra={"tid": tid})
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("payment_expire_failed", extra={"tid": tid})
                raise InternalFailure("Failed to check payment status")
            self.db.refresh(intent)

        return {
            "tid": intent.tid,
            "status": intent.status,
            "amount": amount_number(intent.amount),
            "payType": intent.pay_type,
            "upi": intent.upi,
            "createdAt": isoformat(intent.created_at),
            "completedAt": isoformat(intent.completed_at),
        }

    def verify(self, tid, status, signature=None) -> dict:
        """Settle a pending intent with the reported outcome and reconcile its order.

        The signature, when given, is checked against the intent's own stored
        payload; it proves the client echoed back what we issued, nothing more.
        """
        if not tid or not status:
            raise InvalidRequest("Transaction ID and status are required")

        intent = self._load(tid)

        if status not in VERIFIABLE_OUTCOMES:
            raise InvalidRequest("Unsupported payment status")

        if signature and not self.signer.verify(intent.payload, signature):
            logger.warning("payment_signature_mismatch", extra={"tid": tid})
            raise SignatureMismatch("Invalid signature")

        if intent.status != PENDING:
            raise AlreadyProcessed(f"Transaction already {intent.status}")

        try:
            if not self._transition(tid, status, completed_at=self.clock()):
                self.db.rollback()
                self.db.refresh(intent)
                raise AlreadyProcessed(f"Transaction already {intent.status}")
            if intent.order_id:
                apply_payment_outcome(self.db, intent.order_id, status)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("payment_verify_failed", extra={"tid": tid})
            raise InternalFailure("Failed to verify payment")

        self.db.refresh(intent)
        logger.info(
            "payment_intent_verified",
            extra={"tid": tid, "status": status, "order_id": intent.order_id},
        )
        return {
            "success": True,
            "message": f"Payment {status}",
            "tid": intent.tid,
            "status": intent.status,
            "amount": amount_number(intent.amount),
        }

    def expire_overdue(self) -> int:
        """Sweep every overdue pending intent to expired; same outcome as the lazy read path."""
        now = self.clock()
        try:
            result = self.db.execute(
                update(Transaction)
                .where(Transaction.status == PENDING, Transaction.expires_at < now)
                .values(status=EXPIRED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("payment_sweep_failed")
            raise InternalFailure("Failed to expire payments")

        if result.rowcount:
            logger.info("payment_intents_swept", extra={"count": result.rowcount})
        return result.rowcount

    def _load(self, tid) -> Transaction:
        intent = self.db.get(Transaction, tid)
        if intent is None:
            raise NotFound("Transaction not found")
        return intent

    def _transition(self, tid, status, completed_at) -> bool:
        """Compare-and-set from pending; False when another request got there first."""
        result = self.db.execute(
            update(Transaction)
            .where(Transaction.tid == tid, Transaction.status == PENDING)
            .values(status=status, completed_at=completed_at, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
