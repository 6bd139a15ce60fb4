import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storeapi.errors import InternalFailure, InvalidRequest
from storeapi.models import MerchantSetting

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1
UPI_PATTERN = re.compile(r"^[\w.\-]{2,256}@[A-Za-z][\w.\-]{1,63}$")


def get_merchant_upi(db, default=None):
    """Current receiving handle; seeds the settings row from `default` on first use."""
    try:
        row = db.get(MerchantSetting, SETTINGS_ROW_ID)
        if row:
            return row.merchant_upi
        if not default:
            raise InternalFailure("Merchant UPI is not configured")

        db.add(MerchantSetting(id=SETTINGS_ROW_ID, merchant_upi=default))
        try:
            db.commit()
        except IntegrityError:
            # Another request seeded the row first
            db.rollback()
            row = db.get(MerchantSetting, SETTINGS_ROW_ID)
            if row is None:
                raise InternalFailure("Failed to get merchant UPI")
            return row.merchant_upi
    except SQLAlchemyError:
        db.rollback()
        logger.exception("merchant_upi_lookup_failed")
        raise InternalFailure("Failed to get merchant UPI")

    logger.info("merchant_upi_seeded", extra={"upi": default})
    return default


def set_merchant_upi(db, upi):
    upi = (upi or "").strip()
    if not UPI_PATTERN.match(upi):
        raise InvalidRequest("Invalid UPI ID")

    try:
        row = db.get(MerchantSetting, SETTINGS_ROW_ID)
        if row:
            row.merchant_upi = upi
        else:
            db.add(MerchantSetting(id=SETTINGS_ROW_ID, merchant_upi=upi))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("merchant_upi_update_failed")
        raise InternalFailure("Failed to update merchant UPI")

    logger.info("merchant_upi_updated", extra={"upi": upi})
    return upi


class MerchantDirectory:
    """Lookup bound to a session, handed to the payment manager."""

    def __init__(self, db, default=None):
        self.db = db
        self.default = default

    def __call__(self):
        return get_merchant_upi(self.db, self.default)
