"""Deep links that open a UPI app with the merchant payment pre-filled.

Both formats are consumed by existing mobile clients, so the byte layout
(key order, compact JSON, percent-encoding) must not drift.
"""

import base64
import json
from collections import namedtuple
from decimal import Decimal, ROUND_FLOOR
from urllib.parse import quote, urlencode

PHONEPE = "phonepe"
PAYTM = "paytm"
SUPPORTED_PAY_TYPES = (PHONEPE, PAYTM)

DeepLink = namedtuple("DeepLink", ["payload", "redirect_url"])


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value(rounding=ROUND_FLOOR))


def format_amount(amount: Decimal) -> str:
    """Shortest plain decimal form: 100 -> "100", 50.50 -> "50.5"."""
    return format(amount.normalize(), "f")


def encode_payload(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_payload(payload: str) -> dict:
    return json.loads(base64.b64decode(payload).decode("utf-8"))


def build_phonepe(upi: str, amount: Decimal, note: str) -> DeepLink:
    payload = encode_payload({
        "contact": {
            "cbsName": "",
            "nickName": "",
            "vpa": upi,
            "type": "VPA",
        },
        "p2pPaymentCheckoutParams": {
            "note": note,
            "isByDefaultKnownContact": True,
            "initialAmount": to_minor_units(amount),
            "currency": "INR",
            "checkoutType": "DEFAULT",
            "transactionContext": "p2p",
        },
    })
    redirect_url = f"phonepe://native?data={quote(payload, safe='')}&id=p2ppayment"
    return DeepLink(payload, redirect_url)


def build_paytm(upi: str, amount: Decimal, note: str, tid: str, expires: int) -> DeepLink:
    # Paytm reads the raw query parameters; the payload only mirrors the link.
    query = urlencode({
        "pa": upi,
        "am": format_amount(amount),
        "tn": note,
        "pn": upi,
        "mc": "",
        "cu": "INR",
        "url": "",
        "mode": "",
        "purpose": "",
        "orgid": "",
        "sign": "",
        "featuretype": "money_transfer",
    })
    redirect_url = f"paytmmp://cash_wallet?{query}"
    payload = encode_payload({"redirect": redirect_url, "tid": tid, "exp": expires})
    return DeepLink(payload, redirect_url)


def build_deep_link(pay_type: str, *, upi: str, amount: Decimal, note: str,
                    tid: str, expires: int) -> DeepLink:
    if pay_type == PHONEPE:
        return build_phonepe(upi, amount, note)
    if pay_type == PAYTM:
        return build_paytm(upi, amount, note, tid, expires)
    raise ValueError(f"Unsupported payment type: {pay_type}")
