from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, Numeric, String, Text

from storeapi.database import Base
from storeapi.timeutils import utcnow


class Transaction(Base):
    __tablename__ = "transactions"

    tid = Column(String(40), primary_key=True)     # cw<base36 ms><random>
    user_id = Column(String, nullable=True, index=True)
    order_id = Column(String, nullable=True, index=True)
    amount = Column(Numeric(20, 8), nullable=False)
    pay_type = Column(String(16), nullable=False)  # phonepe | paytm
    upi = Column(String, nullable=False)
    status = Column(String(16), nullable=False, default="pending", index=True)
    payload = Column(Text, nullable=False)
    signature = Column(String(64), nullable=False)
    redirect_url = Column(Text, nullable=False)
    note = Column(String(16), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(24), primary_key=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, nullable=True, index=True)
    delivery_address = Column(JSON, nullable=False)
    card_details = Column(JSON, nullable=False)    # last4/holder/expiry/type only
    products = Column(JSON, nullable=False)
    order_summary = Column(JSON, nullable=False)
    coupon_used = Column(JSON, nullable=False, default=dict)
    payment_method = Column(String, nullable=False, default="card")
    data_source = Column(String, nullable=False, default="cart")
    status = Column(String(16), nullable=False, default="pending", index=True)
    payment_status = Column(String(16), nullable=False, default="unpaid")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)          # catalog code
    name = Column(String, nullable=False)
    brand = Column(String, nullable=True)
    weight = Column(String, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    category = Column(String, nullable=True)
    mrp = Column(Float, nullable=False, default=0)
    dmart_price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    discount_percent = Column(Float, nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_veg = Column(Boolean, nullable=False, default=True)
    rating = Column(Float, nullable=True)
    status = Column(String(16), nullable=False, default="active")


class MerchantSetting(Base):
    __tablename__ = "merchant_settings"

    id = Column(Integer, primary_key=True)         # single row, id = 1
    merchant_upi = Column(String, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
