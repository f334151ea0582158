from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, String, Text, CheckConstraint, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.currency import Currency
from enums.order_status import OrderStatus
from models.base import Base
from models.orderItem import OrderItemDTO
from models.order_tracking import OrderTracking, OrderTrackingDTO
from models.payment import PaymentDTO


# Orders are created once, atomically, together with their items, payment and
# first tracking entry. Afterwards only status changes; orders are never deleted.
class Order(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True, unique=True)
    order_number = Column(String(32), nullable=False, unique=True)  # ORD-YYYY-XXXXXX
    user_id = Column(Integer, nullable=False)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(SQLEnum(Currency), nullable=False)
    notes = Column(Text, nullable=True)
    shipping_address_id = Column(Integer, ForeignKey('addresses.id'), nullable=False)
    billing_address_id = Column(Integer, ForeignKey('addresses.id'), nullable=False)
    applied_discount_id = Column(Integer, ForeignKey('discounts.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    # Relations
    items = relationship('OrderItem', back_populates='order', order_by='OrderItem.id',
                         cascade='all, delete-orphan')
    payment = relationship('Payment', back_populates='order', uselist=False, cascade='all, delete-orphan')
    tracking = relationship('OrderTracking', back_populates='order',
                            order_by=[OrderTracking.timestamp.desc(), OrderTracking.id.desc()],
                            cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('total_amount >= 0', name='check_order_total_amount_non_negative'),
        Index('ix_orders_user_created', 'user_id', 'created_at'),
    )


class OrderDTO(BaseModel):
    id: int | None = None
    order_number: str | None = None
    user_id: int | None = None
    status: OrderStatus | None = None
    total_amount: Decimal | None = None
    currency: Currency | None = None
    notes: str | None = None
    shipping_address_id: int | None = None
    billing_address_id: int | None = None
    applied_discount_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItemDTO] = []
    payment: PaymentDTO | None = None
    tracking: list[OrderTrackingDTO] = []  # newest first
