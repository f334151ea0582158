from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.order_tracking_status import OrderTrackingStatus
from models.base import Base


class OrderTracking(Base):
    __tablename__ = 'order_tracking'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    status = Column(SQLEnum(OrderTrackingStatus), nullable=False)
    message = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.now)

    order = relationship('Order', back_populates='tracking')

    __table_args__ = (
        Index('ix_order_tracking_order_timestamp', 'order_id', 'timestamp'),
    )


class OrderTrackingDTO(BaseModel):
    id: int | None = None
    order_id: int | None = None
    status: OrderTrackingStatus
    message: str
    timestamp: datetime | None = None
