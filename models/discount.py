from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, CheckConstraint, Enum as SQLEnum

from enums.discount_type import DiscountType
from models.base import Base


class Discount(Base):
    __tablename__ = 'discounts'

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True)  # canonical uppercase
    type = Column(SQLEnum(DiscountType), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    usage_limit = Column(Integer, nullable=True)
    times_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        CheckConstraint('value > 0', name='ck_discount_value_positive'),
        CheckConstraint('times_used >= 0', name='ck_discount_times_used_non_negative'),
    )


class DiscountDTO(BaseModel):
    id: int | None = None
    code: str | None = None
    type: DiscountType | None = None
    value: Decimal | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = True
    usage_limit: int | None = None
    times_used: int | None = None

    @field_validator('code', mode='before')
    @classmethod
    def normalize_code(cls, v):
        """Discount codes are case-insensitive and stored uppercase."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ValidatedDiscountDTO(BaseModel):
    """Discount as returned to customers: the internal usage counter is not exposed."""
    id: int
    code: str
    type: DiscountType
    value: Decimal
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool
    usage_limit: int | None = None
