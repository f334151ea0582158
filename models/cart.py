# A cart is the user's mutable working state before checkout. Items are NOT
# reserved, so availability is checked again when the order is placed.
# The cart row itself lives forever; placing an order only drains its items.
from pydantic import BaseModel
from sqlalchemy import Column, Integer
from sqlalchemy.orm import relationship

from models.base import Base
from models.cartItem import CartItemDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, unique=True)

    items = relationship("CartItem", back_populates="cart", order_by="CartItem.id",
                         cascade="all, delete-orphan")


class CartDTO(BaseModel):
    id: int | None = None
    user_id: int | None = None
    items: list[CartItemDTO] = []
