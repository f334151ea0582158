from pydantic import BaseModel
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from models.base import Base


class Product(Base):
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, unique=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)

    variants = relationship("ProductVariant", back_populates="product")


class ProductDTO(BaseModel):
    id: int | None = None
    name: str | None = None
    slug: str | None = None
