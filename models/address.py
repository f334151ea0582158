from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Index

from models.base import Base


class Address(Base):
    __tablename__ = 'addresses'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False)
    street = Column(String, nullable=False)
    street_number = Column(String, nullable=True)
    apartment = Column(String, nullable=True)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    postal_code = Column(String, nullable=False)
    country = Column(String, nullable=False)
    phone = Column(String, nullable=True)

    __table_args__ = (
        Index('ix_addresses_user_id', 'user_id'),
    )


class AddressDTO(BaseModel):
    id: int | None = None
    user_id: int | None = None
    street: str | None = None
    street_number: str | None = None
    apartment: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
