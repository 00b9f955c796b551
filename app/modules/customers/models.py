from app.database.database import Base
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from app.common.mixins import TimestampMixin


class Customer(Base, TimestampMixin):
    """
    Shop customer. Sales create customers on the fly, matched by
    (name, phone), so the same name with different phones are two customers.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    phone = Column(String(50), nullable=True, index=True)
    email = Column(String(100), nullable=True)

    # Relationships
    sales = relationship("Sale", back_populates="customer")
