"""
SQLAlchemy models for supplier purchases ("Ograi").

A purchase carries two independent balances: the goods
(total_amount / amount_paid / remaining_amount / overpaid_amount) and the
transport fee (transport_fee / transport_paid / transport_remaining).
Both are derived from payment_history by the projector.
"""

from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from app.common.mixins import TimestampMixin, utcnow
from app.modules.ledger.projector import PurchaseStatus


class Supplier(Base, TimestampMixin):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True, index=True)
    contact_number = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)

    # Relationships
    transactions = relationship("OgraiTransaction", back_populates="supplier")


class OgraiTransaction(Base, TimestampMixin):
    __tablename__ = "ograi_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    # Supplier details as entered on the purchase
    supplier_name = Column(String(200), nullable=False)
    contact_number = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)

    transaction_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    price_per_unit = Column(Numeric(15, 2), nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)  # quantity × price_per_unit

    # Derived from payment_history
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(15, 2), nullable=False, default=0)
    overpaid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    transport_fee = Column(Numeric(15, 2), nullable=False, default=0)
    transport_paid = Column(Numeric(15, 2), nullable=False, default=0)
    transport_remaining = Column(Numeric(15, 2), nullable=False, default=0)
    status = Column(Enum(PurchaseStatus), nullable=False, default=PurchaseStatus.PENDING, index=True)

    payment_method = Column(String(50), nullable=False, default="cash")
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    supplier = relationship("Supplier", back_populates="transactions", lazy="joined")
    payment_history = relationship(
        "OgraiPaymentHistory",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by=lambda: (OgraiPaymentHistory.payment_date.desc(), OgraiPaymentHistory.id.desc())
    )


class OgraiPaymentHistory(Base, TimestampMixin):
    """One combined payment: goods portion plus transport portion."""
    __tablename__ = "ograi_payment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("ograi_transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_amount = Column(Numeric(15, 2), nullable=False, default=0)
    transport_payment = Column(Numeric(15, 2), nullable=False, default=0)
    total_payment = Column(Numeric(15, 2), nullable=False, default=0)
    payment_method = Column(String(50), nullable=False, default="cash")
    payment_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    transaction = relationship("OgraiTransaction", back_populates="payment_history")
