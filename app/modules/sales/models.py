"""
SQLAlchemy models for the customer sales ledger.

- Sales (Sale) and their lines (SaleItem)
- Ledger entries (PaymentHistory): payments are positive, refunds negative
- Returns (SaleReturn / ReturnItem) with snapshots of what they removed

amount_paid, remaining_amount, overpaid_amount and payment_status on Sale
are derived from payment_history and are only ever written by the
projector (app.modules.ledger.service.reproject_sale).
"""

from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Numeric, Enum, Text
from sqlalchemy.orm import relationship
from app.common.mixins import TimestampMixin, utcnow
from app.modules.ledger.projector import SaleStatus
import enum


class EntryType(enum.Enum):
    """Kind of sale ledger entry"""
    PAYMENT = "payment"     # Customer paid (positive)
    REFUND = "refund"       # Money returned by a return (negative)


class Sale(Base, TimestampMixin):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)  # None = walk-in

    subtotal = Column(Numeric(15, 2), nullable=False, default=0)        # Σ unit_price × quantity
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)    # subtotal + gross profit - discount
    total_profit = Column(Numeric(15, 2), nullable=False, default=0)    # max(0, gross profit - discount)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Derived from payment_history
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(15, 2), nullable=False, default=0)
    overpaid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    payment_status = Column(Enum(SaleStatus), nullable=False, default=SaleStatus.PENDING, index=True)

    payment_method = Column(String(50), nullable=False, default="cash")
    due_date = Column(Date, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="sales", lazy="joined")
    sale_items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan", order_by="SaleItem.id")
    payment_history = relationship(
        "PaymentHistory",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by=lambda: (PaymentHistory.payment_date.desc(), PaymentHistory.id.desc())
    )
    returns = relationship("SaleReturn", back_populates="sale", cascade="all, delete-orphan", order_by="SaleReturn.id")


class SaleItem(Base, TimestampMixin):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)

    # Relationships
    sale = relationship("Sale", back_populates="sale_items")
    product = relationship("Product", lazy="joined")

    @property
    def product_name(self):
        return self.product.name if self.product else None


class PaymentHistory(Base, TimestampMixin):
    """One entry of a sale's ledger."""
    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)  # signed
    entry_type = Column(Enum(EntryType), nullable=False, default=EntryType.PAYMENT)
    payment_method = Column(String(50), nullable=False, default="cash")
    payment_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    sale = relationship("Sale", back_populates="payment_history")


class SaleReturn(Base, TimestampMixin):
    __tablename__ = "returns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    refund_amount = Column(Numeric(15, 2), nullable=False)
    status = Column(String(20), nullable=False, default="completed")

    # What the return took out of the sale, so deleting it can put it back
    subtotal_amount = Column(Numeric(15, 2), nullable=False, default=0)
    profit_amount = Column(Numeric(15, 2), nullable=False, default=0)
    base_amount_reduction = Column(Numeric(15, 2), nullable=False, default=0)
    # Cash handed back: only what had been paid above the reduced total
    cash_refund_amount = Column(Numeric(15, 2), nullable=False, default=0)
    ledger_entry_id = Column(Integer, ForeignKey("payment_history.id", ondelete="SET NULL"), nullable=True)

    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    sale = relationship("Sale", back_populates="returns")
    items = relationship("ReturnItem", back_populates="sale_return", cascade="all, delete-orphan", order_by="ReturnItem.id")
    ledger_entry = relationship("PaymentHistory", foreign_keys=[ledger_entry_id])


class ReturnItem(Base, TimestampMixin):
    __tablename__ = "return_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    return_id = Column(Integer, ForeignKey("returns.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)      # unit_price × quantity
    refund_amount = Column(Numeric(15, 2), nullable=False)    # total_price plus its profit share

    # Relationships
    sale_return = relationship("SaleReturn", back_populates="items")
    product = relationship("Product", lazy="joined")

    @property
    def product_name(self):
        return self.product.name if self.product else None
