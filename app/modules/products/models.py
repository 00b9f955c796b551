from app.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from app.common.mixins import TimestampMixin


class StockStatus:
    OUT_OF_STOCK = "Out of Stock"
    LOW_STOCK = "Low Stock"
    IN_STOCK = "In Stock"


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, index=True)
    description = Column(String(255), nullable=True)
    barcode = Column(String(50), nullable=True, index=True)  # Código de barras
    price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de venta por unidad
    quantity = Column(Integer, nullable=False, default=0)  # Stock, never negative
    min_stock = Column(Integer, nullable=False, default=10)
    units_per_box = Column(Integer, nullable=False, default=10)
    profit_per_unit = Column(Numeric(15, 2), nullable=False, default=0)
    profit_per_box = Column(Numeric(15, 2), nullable=False, default=0)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    # Relationships
    category = relationship("Category", back_populates="products", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
    )

    @property
    def stock_status(self) -> str:
        if not self.quantity:
            return StockStatus.OUT_OF_STOCK
        if self.quantity < (self.min_stock or 0):
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK
