from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import Optional
import logging

from app.common.exceptions import NotFoundError, InvalidStateError
from app.modules.products.models import Product, StockStatus
from app.modules.products.schemas import ProductCreate, ProductUpdate
from app.modules.categories.models import Category

logger = logging.getLogger(__name__)


def _require_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    if not db.query(Category).filter(Category.id == category_id).first():
        raise NotFoundError(f"Category {category_id} not found")


def create_product(db: Session, data: ProductCreate) -> Product:
    """Create a product with its stock and profit rates."""
    _require_category(db, data.category_id)
    try:
        product = Product(**data.model_dump())
        db.add(product)
        db.commit()
        db.refresh(product)
        logger.info(f"Created product {product.id} '{product.name}' with stock {product.quantity}")
        return product
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating product: {str(e)}"
        )


def get_all_products(db: Session, **kwargs):
    """
    Products, newest first. ``search`` matches the name (case-insensitive)
    or the exact barcode; ``stock_status`` filters on the derived status.
    """
    query = db.query(Product)

    search = kwargs.get('search')
    category_id = kwargs.get('category_id')
    stock_status = kwargs.get('stock_status')
    limit = kwargs.get('limit', 50)
    offset = kwargs.get('offset', 0)

    if search:
        query = query.filter(or_(Product.name.ilike(f"%{search}%"), Product.barcode == search))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if stock_status == StockStatus.OUT_OF_STOCK:
        query = query.filter(Product.quantity == 0)
    elif stock_status == StockStatus.LOW_STOCK:
        query = query.filter(Product.quantity > 0, Product.quantity < Product.min_stock)
    elif stock_status == StockStatus.IN_STOCK:
        query = query.filter(Product.quantity > 0, Product.quantity >= Product.min_stock)

    total = query.count()
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).offset(offset).limit(limit).all()

    return {
        "items": products,
        "total": total,
        "limit": limit,
        "offset": offset
    }


def get_product_by_id(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
    product = get_product_by_id(db, product_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        _require_category(db, changes["category_id"])

    for key, value in changes.items():
        setattr(product, key, value)

    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int):
    """Delete a product that has never been sold or returned."""
    from app.modules.sales.models import SaleItem, ReturnItem

    product = get_product_by_id(db, product_id)
    sold = db.query(SaleItem).filter(SaleItem.product_id == product_id).count()
    returned = db.query(ReturnItem).filter(ReturnItem.product_id == product_id).count()
    if sold or returned:
        raise InvalidStateError(
            "Product has sales or return history. Set its quantity to 0 instead."
        )

    db.delete(product)
    db.commit()
    logger.info(f"Deleted product {product_id}")
    return {"message": "Product deleted"}


def lock_products(db: Session, product_ids) -> dict:
    """
    Load and row-lock products in ascending id order. Raises NotFoundError
    naming every missing id before anything is written.
    """
    ids = sorted(set(product_ids))
    products = (
        db.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id.asc())
        .with_for_update(of=Product)
        .all()
    )
    found = {product.id: product for product in products}
    missing = [product_id for product_id in ids if product_id not in found]
    if missing:
        raise NotFoundError(f"Product(s) not found: {', '.join(str(m) for m in missing)}")
    return found
