from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from typing import Dict, Any
import logging

from app.common.exceptions import NotFoundError, InvalidStateError
from app.modules.categories.models import Category
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


class CategoryService:
    """Product categories"""

    def __init__(self, db: Session):
        self.db = db

    def create_category(self, data: CategoryCreate) -> Category:
        try:
            existing = self.db.query(Category).filter(Category.name == data.name).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"A category named '{data.name}' already exists"
                )

            category = Category(name=data.name, description=data.description)
            self.db.add(category)
            self.db.commit()
            self.db.refresh(category)
            return category

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating category: {str(e)}"
            )

    def get_all_categories(self, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """Paginated list, alphabetical, with product counts."""
        query = self.db.query(Category).order_by(Category.name.asc())
        total = query.count()
        categories = query.offset(offset).limit(limit).all()
        for category in categories:
            category.product_count = len(category.products)

        return {
            "categories": categories,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_category_by_id(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        category.product_count = len(category.products)
        return category

    def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        try:
            category = self.get_category_by_id(category_id)

            if data.name and data.name != category.name:
                existing = self.db.query(Category).filter(
                    Category.name == data.name,
                    Category.id != category_id
                ).first()
                if existing:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Another category is already named '{data.name}'"
                    )

            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(category, field, value)

            self.db.commit()
            self.db.refresh(category)
            category.product_count = len(category.products)
            return category

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating category: {str(e)}"
            )

    def delete_category(self, category_id: int) -> Dict[str, str]:
        try:
            category = self.get_category_by_id(category_id)
            if category.products:
                raise InvalidStateError(
                    f"Category '{category.name}' still has {len(category.products)} product(s)"
                )

            self.db.delete(category)
            self.db.commit()
            logger.info(f"Deleted category {category_id}")
            return {"message": "Category deleted"}

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting category: {str(e)}"
            )
