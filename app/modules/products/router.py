from fastapi import APIRouter, status, Depends, Query
from typing import Optional
from sqlalchemy.orm import Session
from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import AuthDependencies, require_admin
from app.modules.auth.schemas import AuthContext
from app.modules.products import service
from app.modules.products.schemas import ProductCreate, ProductUpdate, ProductOut, ProductList

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return service.create_product(db, data)


@product_router.get("/", response_model=ProductList)
def list_products(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    search: Optional[str] = Query(None, description="Name or barcode"),
    category_id: Optional[int] = Query(None),
    stock_status: Optional[str] = Query(None, description="Out of Stock, Low Stock or In Stock"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    return service.get_all_products(
        db,
        search=search,
        category_id=category_id,
        stock_status=stock_status,
        limit=limit,
        offset=offset
    )


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return service.get_product_by_id(db, product_id)


@product_router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return service.update_product(db, product_id, data)


@product_router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    return service.delete_product(db, product_id)
