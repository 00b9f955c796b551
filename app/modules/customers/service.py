from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import Optional, Dict, Any
import logging

from app.common.exceptions import NotFoundError, InvalidStateError
from app.modules.customers.models import Customer
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)


class CustomerService:
    """Customers and the find-or-create lookup used by sales"""

    def __init__(self, db: Session):
        self.db = db

    def find_or_create(self, name: Optional[str], phone: Optional[str] = None, email: Optional[str] = None) -> Optional[Customer]:
        """
        Exact match on (name, phone), or on name alone when no phone is
        given. Creates the customer when nothing matches. Does not commit.
        A blank name means a walk-in sale and returns None.
        """
        name = (name or "").strip()
        if not name:
            return None
        phone = (phone or "").strip() or None

        query = self.db.query(Customer).filter(Customer.name == name)
        if phone:
            query = query.filter(Customer.phone == phone)
        customer = query.order_by(Customer.id.asc()).first()

        if customer is None:
            customer = Customer(name=name, phone=phone, email=email or None)
            self.db.add(customer)
            self.db.flush()
            logger.info(f"Created customer {customer.id} '{name}' from a sale")
        return customer

    def create_customer(self, data: CustomerCreate) -> Customer:
        try:
            customer = Customer(**data.model_dump())
            self.db.add(customer)
            self.db.commit()
            self.db.refresh(customer)
            return customer
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating customer: {str(e)}"
            )

    def get_customers(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        query = self.db.query(Customer)
        if search:
            query = query.filter(or_(
                Customer.name.ilike(f"%{search}%"),
                Customer.phone == search,
                Customer.email.ilike(f"%{search}%")
            ))
        total = query.count()
        customers = query.order_by(Customer.name.asc()).offset(offset).limit(limit).all()
        return {"items": customers, "total": total, "limit": limit, "offset": offset}

    def get_customer_by_id(self, customer_id: int) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def update_customer(self, customer_id: int, data: CustomerUpdate) -> Customer:
        customer = self.get_customer_by_id(customer_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(customer, field, value)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def delete_customer(self, customer_id: int) -> Dict[str, str]:
        customer = self.get_customer_by_id(customer_id)
        if customer.sales:
            raise InvalidStateError(f"Customer has {len(customer.sales)} sale(s) and cannot be deleted")
        self.db.delete(customer)
        self.db.commit()
        return {"message": "Customer deleted"}
