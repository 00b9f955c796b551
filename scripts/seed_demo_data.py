"""
Seed script: populate a development database with demo data.

What it creates:
- Admin user with the given credentials.
- Categories and products with stock and profit rates.
- Sales (some paid in full, some partially) with follow-up payments.
- Supplier purchases with partial product and transport payments.
- A handful of expenses.

Every sale and purchase goes through the services, so the ledgers and
stored balances are consistent from the start.

    python scripts/seed_demo_data.py --email admin@shop.local --password 'ChangeMe!2025' --sales 60

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from app.database.database import SessionLocal, Base, engine
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import hash_password
from app.modules.categories.models import Category
from app.modules.products.models import Product
from app.modules.customers.models import Customer  # noqa: F401  registers the table
from app.modules.expenses.models import Expense
from app.modules.expenses.schemas import ExpenseCreate
from app.modules.expenses.service import ExpenseService
from app.modules.sales.schemas import SaleCreate, SaleItemCreate, SaleCustomerIn, SalePaymentCreate
from app.modules.sales.service import SaleService, SalePaymentService
from app.modules.ograi.schemas import PurchaseCreate
from app.modules.ograi.service import OgraiTransactionService
from app.modules.ledger.projector import SaleStatus

CATALOG = {
    "Beverages": [("Mineral Water 600ml", "1.20"), ("Orange Juice 1L", "3.50"), ("Cola 1.5L", "2.80")],
    "Grocery": [("Rice 1kg", "2.10"), ("Sugar 1kg", "1.90"), ("Cooking Oil 1L", "4.60")],
    "Cleaning": [("Dish Soap 500ml", "2.40"), ("Laundry Powder 1kg", "5.30")],
    "Snacks": [("Potato Chips 150g", "1.75"), ("Chocolate Bar", "1.10")],
}

CUSTOMERS = [
    ("Ahmed Khan", "0300-1112233"),
    ("Sara Malik", "0301-4445566"),
    ("Bilal Shah", None),
    ("Ayesha Noor", "0333-7778899"),
]

SUPPLIERS = [("Metro Wholesale", "0421-111222"), ("City Traders", "0422-333444")]


def pick(seq):
    return random.choice(seq)


def create_admin(db, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(email=email, password=hash_password(password), full_name="Demo Admin", role=UserRole.ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_catalog(db):
    products = []
    for category_name, items in CATALOG.items():
        category = db.query(Category).filter(Category.name == category_name).first()
        if not category:
            category = Category(name=category_name, description=f"{category_name} products")
            db.add(category)
            db.flush()
        for name, price in items:
            product = db.query(Product).filter(Product.name == name).first()
            if not product:
                product = Product(
                    name=name,
                    category_id=category.id,
                    price=Decimal(price),
                    quantity=random.randint(200, 500),
                    min_stock=10,
                    units_per_box=random.choice([6, 10, 12, 24]),
                    profit_per_unit=Decimal("0.25"),
                    profit_per_box=Decimal("2.00"),
                )
                db.add(product)
            products.append(product)
    db.commit()
    return products


def create_sales(db, products, sales_count: int, user_id: int) -> int:
    sale_service = SaleService(db)
    payment_service = SalePaymentService(db)
    created = 0
    for i in range(sales_count):
        items = [
            SaleItemCreate(product_id=product.id, quantity=random.randint(1, 15))
            for product in random.sample(products, k=random.randint(1, 3))
        ]
        customer = None
        if random.random() < 0.7:
            name, phone = pick(CUSTOMERS)
            customer = SaleCustomerIn(name=name, phone=phone)

        partial = random.random() < 0.3
        sale = sale_service.create_sale(SaleCreate(
            items=items,
            customer=customer,
            payment_method=pick(["cash", "card", "transfer"]),
            amount_paid=Decimal("0") if partial else None,
            due_date=date.today() + timedelta(days=14) if partial else None,
        ), user_id)

        if partial and random.random() < 0.5 and sale.payment_status != SaleStatus.PAID:
            half = (sale.remaining_amount / 2).quantize(Decimal("0.01"))
            if half > 0:
                payment_service.record_payment(sale.id, SalePaymentCreate(amount=half), user_id)
        created += 1
        if created % 20 == 0:
            print(f"  Sales created: {created}")
    return created


def create_purchases(db, purchases_count: int, user_id: int) -> int:
    service = OgraiTransactionService(db)
    for _ in range(purchases_count):
        supplier_name, contact = pick(SUPPLIERS)
        quantity = Decimal(random.randint(10, 100))
        price = Decimal(random.randint(50, 400)) / 100
        total = quantity * price
        service.create_purchase(PurchaseCreate(
            supplier_name=supplier_name,
            contact_number=contact,
            product_name=pick([name for items in CATALOG.values() for name, _ in items]),
            quantity=quantity,
            price_per_unit=price,
            amount_paid=(total * Decimal(random.choice(["0", "0.5", "1"]))).quantize(Decimal("0.01")),
            transport_fee=Decimal("15.00"),
            transport_paid=Decimal(random.choice(["0", "15.00"])),
        ), user_id)
    return purchases_count


def create_expenses(db, user_id: int) -> int:
    service = ExpenseService(db)
    if db.query(Expense).count():
        return 0
    today = date.today()
    rows = [
        ("rent", "450.00", today.replace(day=1)),
        ("utilities", "85.40", today - timedelta(days=5)),
        ("salaries", "1200.00", today - timedelta(days=2)),
        ("transport", "35.00", today),
    ]
    for category, amount, day in rows:
        service.create_expense(ExpenseCreate(category=category, amount=Decimal(amount), date=day), user_id)
    return len(rows)


def main():
    parser = argparse.ArgumentParser(description="Seed demo shop data")
    parser.add_argument("--email", default="admin@shop.local")
    parser.add_argument("--password", default="ChangeMe!2025")
    parser.add_argument("--sales", type=int, default=60)
    parser.add_argument("--purchases", type=int, default=12)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user = create_admin(db, args.email, args.password)

        print("Creating catalog...")
        products = create_catalog(db)
        print(f"Products: {len(products)}")

        print("Creating sales...")
        sales_created = create_sales(db, products, args.sales, user.id)
        print(f"Sales created: {sales_created}")

        print("Creating supplier purchases...")
        purchases_created = create_purchases(db, args.purchases, user.id)
        print(f"Purchases created: {purchases_created}")

        print(f"Expenses created: {create_expenses(db, user.id)}")

        print("\nSeed completed.")
        print("Login credentials:")
        print(f"  Email:    {args.email}")
        print(f"  Password: {args.password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
