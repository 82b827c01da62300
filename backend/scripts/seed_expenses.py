# backend/scripts/seed_expenses.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4
import random

from expense_api.db import SessionLocal
from expense_api.models import ExpenseCategory, Expense

# ----------------------------
# Tunables
# ----------------------------
RANDOM_SEED = 42
DAYS_BACK = 120
MIN_EXPENSES_PER_COMPANY = 150
MAX_EXPENSES_PER_COMPANY = 400
BATCH_SIZE = 50

COMPANY_IDS = [
    UUID("97bc4deb-d93d-4e86-9d35-8018bba6056a"),
    uuid4(),
    uuid4(),
    uuid4(),
    uuid4(),
]
USER_IDS = [uuid4() for _ in range(20)]

# (name, description, base limit)
EXPENSE_CATEGORIES = [
    ("Travel & Transportation", "Business travel, flights, car rentals, taxi, uber", 5000),
    ("Office Supplies", "Stationery, equipment, software licenses", 2000),
    ("Marketing & Advertising", "Digital ads, print materials, promotional items", 10000),
    ("Meals & Entertainment", "Client dinners, team lunches, conferences", 3000),
    ("Professional Services", "Legal, accounting, consulting fees", 8000),
    ("Technology & Software", "Hardware, software subscriptions, cloud services", 15000),
    ("Training & Development", "Courses, workshops, certification programs", 4000),
    ("Utilities", "Internet, phone, electricity, water", 1500),
    ("Insurance", "Business insurance, liability coverage", 6000),
    ("Maintenance & Repairs", "Equipment repairs, facility maintenance", 3500),
    ("Legal & Compliance", "Legal fees, regulatory compliance costs", 7000),
    ("Research & Development", "R&D expenses, prototype development", 12000),
    ("Rent & Facilities", "Office rent, facility management", 8000),
    ("Communication", "Phone, internet, communication tools", 2500),
    ("Equipment & Tools", "Machinery, tools, equipment purchases", 9000),
]

# Spend profile multipliers by category keyword
AMOUNT_MULTIPLIERS = [
    (("Technology", "Equipment"), 1.8),
    (("Travel",), 1.3),
    (("Office Supplies", "Utilities"), 0.4),
    (("Marketing", "R&D"), 1.5),
]

def money(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))

def create_categories(db, company_id: UUID):
    existing = {
        c.name for c in db.query(ExpenseCategory).filter(
            ExpenseCategory.company_id == company_id,
            ExpenseCategory.deleted_at.is_(None)
        ).all()
    }
    templates = random.sample(EXPENSE_CATEGORIES, k=random.randint(8, 12))
    for name, description, base_limit in templates:
        if name in existing:
            continue
        db.add(ExpenseCategory(
            company_id=company_id,
            name=name,
            description=description,
            limit=money(base_limit * random.uniform(0.8, 1.2)),
        ))
    db.commit()
    return db.query(ExpenseCategory).filter(
        ExpenseCategory.company_id == company_id,
        ExpenseCategory.deleted_at.is_(None)
    ).all()

def random_amount(category: ExpenseCategory) -> Decimal:
    max_amount = float(category.limit) * 0.4 if category.limit is not None else 1000.0
    for keywords, multiplier in AMOUNT_MULTIPLIERS:
        if any(k in category.name for k in keywords):
            max_amount *= multiplier
            break
    amount = random.uniform(0, max_amount) + 15  # minimum $15
    if category.limit is not None:
        amount = min(amount, float(category.limit))
    return money(amount)

def create_expenses(db, company_id: UUID, categories) -> int:
    now = datetime.now(timezone.utc)
    count = random.randint(MIN_EXPENSES_PER_COMPANY, MAX_EXPENSES_PER_COMPANY)
    for i in range(count):
        category = random.choice(categories)
        db.add(Expense(
            company_id=company_id,
            category_id=category.id,
            user_id=random.choice(USER_IDS),
            amount=random_amount(category),
            date_produced=now - timedelta(days=random.randint(0, DAYS_BACK - 1)),
        ))
        if (i + 1) % BATCH_SIZE == 0:
            db.flush()
    db.commit()
    return count

def main():
    random.seed(RANDOM_SEED)
    db = SessionLocal()
    try:
        total_categories = 0
        total_expenses = 0
        for company_id in COMPANY_IDS:
            categories = create_categories(db, company_id)
            total_categories += len(categories)
            total_expenses += create_expenses(db, company_id, categories)
            print(f"Seeded company {company_id}: {len(categories)} categories")

        print(f"✅ Seed complete: {total_categories} categories, {total_expenses} expenses.")
    finally:
        db.close()

if __name__ == "__main__":
    main()
