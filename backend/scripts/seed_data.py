"""
Seed script to generate synthetic invoices for demo purposes
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session
from invoicer.database import SessionLocal, engine, Base
from invoicer.models.invoice import Invoice
from invoicer.schemas.enums import DiscountType, InvoiceStatus, PaymentTerms
from invoicer.services.invoice_engine import Party, build_invoice
from invoicer.services.invoice_repository import InvoiceRepository
from invoicer.utils.money import CURRENCIES
from decimal import Decimal
from datetime import date, timedelta
from faker import Faker

fake = Faker()
Faker.seed(2024)

BUSINESS = Party(
    name="Northwind Studio LLC",
    address="500 Market Street\nSan Francisco, CA 94105",
    phone="+1 415 555 0100",
    email="billing@northwind.example",
    tax_id="94-1234567",
)


def fake_client() -> Party:
    return Party(
        name=fake.company(),
        address=fake.address(),
        phone=fake.phone_number(),
        email=fake.company_email(),
        tax_id=fake.bothify(text='##-#######') if fake.boolean() else None,
    )


def fake_items(count: int) -> list:
    items = []
    for _ in range(count):
        discount_type = fake.random_element(elements=(DiscountType.PERCENTAGE, DiscountType.AMOUNT))
        if discount_type == DiscountType.PERCENTAGE:
            discount_value = Decimal(fake.random_element(elements=(0, 0, 5, 10, 15)))
        else:
            discount_value = Decimal(fake.random_int(min=0, max=40))
        items.append({
            "description": fake.catch_phrase(),
            "quantity": Decimal(fake.random_int(min=1, max=12)),
            "rate": Decimal(fake.random_int(min=2500, max=50000)) / 100,
            "discount_type": discount_type,
            "discount_value": discount_value,
        })
    return items


def create_invoices(db: Session, count: int = 12) -> list[Invoice]:
    """Create synthetic invoices priced through the invoice engine"""
    repository = InvoiceRepository(db)
    invoices = []
    for i in range(count):
        issue_date = date.today() - timedelta(days=fake.random_int(min=0, max=60))
        priced = build_invoice(
            invoice_number=f"INV-{issue_date.year}-{str(i + 1).zfill(4)}",
            payment_terms=fake.random_element(elements=list(PaymentTerms)),
            issue_date=issue_date,
            items=fake_items(fake.random_int(min=1, max=8)),
            currency=fake.random_element(elements=list(CURRENCIES)),
            tax_rate=fake.random_element(elements=(0, 5, 8.25, 10, 20)),
            shipping_cost=fake.random_element(elements=(0, 0, 15, 25.5)),
            business=BUSINESS,
            client=fake_client(),
            status=InvoiceStatus.FINALIZED if i % 3 == 0 else InvoiceStatus.DRAFT,
        )
        invoices.append(repository.create(priced))

    # One long invoice that spans several PDF pages
    priced = build_invoice(
        invoice_number=f"INV-{date.today().year}-LONG",
        payment_terms=PaymentTerms.NET30,
        issue_date=date.today(),
        items=fake_items(60),
        currency="USD",
        tax_rate=8.25,
        shipping_cost=40,
        business=BUSINESS,
        client=fake_client(),
    )
    invoices.append(repository.create(priced))
    return invoices


def main():
    """Main seeding function"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating invoices...")
        invoices = create_invoices(db)
        print(f"Created {len(invoices)} invoices")

        print("\nSeeding complete!")
        print("Summary:")
        print(f"  - Invoices: {len(invoices)}")
        print(f"    - Finalized: {sum(1 for inv in invoices if inv.status == 'finalized')}")
        print(f"    - Drafts: {sum(1 for inv in invoices if inv.status == 'draft')}")

    except Exception as e:
        print(f"Error during seeding: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
