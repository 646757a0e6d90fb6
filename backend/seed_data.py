"""Seed database with roles, a platform admin and a demo business."""
from datetime import date, timedelta

from rma.auth import BUSINESS_ADMIN, ROLE_NAMES, ROLE_PERMISSIONS, SUPER_ADMIN, USER, get_password_hash
from rma.config import settings
from rma.database import Database
from rma.models import Business, Role, Sheet, User
from rma.services.sheet_rules import derive_sheet_fields


def seed_roles(db):
    """Roles are upserted so their stable ids always match the code."""
    for role_id, name in ROLE_NAMES.items():
        role = db.query(Role).filter(Role.id == role_id).first()
        if role is None:
            role = Role(id=role_id, name=name)
            db.add(role)
        role.name = name
        role.permissions = list(ROLE_PERMISSIONS[role_id])
    db.flush()


def seed():
    """Seed database with demo data."""
    database = Database(settings.DATABASE_URL).open()
    db = database.session()

    try:
        seed_roles(db)

        if db.query(User).filter(User.username == "admin").first():
            db.commit()
            print("Roles refreshed; demo data already present.")
            return

        db.add(User(
            username="admin",
            password_hash=get_password_hash("admin123"),
            role_id=SUPER_ADMIN,
            business_id=None,
        ))

        business = Business(
            name="Demo Refurb Ltd",
            currency_code="GBP",
            currency_symbol="£",
            street1="1 Demo Street",
            city="London",
            postal_code="EC1A 1BB",
            country="GB",
        )
        db.add(business)
        db.flush()

        manager = User(
            username="demo_admin",
            password_hash=get_password_hash("demoadmin123"),
            role_id=BUSINESS_ADMIN,
            business_id=business.id,
        )
        db.add(manager)
        db.add(User(
            username="demo_user",
            password_hash=get_password_hash("demouser123"),
            role_id=USER,
            business_id=business.id,
        ))
        db.flush()
        business.owner_id = manager.id

        today = date.today()
        sheets_data = [
            {
                "order_no": "12345678",
                "order_date": today - timedelta(days=26),
                "date_received": today,
                "customer_name": "Jane Doe",
                "return_type": "Refund",
                "resolution": "Back in stock",
                "refund_amount": 199.99,
                "status": "Resolved",
            },
            {
                "order_no": "206-1234567-1234567",
                "order_date": today - timedelta(days=45),
                "date_received": today - timedelta(days=3),
                "customer_name": "John Smith",
                "return_type": "Replacement",
                "resolution": "Replacement sent",
                "refund_amount": 0,
                "status": "Pending",
            },
        ]
        for sheet_data in sheets_data:
            derived = derive_sheet_fields(sheet_data["order_no"], sheet_data["date_received"], sheet_data["order_date"])
            db.add(Sheet(business_id=business.id, locked="No", oow_case="No", **sheet_data, **derived))

        db.commit()
        print("✅ Database seeded successfully!")
        print("\nDemo users:")
        print("  admin/admin123 (SuperAdmin)")
        print("  demo_admin/demoadmin123 (BusinessAdmin)")
        print("  demo_user/demouser123 (User)")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    seed()
