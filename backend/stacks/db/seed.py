"""Database seeding script for development.

Populates the database with a demo consumer and a few merchants with deals.
Run with: python -m stacks.db.seed
"""

import asyncio

from sqlalchemy import select

from stacks.config import Settings
from stacks.context import AppContext
from stacks.models import Base, Deal, Merchant, User

DEMO_PASSWORD = "stacks-demo-password"

MERCHANTS = [
    {
        "email": "owner@corner-bakery.test",
        "name": "Corner Bakery",
        "category": "food",
        "address": "12 Mill Lane",
        "phone": "555-0101",
        "lat": 51.5072,
        "lng": -0.1276,
        "deals": [
            ("Two for one croissants", "Buy one croissant, get a second free.", "4006381333931"),
            ("Free coffee with any loaf", "Any sourdough loaf comes with a filter coffee.", None),
        ],
    },
    {
        "email": "owner@ride-on.test",
        "name": "Ride On Cycles",
        "category": "sports",
        "address": "4 Wheel Street",
        "phone": "555-0102",
        "lat": 51.5155,
        "lng": -0.0922,
        "deals": [
            ("20% off servicing", "Full service at a fifth off the usual price.", None),
        ],
    },
    {
        "email": "owner@page-turner.test",
        "name": "Page Turner Books",
        "category": "retail",
        "address": "88 High Street",
        "phone": None,
        "lat": 51.4975,
        "lng": -0.1357,
        "deals": [
            ("Second-hand paperbacks 3 for 5", "Mix and match from the second-hand shelves.", "9780140328721"),
        ],
    },
]


async def seed_consumer(context: AppContext) -> None:
    """Seed a demo consumer account."""
    async with context.session_factory() as session:
        result = await session.execute(select(User).where(User.email == "demo@stacks.test"))
        if result.scalar_one_or_none():
            print("Demo consumer already seeded. Skipping...")
            return

        session.add(
            User(
                email="demo@stacks.test",
                hashed_password=context.credentials.hash_password(DEMO_PASSWORD),
                first_name="Demo",
                last_name="User",
            )
        )
        await session.commit()
        print("✓ Seeded demo consumer")


async def seed_merchants(context: AppContext) -> None:
    """Seed merchants, their owning users and their deals."""
    async with context.session_factory() as session:
        result = await session.execute(select(Merchant).limit(1))
        if result.scalar_one_or_none():
            print("Merchants already seeded. Skipping...")
            return

        deal_count = 0
        for data in MERCHANTS:
            owner = User(
                email=data["email"],
                hashed_password=context.credentials.hash_password(DEMO_PASSWORD),
                first_name="",
                last_name="",
                is_merchant=True,
            )
            session.add(owner)
            await session.flush()  # Get owner ID

            merchant = Merchant(
                user_id=owner.id,
                name=data["name"],
                category=data["category"],
                address=data["address"],
                phone=data["phone"],
                lat=data["lat"],
                lng=data["lng"],
            )
            session.add(merchant)
            await session.flush()

            for name, description, barcode in data["deals"]:
                session.add(
                    Deal(
                        merchant_id=merchant.id,
                        name=name,
                        description=description,
                        barcode=barcode,
                    )
                )
                deal_count += 1

        await session.commit()
        print(f"✓ Seeded {len(MERCHANTS)} merchants and {deal_count} deals")


async def main():
    """Run all seeding functions."""
    print("Starting database seeding...")

    context = AppContext.from_settings(Settings())
    try:
        async with context.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await seed_consumer(context)
        await seed_merchants(context)
        print("\n✅ Database seeding completed successfully!")
    except Exception as e:
        print(f"\n❌ Error during seeding: {e}")
        raise
    finally:
        await context.close()


if __name__ == "__main__":
    asyncio.run(main())
