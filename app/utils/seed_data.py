"""
Seed database with a demo hotel group: properties, users, an internal
inspection template, a guest feedback template and a guest link.

Usage:
    python -m app.utils.seed_data
"""
import asyncio
import secrets
import sys
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.session import AsyncSessionLocal
from app.models import (
    GuestSurveyLink,
    Organization,
    Property,
    PropertyAssignment,
    SurveyCategory,
    SurveyQuestion,
    SurveySubcategory,
    SurveyTemplate,
    SurveyType,
    User,
    UserRole,
)
from app.services.auth_service import auth_service


DEMO_ORGANIZATION = {"name": "Azure Villas", "slug": "azure-villas"}

DEMO_PROPERTIES = [
    {"name": "Villa Amara", "slug": "villa-amara", "code": "AMA", "location": "Seminyak"},
    {"name": "Villa Borea", "slug": "villa-borea", "code": "BOR", "location": "Canggu"},
    {"name": "Villa Cielo", "slug": "villa-cielo", "code": "CIE", "location": "Uluwatu"},
]

DEMO_USERS = [
    {"email": "admin@azurevillas.example.com", "full_name": "Ava Admin", "role": UserRole.ADMIN},
    {"email": "pm@azurevillas.example.com", "full_name": "Paul Manager", "role": UserRole.PROPERTY_MANAGER},
    {"email": "staff@azurevillas.example.com", "full_name": "Sita Staff", "role": UserRole.STAFF},
]

# category name, weight, {subcategory name: [(question, scale_min, scale_max)]}
INTERNAL_TEMPLATE = [
    ("Housekeeping", 2.0, {
        "Bedroom": [
            ("Bed linen is clean and pressed", 1, 10),
            ("Floors and surfaces are dust free", 1, 10),
        ],
        "Bathroom": [
            ("Towels are fresh and folded", 1, 10),
            ("Amenities are fully stocked", 1, 10),
        ],
    }),
    ("Maintenance", 1.5, {
        "": [
            ("Air conditioning works quietly", 1, 10),
            ("Pool water is clear", 1, 10),
        ],
    }),
    ("Guest Service", 1.0, {
        "": [
            ("Welcome drink served on arrival", 1, 5),
        ],
    }),
]

GUEST_TEMPLATE = [
    ("Your Stay", 1.0, {
        "": [
            ("How clean was your villa?", 1, 10),
            ("How friendly was our team?", 1, 10),
            ("How likely are you to return?", 1, 5),
        ],
    }),
]


def build_template(organization: Organization, creator: User, name: str, survey_type: SurveyType, structure) -> SurveyTemplate:
    categories = []
    for cat_order, (cat_name, weight, subcategories) in enumerate(structure):
        subs = []
        for sub_order, (sub_name, questions) in enumerate(subcategories.items()):
            subs.append(
                SurveySubcategory(
                    name=sub_name,
                    sort_order=sub_order,
                    questions=[
                        SurveyQuestion(text=text, scale_min=low, scale_max=high, sort_order=q_order)
                        for q_order, (text, low, high) in enumerate(questions)
                    ],
                )
            )
        categories.append(SurveyCategory(name=cat_name, weight=weight, sort_order=cat_order, subcategories=subs))

    return SurveyTemplate(
        organization_id=organization.id,
        name=name,
        survey_type=survey_type,
        version=1,
        is_active=True,
        created_by=creator.id,
        categories=categories,
    )


async def seed_organization(db: AsyncSession) -> Organization:
    """Create the demo organization"""
    print("\n🌱 Seeding organization...")

    result = await db.execute(select(Organization).where(Organization.slug == DEMO_ORGANIZATION["slug"]))
    organization = result.scalar_one_or_none()
    if organization:
        print(f"  ⏭️  Organization '{organization.name}' already exists")
        return organization

    organization = Organization(is_active=True, **DEMO_ORGANIZATION)
    db.add(organization)
    await db.commit()
    print(f"  ✅ Created organization: {organization.name}")
    return organization


async def seed_users(db: AsyncSession, organization: Organization) -> dict:
    """Create one user per role"""
    print("\n🌱 Seeding users...")

    users = {}
    for user_data in DEMO_USERS:
        result = await db.execute(select(User).where(User.email == user_data["email"]))
        user = result.scalar_one_or_none()
        if user:
            print(f"  ⏭️  User '{user.email}' already exists")
        else:
            user = User(organization_id=organization.id, is_active=True, **user_data)
            db.add(user)
            await db.flush()
            print(f"  ✅ Created {user.role.value}: {user.email}")
        users[user.role] = user

    await db.commit()
    return users


async def seed_properties(db: AsyncSession, organization: Organization, users: dict) -> list:
    """Create properties; the demo manager and staff are assigned to all of them"""
    print("\n🌱 Seeding properties...")

    manager = users[UserRole.PROPERTY_MANAGER]
    staff = users[UserRole.STAFF]
    properties = []
    for prop_data in DEMO_PROPERTIES:
        result = await db.execute(select(Property).where(Property.code == prop_data["code"]))
        prop = result.scalar_one_or_none()
        if prop:
            print(f"  ⏭️  Property '{prop.code}' already exists")
        else:
            prop = Property(
                organization_id=organization.id,
                primary_pm_id=manager.id,
                is_active=True,
                assignments=[
                    PropertyAssignment(user_id=manager.id),
                    PropertyAssignment(user_id=staff.id),
                ],
                **prop_data,
            )
            db.add(prop)
            await db.flush()
            print(f"  ✅ Created property: {prop.name} ({prop.code})")
        properties.append(prop)

    await db.commit()
    return properties


async def seed_templates(db: AsyncSession, organization: Organization, admin: User, properties: list) -> list:
    """Create the inspection and guest templates plus one guest link per property"""
    print("\n🌱 Seeding survey templates...")

    result = await db.execute(select(SurveyTemplate).where(SurveyTemplate.organization_id == organization.id))
    if result.scalars().first():
        print("  ⏭️  Templates already exist")
        return []

    internal = build_template(organization, admin, "Villa Inspection", SurveyType.INTERNAL, INTERNAL_TEMPLATE)
    guest = build_template(organization, admin, "Guest Feedback", SurveyType.GUEST, GUEST_TEMPLATE)
    db.add_all([internal, guest])
    await db.flush()
    print(f"  ✅ Created internal template: {internal.name}")
    print(f"  ✅ Created guest template: {guest.name}")

    links = [
        GuestSurveyLink(
            token=secrets.token_urlsafe(24),
            template_id=guest.id,
            property_id=prop.id,
            created_by=admin.id,
            is_active=True,
        )
        for prop in properties
    ]
    db.add_all(links)
    await db.commit()
    return links


async def main():
    """Main seed function"""
    print("\n" + "=" * 60)
    print("🌱 SEEDING DATABASE: Hospitality QA Portal")
    print("=" * 60)

    async with AsyncSessionLocal() as db:
        try:
            organization = await seed_organization(db)
            users = await seed_users(db, organization)
            properties = await seed_properties(db, organization, users)
            links = await seed_templates(db, organization, users[UserRole.ADMIN], properties)

            print("\n" + "=" * 60)
            print("✅ DATABASE SEEDING COMPLETED!")
            print("=" * 60)
            print("\n🔑 Access tokens:")
            for role, user in users.items():
                print(f"  • {role.value}: {auth_service.token_for_user(user)}")
            if links:
                print("\n🔗 Guest survey tokens:")
                for link, prop in zip(links, properties):
                    print(f"  • {prop.code}: {link.token}")
            print("\n")

        except Exception as e:
            print(f"\n❌ ERROR: {e}")
            await db.rollback()
            sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
