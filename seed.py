from loguru import logger
from sqlmodel import Session, select
from app.core.config import settings
from app.db.core import engine
from app.db.schema import Organization, OrgType, User, UserRole
from app.services.password import get_password_hash


# 1. One default organization per type so registration always has a target
DEFAULT_ORGANIZATIONS = {
    OrgType.FARMER: (
        "Default Farmer Organization",
        "Default organization for farmers collecting medicinal herbs"
    ),
    OrgType.MANUFACTURER: (
        "Default Manufacturer Organization",
        "Default organization for manufacturers processing medicinal herbs"
    ),
    OrgType.LABS: (
        "Default Laboratory Organization",
        "Default organization for laboratories testing medicinal herbs"
    ),
    OrgType.DISTRIBUTOR: (
        "Default Distributor Organization",
        "Default organization for distributors handling medicinal herb products"
    ),
    OrgType.ADMIN: (
        "Default Admin Organization",
        "Default organization for system administrators"
    ),
}


def seed_organizations(session: Session) -> dict[OrgType, Organization]:
    """Creates a default organization for every type that has none. Returns type -> Organization."""
    logger.info("--- Seeding Organizations ---")
    org_map = {}

    for org_type, (name, description) in DEFAULT_ORGANIZATIONS.items():
        org = session.exec(
            select(Organization).where(Organization.type == org_type)).first()
        if not org:
            org = Organization(name=name, type=org_type, description=description, is_active=True)
            session.add(org)
            session.flush()
            logger.info(f"Created Organization: {name}")
        else:
            logger.info(f"Existing {org_type.value} Organization: {org.name}")

        org_map[org_type] = org

    return org_map


def seed_super_admin(session: Session, admin_org: Organization):
    """Creates the super administrator from settings if no super admin exists yet."""
    logger.info("--- Seeding Super Admin ---")

    existing = session.exec(
        select(User).where(User.role == UserRole.SUPER_ADMIN)).first()
    if existing:
        logger.info(f"Existing Super Admin: {existing.email}")
        return

    if not settings.super_admin_password:
        logger.warning("SUPER_ADMIN_PASSWORD not set; skipping super admin creation")
        return

    admin = User(
        organization_id=admin_org.id,
        email=settings.super_admin_email.lower(),
        hashed_password=get_password_hash(settings.super_admin_password),
        first_name="Super",
        last_name="Admin",
        role=UserRole.SUPER_ADMIN,
        org_type=OrgType.ADMIN,
        is_active=True,
        is_verified=True,
    )
    session.add(admin)
    logger.info(f"Created Super Admin: {admin.email}")


def main():
    # Ensure tables exist (if not using Alembic)
    # SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        try:
            org_map = seed_organizations(session)
            seed_super_admin(session, org_map[OrgType.ADMIN])

            session.commit()
            logger.success("Database seeded successfully!")

        except Exception as e:
            session.rollback()
            logger.error(f"Seeding failed: {e}")
            raise e


if __name__ == "__main__":
    main()
