import logging
import os

from sqlalchemy.orm import Session

from .auth import hash_password
from .db import SessionLocal
from .models import Organization, Unit, User
from .nodes.service import provision_virtual_nodes

logger = logging.getLogger(__name__)

DEFAULT_UNITS = [
    ("PCS", "Piece", "pcs"),
    ("KG", "Kilogram", "kg"),
    ("M", "Meter", "m"),
    ("L", "Liter", "l"),
]


def _truncate_to_bcrypt_limit(password: str) -> str:
    """Truncate to bcrypt's 72-byte limit to avoid backend ValueError."""
    encoded = password.encode("utf-8")
    if len(encoded) <= 72:
        return password

    truncated = encoded[:72]
    while True:
        try:
            return truncated.decode("utf-8")
        except UnicodeDecodeError:
            truncated = truncated[:-1]


def _seed_units(db: Session, organization_id: int) -> None:
    existing = {
        code
        for (code,) in db.query(Unit.code).filter(Unit.organization_id == organization_id).all()
    }
    for code, name, symbol in DEFAULT_UNITS:
        if code not in existing:
            db.add(Unit(organization_id=organization_id, code=code, name=name, symbol=symbol, active=True))
    db.flush()


def bootstrap_organization(db: Session, name: str, code: str | None = None) -> Organization:
    """Create (or reuse) an organization with its virtual nodes and default units."""
    organization = None
    if code:
        organization = db.query(Organization).filter(Organization.code == code).first()
    if not organization:
        organization = Organization(name=name, code=code)
        db.add(organization)
        db.flush()
        logger.info("Created organization %s (%s)", organization.id, name)

    provision_virtual_nodes(db, organization.id)
    _seed_units(db, organization.id)
    return organization


def _get_or_create_admin(db: Session, organization_id: int, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        user.organization_id = user.organization_id or organization_id
        user.is_admin = True
        user.is_active = True
        return user

    user = User(
        organization_id=organization_id,
        email=email,
        full_name="System Admin",
        # passlib+bcrypt enforces bcrypt's 72-byte input limit.
        password_hash=hash_password(_truncate_to_bcrypt_limit(password)),
        is_admin=True,
    )
    db.add(user)
    db.flush()
    return user


def run_seed():
    db: Session = SessionLocal()
    try:
        organization = bootstrap_organization(db, "Demo Organization", "DEMO")

        if os.getenv("SEED_SKIP_AUTH", "1") not in {"1", "true", "TRUE", "yes", "YES"}:
            _get_or_create_admin(
                db,
                organization.id,
                os.getenv("SEED_ADMIN_EMAIL", "admin@stockledger.local"),
                os.getenv("SEED_ADMIN_PASSWORD", "password123"),
            )

        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
