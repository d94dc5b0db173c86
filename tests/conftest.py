"""
Test configuration for pytest

Settings are read at import time, so the environment is prepared before
anything from storehub is imported.
"""
import os
import tempfile
from decimal import Decimal

import pytest

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="storehub-uploads-")
os.environ["AUTO_ACCEPT_SECONDS"] = "300"
os.environ["LOYALTY_SPEND_PER_POINT"] = "100"

from storehub.config import get_settings  # noqa: E402

get_settings.cache_clear()

from fastapi.testclient import TestClient  # noqa: E402

from storehub.database import Base, SessionLocal, engine  # noqa: E402
from storehub.main import app  # noqa: E402
from storehub.core.security import create_actor_token, get_password_hash  # noqa: E402
from storehub.models import Product, Tenant, TenantStatus, User, UserRole  # noqa: E402

PASSWORD = "password123"


@pytest.fixture(scope="function")
def db():
    """Create a clean database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


def make_tenant(db, subdomain: str, status: TenantStatus = TenantStatus.ACTIVE, name: str = None) -> Tenant:
    tenant = Tenant(name=name or subdomain.title(), subdomain=subdomain, status=status)
    db.add(tenant)
    db.commit()
    return tenant


def make_user(
    db,
    tenant=None,
    role: UserRole = UserRole.CUSTOMER,
    email: str = None,
    password: str = PASSWORD,
    **fields
) -> User:
    user = User(
        tenant_id=tenant.id if tenant else None,
        email=email or f"{role.value}-{os.urandom(4).hex()}@example.com",
        hashed_password=get_password_hash(password) if password else None,
        role=role,
        **fields
    )
    db.add(user)
    db.commit()
    return user


def make_product(db, tenant, name: str = "Paracetamol 500mg", price: str = "50.00", inventory_count: int = 10, **fields):
    product = Product(
        tenant_id=tenant.id,
        name=name,
        price=Decimal(price),
        mrp=Decimal(fields.pop("mrp", price)),
        inventory_count=inventory_count,
        **fields
    )
    db.add(product)
    db.commit()
    return product


def auth_headers(user: User, **headers) -> dict:
    return {"Authorization": f"Bearer {create_actor_token(user)}", **headers}


@pytest.fixture
def tenant_a(db):
    return make_tenant(db, "citypharma", name="City Pharma")


@pytest.fixture
def tenant_b(db):
    return make_tenant(db, "greengrocer", name="Green Grocer")


@pytest.fixture
def admin_a(db, tenant_a):
    return make_user(db, tenant_a, UserRole.ADMIN, email="admin@citypharma.example.com", full_name="Asha Admin")


@pytest.fixture
def admin_b(db, tenant_b):
    return make_user(db, tenant_b, UserRole.ADMIN, email="admin@greengrocer.example.com", full_name="Bala Admin")


@pytest.fixture
def customer_a(db, tenant_a):
    return make_user(
        db, tenant_a, UserRole.CUSTOMER,
        email="ravi@example.com", full_name="Ravi Kumar", phone="+919800000001"
    )


@pytest.fixture
def super_admin(db):
    return make_user(db, None, UserRole.SUPER_ADMIN, email="root@example.com", full_name="Platform Owner")


@pytest.fixture
def product_a(db, tenant_a):
    return make_product(db, tenant_a)
