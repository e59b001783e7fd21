import os
import tempfile
from io import BytesIO

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-at-least-32-characters"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="timeclock-uploads-")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool

from timeclock.api.deps import get_storage
from timeclock.core.database import Base, Database
from timeclock.core.roles import UserRole
from timeclock.core.setup_state import AdminSetupState
from timeclock.models import Employee
from timeclock.services.image_storage import ImageStorage
from timeclock.services.users import create_user
from main import app

# Test database, shared by every connection of the process
test_database = Database("sqlite://", poolclass=StaticPool)
app.state.database = test_database

ADMIN_PASSWORD = "adminpass123"
USER_PASSWORD = "userpass123"


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and drop after."""
    engine = test_database.connect()
    Base.metadata.create_all(bind=engine)
    app.state.setup_state = AdminSetupState()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = test_database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    """Local image storage in a temporary directory."""
    image_storage = ImageStorage(use_s3=False, upload_dir=str(tmp_path), public_base_url="http://testserver")
    app.dependency_overrides[get_storage] = lambda: image_storage
    yield image_storage
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, username, password=USER_PASSWORD, role=UserRole.USER.value, rights=None, location=None, name=""):
    user = create_user(
        db,
        username=username,
        password=password,
        name=name,
        role=role,
        location=location,
        rights=rights,
    )
    db.commit()
    db.refresh(user)
    return user


def login(username, password):
    """A fresh client holding a dashboard session cookie."""
    client = TestClient(app)
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def admin(db):
    return make_user(db, "admin", ADMIN_PASSWORD, role=UserRole.ADMIN.value, name="Admin")


@pytest.fixture
def admin_client(admin):
    return login("admin", ADMIN_PASSWORD)


@pytest.fixture
def user_client_factory(db):
    """Log in a plain dashboard user holding the given rights and locations."""

    def factory(username="operator", rights=None, location=None):
        make_user(db, username, rights=rights, location=location, name=username.title())
        return login(username, USER_PASSWORD)

    return factory


@pytest.fixture
def employee(db):
    """Create a test employee."""
    emp = Employee(
        name="Jane Doe",
        pin="1234",
        role=["Cook"],
        employer=["Acme"],
        location=["Main Street"],
        email="jane@example.com",
    )
    db.add(emp)
    db.commit()
    db.refresh(emp)
    return emp


@pytest.fixture
def employee_client(employee):
    client = TestClient(app)
    response = client.post("/api/employee/login", json={"pin": "1234"})
    assert response.status_code == 200, response.text
    return client


def create_test_image(fmt="JPEG", size=(100, 100)):
    """Create a test image file."""
    img = Image.new("RGB", size, color="red")
    img_bytes = BytesIO()
    img.save(img_bytes, format=fmt)
    img_bytes.seek(0)
    return img_bytes
