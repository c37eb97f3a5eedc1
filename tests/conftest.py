import os
import tempfile
from datetime import timedelta

import pytest

from eckwms import create_app
from eckwms.domain.identity import InstanceIdentity, ScanStatus, Tier
from eckwms.extensions import db as _db
from eckwms.models.instance import Instance
from eckwms.models.scan import Scan
from eckwms.services.container import container
from eckwms.utils.checksum import compute_checksum
from eckwms.utils.clock import utcnow

PUBLIC_KEY = 'public-demo-key-for-eckwms-app'


@pytest.fixture
def app():
    """Create and configure a Flask app for testing."""
    # Create a temp file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-key',
        'INTERNAL_API_KEY': 'test-internal-key',
        'PUBLIC_API_KEY': PUBLIC_KEY,
        'GLOBAL_SERVER_URL': 'https://global.example.com',
        'VERSION': '1.0.0-test',
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def db(app):
    """Database bound to the test app."""
    return _db


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test CLI runner for the app."""
    return app.test_cli_runner()


@pytest.fixture
def services(app):
    """Service container of the test app."""
    return container()


def _make_instance(db, name, api_key, tier):
    instance = Instance(name=name, api_key=api_key, tier=tier)
    db.session.add(instance)
    db.session.commit()
    return instance


@pytest.fixture
def free_instance(db):
    return _make_instance(db, 'Warehouse North', 'free-key', Tier.FREE.value)


@pytest.fixture
def other_free_instance(db):
    return _make_instance(db, 'Warehouse South', 'other-free-key', Tier.FREE.value)


@pytest.fixture
def paid_instance(db):
    return _make_instance(db, 'Warehouse Paid', 'paid-key', Tier.PAID.value)


@pytest.fixture
def public_instance(db):
    return _make_instance(db, 'Public Demo Account', PUBLIC_KEY, Tier.FREE.value)


@pytest.fixture
def free_identity(free_instance):
    return InstanceIdentity.from_instance(free_instance, PUBLIC_KEY)


@pytest.fixture
def other_free_identity(other_free_instance):
    return InstanceIdentity.from_instance(other_free_instance, PUBLIC_KEY)


@pytest.fixture
def paid_identity(paid_instance):
    return InstanceIdentity.from_instance(paid_instance, PUBLIC_KEY)


@pytest.fixture
def public_identity(public_instance):
    return InstanceIdentity.from_instance(public_instance, PUBLIC_KEY)


@pytest.fixture
def make_scan(db):
    """Insert a scan row directly, with explicit status and ages."""
    def _make_scan(instance, payload='SCAN', status=ScanStatus.BUFFERED.value, priority=0,
                   age=timedelta(0), updated_age=None, device_id=None, type=None):
        now = utcnow()
        scan = Scan(
            payload=payload,
            checksum=compute_checksum(payload),
            instance_id=instance.id if instance is not None else None,
            device_id=device_id,
            priority=priority,
            type=type,
            status=status,
            created_at=now - age,
            updated_at=now - (updated_age if updated_age is not None else age)
        )
        db.session.add(scan)
        db.session.commit()
        return scan.id
    return _make_scan
