"""
Pytest fixtures for SIMLOK backend tests.

Provides test database setup, one user per role, bearer headers, and
submissions at each lifecycle stage.
"""

import pytest

from simlok import create_app
from simlok.extensions import db
from simlok.models import User
from simlok.services import lifecycle_service, session_service, submission_service
from simlok.services.auth_service import hash_password


PASSWORD = "Password123!"

# bcrypt is slow on purpose; hash once for every fixture user
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'QR_SECRET_KEY': 'test-qr-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, email, role, **extra) -> User:
    user = User(
        email=email,
        officer_name=extra.pop("officer_name", email.split("@")[0].title()),
        role=role,
        password_hash=PASSWORD_HASH,
        is_active=True,
        **extra,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def users(db_session):
    """One account per role, plus a second vendor for ownership checks."""
    return {
        "vendor": make_user(db_session, "vendor@acme.co.id", "VENDOR", vendor_name="PT Acme Teknik"),
        "other_vendor": make_user(db_session, "vendor@beta.co.id", "VENDOR", vendor_name="PT Beta Servis"),
        "reviewer": make_user(db_session, "reviewer@simlok.local", "REVIEWER"),
        "approver": make_user(db_session, "approver@simlok.local", "APPROVER"),
        "verifier": make_user(db_session, "verifier@simlok.local", "VERIFIER", address="Pos Jaga Utama"),
        "visitor": make_user(db_session, "visitor@simlok.local", "VISITOR"),
        "admin": make_user(db_session, "admin@simlok.local", "ADMIN"),
        "super_admin": make_user(db_session, "superadmin@simlok.local", "SUPER_ADMIN"),
    }


@pytest.fixture(scope='function')
def headers(users):
    """Bearer headers keyed like `users`."""
    result = {}
    for key, user in users.items():
        _, token = session_service.create_session(user_id=user.id)
        result[key] = auth_headers(token)
    return result


def submission_payload(**overrides) -> dict:
    """A complete, valid create payload."""
    payload = {
        "vendor_name": "PT Acme Teknik",
        "vendor_phone": "08123456789",
        "based_on": "Surat Perintah Kerja No. 123/SPK/2024",
        "officer_name": "Rudi Hartono",
        "job_description": "Pemeliharaan pompa transfer",
        "work_location": "Area Tangki 3",
        "implementation": "Pekerjaan dilakukan bertahap",
        "implementation_start_date": "2024-05-01",
        "implementation_end_date": "2024-05-10",
        "working_hours": "08:00 - 17:00",
        "work_facilities": "Kunci pas, APD lengkap",
        "worker_names": "Budi\nAndi",
        "worker_count": 2,
    }
    payload.update(overrides)
    return payload


def create_submission_for(vendor: User, **overrides):
    fields = {
        "vendor_name": vendor.vendor_name or "PT Vendor",
        "based_on": "SPK 001",
        "officer_name": vendor.officer_name,
        "job_description": "Inspeksi jalur pipa",
        "work_location": "Dermaga 2",
        "working_hours": "08:00 - 16:00",
        "work_facilities": "APD",
        "worker_names": "Budi\nAndi",
        "worker_count": 2,
    }
    fields.update(overrides)
    return submission_service.create_submission(
        user=vendor,
        fields=fields,
        workers=[{"worker_name": "Budi"}, {"worker_name": "Andi"}],
    )


@pytest.fixture(scope='function')
def submission(users):
    """Fresh submission owned by users['vendor'] with a two-worker roster."""
    return create_submission_for(users["vendor"])


@pytest.fixture(scope='function')
def reviewed_submission(users, submission):
    return lifecycle_service.submit_review(
        submission.id,
        reviewer=users["reviewer"],
        verdict="MEETS_REQUIREMENTS",
        note_for_approver="Dokumen lengkap",
        note_for_vendor="Silakan menunggu persetujuan",
    )


@pytest.fixture(scope='function')
def approved_submission(users, reviewed_submission):
    return lifecycle_service.finalize(
        reviewed_submission.id,
        approver=users["approver"],
        decision="APPROVED",
        simlok_number="SIMLOK/001/2024",
        tembusan="Manager HSSE\nSecurity",
    )


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
