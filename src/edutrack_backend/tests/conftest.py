"""
Pytest configuration and fixtures for all tests.
"""

import itertools
import os
import sys
from typing import Dict, List, Optional
import pytest
from aiocache import Cache
from fastapi.testclient import TestClient

# Ensure edutrack_backend is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from edutrack_backend.auth.gateway import (
    DuplicateIdentityError,
    IdentityClaims,
    IdentityGateway,
    IdentityNotFoundError,
    InvalidCredentialsError,
    InvalidTokenError,
    LoginResult,
)
from edutrack_backend.database import Database
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment
from edutrack_backend.model.user import User
from edutrack_backend.server import create_app


class FakeIdentityGateway(IdentityGateway):
    """In-memory identity provider issuing opaque bearer tokens."""

    def __init__(self):
        self.accounts: Dict[str, dict] = {}
        self.tokens: Dict[str, str] = {}
        self.setup_emails: List[str] = []
        self.initialized = False
        self.closed = False
        self._ids = itertools.count(1)

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    def add_account(self, subject: str, email: Optional[str] = None, role: Optional[str] = None,
                    institution_id: Optional[str] = None, child_id: Optional[str] = None,
                    password: Optional[str] = None) -> str:
        self.accounts[subject] = {
            "email": email or f"{subject}@example.org",
            "password": password,
            "role": role,
            "institution_id": institution_id,
            "child_id": child_id,
            "enabled": True,
        }
        return self.issue_token(subject)

    def issue_token(self, subject: str) -> str:
        token = f"token-{subject}-{next(self._ids)}"
        self.tokens[token] = subject
        return token

    def _claims(self, subject: str) -> IdentityClaims:
        account = self.accounts[subject]
        return IdentityClaims(
            subject=subject,
            email=account["email"],
            role=account["role"],
            institution_id=account["institution_id"],
            child_id=account["child_id"],
        )

    async def verify(self, token: str) -> IdentityClaims:
        subject = self.tokens.get(token)
        if subject is None or not self.accounts[subject]["enabled"]:
            raise InvalidTokenError("unknown token")
        return self._claims(subject)

    async def login(self, email: str, password: str) -> LoginResult:
        for subject, account in self.accounts.items():
            if account["email"] == email and account["password"] == password and account["enabled"]:
                return LoginResult(token=self.issue_token(subject), claims=self._claims(subject))
        raise InvalidCredentialsError("Invalid email or password")

    async def create_user(self, email: str, password: Optional[str] = None, name: Optional[str] = None) -> str:
        if any(account["email"] == email for account in self.accounts.values()):
            raise DuplicateIdentityError(email)
        subject = f"uid-{next(self._ids)}"
        self.accounts[subject] = {
            "email": email,
            "password": password,
            "role": None,
            "institution_id": None,
            "child_id": None,
            "enabled": True,
        }
        return subject

    async def set_claims(self, subject: str, role: str, institution_id: Optional[str] = None, child_id: Optional[str] = None) -> None:
        if subject not in self.accounts:
            raise IdentityNotFoundError(subject)
        self.accounts[subject].update(role=role, institution_id=institution_id, child_id=child_id)

    async def disable_user(self, subject: str) -> None:
        if subject not in self.accounts:
            raise IdentityNotFoundError(subject)
        self.accounts[subject]["enabled"] = False

    async def send_setup_email(self, subject: str) -> None:
        self.setup_emails.append(subject)


@pytest.fixture
def gateway():
    return FakeIdentityGateway()


@pytest.fixture
def database():
    return Database("sqlite://")


@pytest.fixture
def client(database, gateway):
    app = create_app(database=database, identity_gateway=gateway, cache=Cache(Cache.MEMORY), create_tables=True)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db(client, database):
    """Session on the same store the app uses; requires the app to be running."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(gateway, db):
    """Register an identity and its mirror document, returning auth headers."""

    def factory(uid: str, role: str, institution_id: Optional[str] = "inst-1", child_id: Optional[str] = None) -> Dict[str, str]:
        token = gateway.add_account(uid, role=role, institution_id=institution_id, child_id=child_id)
        db.add(User(
            id=uid,
            email=f"{uid}@example.org",
            role=role,
            institution_id=institution_id,
            child_id=child_id
        ))
        db.commit()
        return bearer(token)

    return factory


@pytest.fixture
def make_course(db):

    def factory(teacher_id: str, institution_id: Optional[str] = "inst-1", published: bool = False, title: str = "Algebra") -> Course:
        course = Course(title=title, teacher_id=teacher_id, institution_id=institution_id, is_published=published)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return factory


@pytest.fixture
def make_enrollment(db):

    def factory(course: Course, student_id: str, progress: float = 0.0, status: str = "active") -> Enrollment:
        enrollment = Enrollment(
            course_id=course.id,
            student_id=student_id,
            teacher_id=course.teacher_id,
            institution_id=course.institution_id,
            progress=progress,
            status=status
        )
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    return factory
