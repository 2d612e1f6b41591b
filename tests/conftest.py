"""Shared test fixtures — async DB, client, fake classifier, storage, queue.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import asyncio
import os
import tempfile

# Settings are read at import time; keep batch pacing and retries instant.
os.environ.setdefault("ANALYSIS_CALL_DELAY_SECONDS", "0")
os.environ.setdefault("ANALYSIS_RETRY_DELAY_SECONDS", "0")
os.environ.setdefault("ANALYSIS_API_KEY", "test-key")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="hr-compliance-"))

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hr_compliance.analysis.client import get_analysis_client
from hr_compliance.analysis.schemas import (
    AnalysisContext,
    DocumentClassification,
    PayslipAnalysis,
    TimesheetAnalysis,
)
from hr_compliance.analysis.tasks import AnalysisTaskQueue
from hr_compliance.common.constants import DocumentCategory, EmployeeStatus
from hr_compliance.common.exceptions import AnalysisError
from hr_compliance.database import Base, get_db
from hr_compliance.main import create_app
from hr_compliance.storage.provider import ArtifactStorage, StoredArtifact, get_storage

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import hr_compliance.alerts.models  # noqa: F401
import hr_compliance.common.audit  # noqa: F401
import hr_compliance.common.models  # noqa: F401
import hr_compliance.core_hr.models  # noqa: F401
import hr_compliance.documents.models  # noqa: F401
import hr_compliance.recurring.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hr_compliance.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Collaborator fakes ──────────────────────────────────────────────


class InMemoryStorage(ArtifactStorage):
    """Keeps artifacts in a dict; URLs point at a fake bucket."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, str]] = {}

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredArtifact:
        self.files[key] = (data, mime_type)
        return StoredArtifact(url=f"https://files.test/{key}", key=key)

    async def delete(self, key: str) -> None:
        self.files.pop(key, None)


class FakeClassifier:
    """Scriptable stand-in for ``AnalysisClient``.

    ``score`` and ``alerts`` shape every verdict; ``failures`` makes the
    next N calls raise ``AnalysisError`` (``fail_always`` makes all of them).
    ``delay`` holds each analysis call open for that many seconds.
    """

    def __init__(self) -> None:
        self.score = 90
        self.alerts: list[dict[str, Any]] = []
        self.failures = 0
        self.fail_always = False
        self.delay = 0.0
        self.calls: list[dict[str, Any]] = []
        self.classification = {
            "documentType": "rg",
            "confidence": 0.97,
            "extractedData": {"number": "12.345.678-9"},
        }

    def _maybe_fail(self) -> None:
        if self.fail_always:
            raise AnalysisError("Classifier unavailable")
        if self.failures > 0:
            self.failures -= 1
            raise AnalysisError("Classifier unavailable")

    def _payload(self) -> dict[str, Any]:
        return {"complianceScore": self.score, "alerts": list(self.alerts)}

    async def analyze_timesheet(
        self, file_url: str, context: AnalysisContext, *, text: Optional[str] = None,
    ) -> TimesheetAnalysis:
        self.calls.append({"kind": "timesheet", "url": file_url, "context": context, "text": text})
        await asyncio.sleep(self.delay)
        self._maybe_fail()
        return TimesheetAnalysis.model_validate({**self._payload(), "workDays": []})

    async def analyze_payslip(
        self, file_url: str, context: AnalysisContext, *, text: Optional[str] = None,
    ) -> PayslipAnalysis:
        self.calls.append({"kind": "payslip", "url": file_url, "context": context, "text": text})
        await asyncio.sleep(self.delay)
        self._maybe_fail()
        return PayslipAnalysis.model_validate(self._payload())

    async def classify(self, file_url: str) -> DocumentClassification:
        self.calls.append({"kind": "classify", "url": file_url})
        self._maybe_fail()
        return DocumentClassification.model_validate(self.classification)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fake_client() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
async def queue(fake_client) -> AsyncGenerator[AnalysisTaskQueue, None]:
    """Background analysis worker bound to the test database."""
    q = AnalysisTaskQueue(TestSessionFactory, fake_client, max_attempts=3, retry_delay=0)
    q.start()
    yield q
    await q.stop()


# ── FastAPI test client ─────────────────────────────────────────────


@pytest.fixture
async def app(storage, fake_client, queue):
    """Create a fresh app instance with DB and collaborators overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_storage] = lambda: storage
    application.dependency_overrides[get_analysis_client] = lambda: fake_client
    # ASGITransport does not run the lifespan
    application.state.analysis_queue = queue
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────


def _make_department(*, name: str = "Operations") -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        created_at=datetime.now(timezone.utc),
    )


def _make_employee(
    *,
    name: str = "Maria Souza",
    tax_id: Optional[str] = None,
    position: Optional[str] = None,
    department_id: Optional[uuid.UUID] = None,
    compliance_score: int = 100,
    status: EmployeeStatus = EmployeeStatus.active,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        tax_id=tax_id or f"{uuid.uuid4().int % 10**11:011d}",
        position=position,
        department_id=department_id,
        work_hours="08:00-17:00",
        salary=Decimal("3500.00"),
        status=status,
        compliance_score=compliance_score,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_document_type(
    *,
    name: str = "ID card",
    category: DocumentCategory = DocumentCategory.admission,
    validity_days: Optional[int] = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        category=category,
        is_required=True,
        validity_days=validity_days,
        created_at=datetime.now(timezone.utc),
    )


async def seed_department(db: AsyncSession, **kwargs):
    from hr_compliance.core_hr.models import Department

    dept = Department(**_make_department(**kwargs))
    db.add(dept)
    await db.flush()
    return dept


async def seed_employee(db: AsyncSession, **kwargs):
    from hr_compliance.core_hr.models import Employee

    emp = Employee(**_make_employee(**kwargs))
    db.add(emp)
    await db.flush()
    return emp


async def seed_document_type(db: AsyncSession, **kwargs):
    from hr_compliance.documents.models import DocumentType

    doc_type = DocumentType(**_make_document_type(**kwargs))
    db.add(doc_type)
    await db.flush()
    return doc_type


async def seed_template(
    db: AsyncSession,
    *,
    name: str,
    items: Sequence[dict] = (),
    created_at: Optional[datetime] = None,
    **kwargs,
):
    """Insert a template with ``items`` (TemplateItem kwargs)."""
    from hr_compliance.documents.models import DocumentTemplate, TemplateItem

    template = DocumentTemplate(
        name=name,
        created_at=created_at or datetime.now(timezone.utc),
        **kwargs,
    )
    db.add(template)
    await db.flush()
    for i, item in enumerate(items):
        db.add(TemplateItem(template_id=template.id, sort_order=i, **item))
    await db.flush()
    return template
