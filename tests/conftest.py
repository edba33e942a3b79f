"""
Shared fixtures.

Settings are read when ``fasttrack`` is first imported, so the test
environment is put in place before any project import.
"""

import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="fasttrack-tests-")

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'app.db')}"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_ROOT, "storage")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TOKEN_AUTHORITY_MODE"] = "local"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event, func, select  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from fasttrack.adapters.outbound.persistence.models import Base, Document  # noqa: E402
from fasttrack.adapters.outbound.persistence.repositories.editor_repository import editor_repository  # noqa: E402
from fasttrack.adapters.outbound.storage.local_blob_storage import LocalBlobStorage  # noqa: E402
from fasttrack.application.use_cases.application_use_cases import ApplicationLifecycle  # noqa: E402
from fasttrack.application.use_cases.market_use_cases import MarketConfigurator  # noqa: E402
from fasttrack.domain.models.market_domain_model import MarketDraft  # noqa: E402
from fasttrack.shared.utils.clock import utcnow  # noqa: E402

SIRET = "12345678901234"

# key: (name, mandatory, market_type, active)
CATALOG = {
    "kbis": ("Extrait Kbis", True, None, True),
    "dc1": ("Lettre de candidature (DC1)", True, None, True),
    "insurance": ("Attestation d'assurance", False, None, True),
    "works_insurance": ("Attestation d'assurance décennale", True, "works", True),
    "references": ("Références de prestations similaires", False, "services", True),
    "datasheet": ("Fiche technique des produits", True, "supplies", True),
    "legacy": ("Ancien formulaire", False, None, False),
}


def make_engine(path: str):
    """
    File database whose transactions start with BEGIN IMMEDIATE, so a
    session holds the write lock from its first statement and concurrent
    sessions queue behind it like row locks would on PostgreSQL.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", connect_args={"timeout": 30})

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(str(tmp_path / "test.db"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(str(tmp_path / "blobs"))


@pytest_asyncio.fixture
async def documents(db):
    """Catalog documents by key."""
    created = {}
    for key, (name, mandatory, market_type, active) in CATALOG.items():
        document = Document(
            name=name,
            description=f"{name} (description)",
            mandatory=mandatory,
            category="administratif",
            market_type=market_type,
            active=active,
        )
        db.add(document)
        created[key] = document
    await db.commit()
    return created


@pytest_asyncio.fixture
async def editor(db):
    editor, _ = await editor_repository.create_with_credentials(
        db, name="Editeur A", client_id="editor-a", client_secret="secret-a"
    )
    return editor


@pytest_asyncio.fixture
async def other_editor(db):
    editor, _ = await editor_repository.create_with_credentials(
        db, name="Editeur B", client_id="editor-b", client_secret="secret-b"
    )
    return editor


def services_draft(documents, optional_keys=("insurance",), **overrides) -> MarketDraft:
    values = dict(
        title="Maintenance des ascenseurs",
        description="Maintenance préventive et corrective des ascenseurs municipaux",
        deadline=utcnow() + timedelta(days=30),
        market_type="services",
        optional_document_ids=[documents[key].id for key in optional_keys],
    )
    values.update(overrides)
    return MarketDraft(**values)


@pytest_asyncio.fixture
async def market(db, editor, documents):
    """Services market: Kbis and DC1 required, insurance optional."""
    market = (await MarketConfigurator(db).configure(editor, services_draft(documents))).unwrap()
    await db.commit()
    return market


async def change(db, row, **values):
    """Set column values on a loaded row and commit."""
    for field, value in values.items():
        setattr(row, field, value)
    await db.commit()


async def count_rows(db, model, **filters) -> int:
    query = select(func.count()).select_from(model).filter_by(**filters)
    return (await db.execute(query)).scalar_one()


async def fill_application(db, storage, market, documents, siret=SIRET, keys=("kbis", "dc1")):
    """Application with contact info and the given documents attached; the session is left idle."""
    lifecycle = ApplicationLifecycle(db, storage)
    application = (await lifecycle.find_or_create(market, siret)).unwrap()
    application = (await lifecycle.update_contact_info(application, {
        "email": "contact@acme.fr",
        "contact_person": "Marie Dupont",
        "phone": "01 23 45 67 89",
    })).unwrap()
    for key in keys:
        (await lifecycle.attach_document(
            application, documents[key].id, f"{key}.pdf", "application/pdf", f"%PDF {key}".encode()
        )).unwrap()
    application = (await lifecycle.get(market, siret)).unwrap()
    await db.commit()
    return application
