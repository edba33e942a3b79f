# fasttrack/adapters/outbound/persistence/seeds/catalog.py

"""
Seed script for the document catalog and the development demo editor.

Idempotent: documents are matched by name, the demo editor by client_id.
Each insert is flushed so a later lookup in the same transaction sees it.
"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.models import Document, Editor
from fasttrack.adapters.outbound.security.auth_client_manager import ClientAuthManager

logger = logging.getLogger(__name__)

# (name, description, mandatory, category, market_type)
documents = [
    ("Extrait Kbis", "Extrait d'immatriculation de moins de 3 mois", True, "administratif", None),
    ("Lettre de candidature (DC1)", "Identification du candidat et des membres du groupement", True, "administratif", None),
    ("Déclaration du candidat (DC2)", "Capacités économiques, financières et techniques", True, "administratif", None),
    ("Attestation URSSAF", "Attestation de vigilance de moins de 6 mois", True, "fiscal_social", None),
    ("Attestation de régularité fiscale", "Certificat délivré par l'administration fiscale", False, "fiscal_social", None),
    ("Attestation d'assurance", "Responsabilité civile professionnelle en cours de validité", False, "assurance", None),
    ("Fiche technique des produits", "Caractéristiques des fournitures proposées", True, "technique", "supplies"),
    ("Certificats de conformité", "Normes et labels applicables aux fournitures", False, "technique", "supplies"),
    ("Mémoire technique", "Méthodologie et moyens mis en oeuvre", True, "technique", "services"),
    ("Références de prestations similaires", "Prestations comparables des trois dernières années", False, "technique", "services"),
    ("Attestation d'assurance décennale", "Garantie décennale couvrant les travaux", True, "assurance", "works"),
    ("Certificats de qualification", "Qualibat ou équivalent", False, "technique", "works"),
]

DEMO_EDITOR = {
    "name": "Demo Editor App",
    "client_id": "demo_editor_client",
    "client_secret": "demo_editor_secret",
}

# Seeds run synchronously through psycopg2 (or pysqlite) rather than the async driver
SYNC_DB_URL = str(settings.DATABASE_URL).replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


def build_session_factory():
    engine = create_engine(SYNC_DB_URL, future=True)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def run_catalog_seed(session) -> None:
    for name, description, mandatory, category, market_type in documents:
        document = session.query(Document).filter_by(name=name).first()
        if document:
            logger.info(f"Document '{name}' already exists.")
            continue
        session.add(Document(
            name=name,
            description=description,
            mandatory=mandatory,
            category=category,
            market_type=market_type,
            active=True,
        ))
        session.flush()
        logger.info(f"Document '{name}' created.")


def run_demo_editor_seed(session) -> None:
    if session.query(Editor).filter_by(client_id=DEMO_EDITOR["client_id"]).first():
        logger.info(f"Demo editor '{DEMO_EDITOR['client_id']}' already exists.")
        return
    session.add(Editor(
        name=DEMO_EDITOR["name"],
        client_id=DEMO_EDITOR["client_id"],
        client_secret=ClientAuthManager.crypt_context.hash(DEMO_EDITOR["client_secret"]),
        authorized=True,
        active=True,
        machine_auth_enabled=True,
    ))
    session.flush()
    logger.info(f"Demo editor created: {DEMO_EDITOR['name']} ({DEMO_EDITOR['client_id']})")
