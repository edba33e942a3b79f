# fasttrack/adapters/outbound/persistence/repositories/__init__.py

from fasttrack.adapters.outbound.persistence.repositories.editor_repository import editor_repository
from fasttrack.adapters.outbound.persistence.repositories.document_repository import document_repository
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.adapters.outbound.persistence.repositories.machine_token_repository import machine_token_repository

__all__ = [
    "editor_repository",
    "document_repository",
    "market_repository",
    "application_repository",
    "machine_token_repository",
]
