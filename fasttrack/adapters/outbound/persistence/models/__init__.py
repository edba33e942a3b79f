# fasttrack/adapters/outbound/persistence/models/__init__.py

"""
Data models module.

This module exports every SQLAlchemy model of the system so that
``Base.metadata`` knows all tables once the package is imported.
"""

from fasttrack.adapters.outbound.persistence.models.base_model import Base

from fasttrack.adapters.outbound.persistence.models.editor_model import Editor
from fasttrack.adapters.outbound.persistence.models.document_model import Document
from fasttrack.adapters.outbound.persistence.models.market_model import Market
from fasttrack.adapters.outbound.persistence.models.requirement_model import MarketRequirement
from fasttrack.adapters.outbound.persistence.models.application_model import Application
from fasttrack.adapters.outbound.persistence.models.attachment_model import ApplicationAttachment
from fasttrack.adapters.outbound.persistence.models.machine_token_model import MachineAccessToken

__all__ = [
    "Base",
    "Editor",
    "Document",
    "Market",
    "MarketRequirement",
    "Application",
    "ApplicationAttachment",
    "MachineAccessToken",
]
