# fasttrack/application/dtos/document_dto.py

"""
DTOs for catalog documents.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentOutput(BaseModel):
    """Catalog entry as shown to editors."""
    id: int = Field(..., description="Document identifier")
    name: str = Field(..., description="Document name")
    description: Optional[str] = Field(None, description="What the document is")
    mandatory: bool = Field(..., description="Required for every market it applies to")
    category: Optional[str] = Field(None, description="Grouping label")
    market_type: Optional[str] = Field(None, description="Market type the document is limited to, null for all")

    model_config = ConfigDict(from_attributes=True)


class DocumentListOutput(BaseModel):
    market_type: Optional[str] = None
    mandatory: List[DocumentOutput] = Field(default_factory=list)
    optional: List[DocumentOutput] = Field(default_factory=list)
