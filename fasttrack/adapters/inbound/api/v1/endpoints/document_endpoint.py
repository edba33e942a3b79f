# fasttrack/adapters/inbound/api/v1/endpoints/document_endpoint.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.inbound.api.deps import get_db_session
from fasttrack.application.dtos.document_dto import DocumentListOutput, DocumentOutput
from fasttrack.application.use_cases.document_catalog_use_cases import DocumentCatalog

router = APIRouter()


@router.get(
    "",
    response_model=DocumentListOutput,
    summary="List Documents - Catalog split into mandatory and optional",
    description="Active catalog documents, limited to those applicable to `market_type` when given.",
)
async def list_documents(
        market_type: Optional[str] = Query(None, description="supplies, services or works"),
        db: AsyncSession = Depends(get_db_session),
):
    documents = (await DocumentCatalog(db).list_for(market_type)).unwrap()
    return DocumentListOutput(
        market_type=market_type,
        mandatory=[DocumentOutput.model_validate(d) for d in documents if d.mandatory],
        optional=[DocumentOutput.model_validate(d) for d in documents if not d.mandatory],
    )
