# fasttrack/adapters/inbound/api/v1/endpoints/market_endpoint.py

"""
Market configuration endpoints for editor platforms.

Configuration takes two calls: ``POST /markets/drafts`` validates the
basic information and returns a draft token with the documents the
market type mandates and offers; ``POST /markets`` sends the token back
with the optional choice and creates the market.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.inbound.api.deps import (
    get_db_session,
    get_market_config_editor,
    get_market_read_editor,
)
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.application.dtos.document_dto import DocumentOutput
from fasttrack.application.dtos.market_dto import (
    DraftPreviewOutput,
    MarketCreateInput,
    MarketDraftInput,
    MarketOutput,
)
from fasttrack.application.use_cases.market_use_cases import MarketConfigurator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/drafts",
    response_model=DraftPreviewOutput,
    summary="Draft Market - First configuration step",
)
async def create_draft(
        body: MarketDraftInput,
        db: AsyncSession = Depends(get_db_session),
        editor: Editor = Depends(get_market_config_editor),
):
    preview = (await MarketConfigurator(db).prepare_draft(editor, body.to_draft())).unwrap()
    return DraftPreviewOutput(
        draft_token=preview.draft_token,
        title=preview.draft.title,
        deadline=preview.draft.deadline,
        market_type=preview.draft.market_type,
        mandatory_documents=[DocumentOutput.model_validate(d) for d in preview.mandatory_documents],
        optional_documents=[DocumentOutput.model_validate(d) for d in preview.optional_documents],
    )


@router.post(
    "",
    response_model=MarketOutput,
    status_code=status.HTTP_201_CREATED,
    summary="Configure Market - Second configuration step",
)
async def configure_market(
        body: MarketCreateInput,
        db: AsyncSession = Depends(get_db_session),
        editor: Editor = Depends(get_market_config_editor),
):
    market = (await MarketConfigurator(db).configure_from_token(
        editor, body.draft_token, body.optional_document_ids
    )).unwrap()
    return MarketOutput.model_validate(market)


@router.get(
    "/{fast_track_id}",
    response_model=MarketOutput,
    summary="Get Market - Market owned by the calling editor",
)
async def get_market(
        fast_track_id: str = Path(..., description="Public market identifier"),
        db: AsyncSession = Depends(get_db_session),
        editor: Editor = Depends(get_market_read_editor),
):
    market = (await MarketConfigurator(db).get_owned(editor, fast_track_id)).unwrap()
    return MarketOutput.model_validate(market)


@router.get(
    "",
    response_model=List[MarketOutput],
    summary="List Markets - Markets of the calling editor",
)
async def list_markets(
        db: AsyncSession = Depends(get_db_session),
        editor: Editor = Depends(get_market_read_editor),
):
    markets = await MarketConfigurator(db).list_owned(editor)
    return [MarketOutput.model_validate(m) for m in markets]
