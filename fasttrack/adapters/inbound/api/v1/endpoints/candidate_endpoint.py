# fasttrack/adapters/inbound/api/v1/endpoints/candidate_endpoint.py

"""
Candidate endpoints.

A candidate reaches a market through its public fast track id and is
identified by its SIRET. Writes are refused once the market is closed;
reads stay available so a candidate can fetch its attestation later.
"""

import logging

from fastapi import APIRouter, Depends, File, Path, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.inbound.api.deps import get_blob_storage, get_db_session
from fasttrack.adapters.outbound.persistence.models import Application, Market
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.application.dtos.application_dto import (
    ApplicationOutput,
    ApplicationStartInput,
    AttachmentOutput,
    ChecklistRowOutput,
    ContactUpdateInput,
    SubmissionOutput,
)
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.application.use_cases.application_use_cases import ApplicationLifecycle
from fasttrack.application.use_cases.artifact_use_cases import ArtifactService
from fasttrack.application.use_cases.submission_use_cases import SubmissionCoordinator
from fasttrack.domain.exceptions import ResourceNotFoundException
from fasttrack.domain.services.identifier_service import IdentifierService
from fasttrack.shared.utils.clock import as_utc

logger = logging.getLogger(__name__)

router = APIRouter()


def application_output(lifecycle: ApplicationLifecycle, market: Market, application: Application) -> ApplicationOutput:
    missing_fields, missing_documents = lifecycle.missing(application)
    return ApplicationOutput(
        id=application.id,
        fast_track_id=market.fast_track_id,
        siret=application.siret,
        siret_display=IdentifierService.format_siret(application.siret),
        company_name=application.company_name,
        email=application.email,
        phone=application.phone,
        contact_person=application.contact_person,
        status=application.status,
        submission_id=application.submission_id,
        submitted_at=as_utc(application.submitted_at),
        complete=lifecycle.is_complete(application),
        missing_fields=missing_fields,
        missing_document_ids=missing_documents,
        checklist=[ChecklistRowOutput.model_validate(row) for row in lifecycle.checklist(application)],
        attachments=[AttachmentOutput.model_validate(a) for a in application.attachments],
    )


async def _open(lifecycle: ApplicationLifecycle, fast_track_id: str, siret: str):
    """Market open for writes and the candidate's application."""
    market = (await lifecycle.open_market(fast_track_id)).unwrap()
    application = (await lifecycle.get(market, siret)).unwrap()
    return market, application


async def _lookup(lifecycle: ApplicationLifecycle, fast_track_id: str, siret: str):
    """Market and application regardless of the market being open."""
    market = await market_repository.get_by_fast_track_id(lifecycle.db_session, fast_track_id)
    if market is None:
        raise ResourceNotFoundException(detail="Market not found")
    application = (await lifecycle.get(market, siret)).unwrap()
    return market, application


@router.post(
    "/{fast_track_id}/applications",
    response_model=ApplicationOutput,
    summary="Start Application - Find or create the application of a company",
)
async def start_application(
        body: ApplicationStartInput,
        fast_track_id: str = Path(..., description="Public market identifier"),
        db: AsyncSession = Depends(get_db_session),
):
    lifecycle = ApplicationLifecycle(db)
    market = (await lifecycle.open_market(fast_track_id)).unwrap()
    application = (await lifecycle.find_or_create(market, body.siret, body.company_name)).unwrap()
    return application_output(lifecycle, market, application)


@router.get(
    "/{fast_track_id}/applications/{siret}",
    response_model=ApplicationOutput,
    summary="Get Application - Application with its checklist",
)
async def get_application(
        fast_track_id: str,
        siret: str,
        db: AsyncSession = Depends(get_db_session),
):
    lifecycle = ApplicationLifecycle(db)
    market, application = await _lookup(lifecycle, fast_track_id, siret)
    return application_output(lifecycle, market, application)


@router.patch(
    "/{fast_track_id}/applications/{siret}",
    response_model=ApplicationOutput,
    summary="Update Contact - Change contact information",
)
async def update_contact(
        body: ContactUpdateInput,
        fast_track_id: str,
        siret: str,
        db: AsyncSession = Depends(get_db_session),
):
    lifecycle = ApplicationLifecycle(db)
    market, application = await _open(lifecycle, fast_track_id, siret)
    updated = (await lifecycle.update_contact_info(application, body.model_dump(exclude_unset=True))).unwrap()
    return application_output(lifecycle, market, updated)


@router.put(
    "/{fast_track_id}/applications/{siret}/documents/{document_id}",
    response_model=AttachmentOutput,
    summary="Attach Document - Upload the file for one requirement",
)
async def attach_document(
        fast_track_id: str,
        siret: str,
        document_id: int,
        file: UploadFile = File(...),
        db: AsyncSession = Depends(get_db_session),
        blob_storage: IBlobStorage = Depends(get_blob_storage),
):
    lifecycle = ApplicationLifecycle(db, blob_storage)
    _, application = await _open(lifecycle, fast_track_id, siret)
    # one byte past the limit is enough for the size check to refuse the upload
    data = await file.read(settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024 + 1)
    attachment = (await lifecycle.attach_document(
        application,
        document_id,
        file.filename or f"document_{document_id}",
        file.content_type or "application/octet-stream",
        data,
    )).unwrap()
    return AttachmentOutput.model_validate(attachment)


@router.post(
    "/{fast_track_id}/applications/{siret}/submit",
    response_model=SubmissionOutput,
    summary="Submit Application",
)
async def submit_application(
        fast_track_id: str,
        siret: str,
        db: AsyncSession = Depends(get_db_session),
        blob_storage: IBlobStorage = Depends(get_blob_storage),
):
    lifecycle = ApplicationLifecycle(db, blob_storage)
    _, application = await _lookup(lifecycle, fast_track_id, siret)
    result = (await SubmissionCoordinator(db, blob_storage).submit(application)).unwrap()
    return SubmissionOutput(
        submission_id=result.submission_id,
        submitted_at=result.submitted_at,
        status=result.status.value,
        attestation_available=result.attestation_path is not None,
        dossier_available=result.dossier_path is not None,
        degraded=result.degraded,
    )


@router.get(
    "/{fast_track_id}/applications/{siret}/attestation",
    summary="Download Attestation - Candidate copy of the attestation PDF",
    response_class=Response,
)
async def download_attestation(
        fast_track_id: str,
        siret: str,
        db: AsyncSession = Depends(get_db_session),
        blob_storage: IBlobStorage = Depends(get_blob_storage),
):
    _, application = await _lookup(ApplicationLifecycle(db), fast_track_id, siret)
    filename, content = (
        await ArtifactService(db, blob_storage).fetch_attestation_for_candidate(application)
    ).unwrap()
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
