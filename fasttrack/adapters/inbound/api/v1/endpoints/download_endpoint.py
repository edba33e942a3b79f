# fasttrack/adapters/inbound/api/v1/endpoints/download_endpoint.py

"""
Artifact downloads for the editor owning the market.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.inbound.api.deps import (
    get_application_read_editor,
    get_blob_storage,
    get_db_session,
)
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.application.use_cases.artifact_use_cases import ATTESTATION, DOSSIER, ArtifactService

router = APIRouter()


async def _download(db, blob_storage, editor, fast_track_id, siret, kind, media_type) -> Response:
    filename, content = (
        await ArtifactService(db, blob_storage).fetch_for_editor(editor, fast_track_id, siret, kind)
    ).unwrap()
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/download_attestation",
    summary="Download Attestation - Attestation PDF of a submitted application",
    response_class=Response,
)
async def download_attestation(
        fast_track_id: str = Query(..., description="Public market identifier"),
        siret: str = Query(..., description="Company SIRET"),
        db: AsyncSession = Depends(get_db_session),
        blob_storage: IBlobStorage = Depends(get_blob_storage),
        editor: Editor = Depends(get_application_read_editor),
):
    return await _download(db, blob_storage, editor, fast_track_id, siret, ATTESTATION, "application/pdf")


@router.get(
    "/download_dossier_zip",
    summary="Download Dossier - Documents bundle of a submitted application",
    response_class=Response,
)
async def download_dossier_zip(
        fast_track_id: str = Query(..., description="Public market identifier"),
        siret: str = Query(..., description="Company SIRET"),
        db: AsyncSession = Depends(get_db_session),
        blob_storage: IBlobStorage = Depends(get_blob_storage),
        editor: Editor = Depends(get_application_read_editor),
):
    return await _download(db, blob_storage, editor, fast_track_id, siret, DOSSIER, "application/zip")
