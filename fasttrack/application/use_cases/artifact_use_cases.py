# fasttrack/application/use_cases/artifact_use_cases.py

"""
Submission artifacts: attestation PDF and dossier bundle.

Generation runs after the submission has committed and can be repeated
at will; every run overwrites the same two paths.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.outbound.persistence.models import Application, Editor
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.adapters.outbound.rendering.attestation_renderer import AttestationRenderer, attestation_renderer
from fasttrack.adapters.outbound.rendering.dossier_bundler import attachment_member_name, build_dossier_zip
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.application.use_cases.access_use_cases import AccessGate
from fasttrack.domain.exceptions import (
    DatabaseOperationException,
    DomainException,
    PermissionDeniedException,
    ResourceNotFoundException,
    StorageException,
)
from fasttrack.domain.models.application_domain_model import ArtifactReport, RequirementCheck
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.domain.services.completeness_service import CompletenessService
from fasttrack.domain.services.identifier_service import IdentifierService
from fasttrack.shared.utils.clock import as_utc

logger = logging.getLogger(__name__)

ATTESTATION = "attestation"
DOSSIER = "dossier"


def attestation_path_for(submission_id: str) -> str:
    return f"attestations/attestation_{submission_id}.pdf"


def dossier_path_for(submission_id: str) -> str:
    return f"dossiers/dossier_{submission_id}.zip"


class ArtifactService:
    """
    Builds, stores and serves the artifacts of submitted applications.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            blob_storage: IBlobStorage,
            renderer: AttestationRenderer = attestation_renderer,
    ):
        self.db_session = db_session
        self.blob_storage = blob_storage
        self.renderer = renderer

    async def verified_checklist(self, application: Application) -> Tuple[List[RequirementCheck], list]:
        """
        Checklist where a document counts as fulfilled only if its
        attachment record exists and its blob is present in storage now.

        Returns:
            (checklist, verified attachments)
        """
        verified = []
        for attachment in application.attachments:
            if await self.blob_storage.exists(attachment.blob_path):
                verified.append(attachment)
            else:
                logger.warning(
                    f"Attachment blob missing for application {application.id}, "
                    f"document {attachment.document_id}: {attachment.blob_path}"
                )
        checks = CompletenessService.checklist(
            application.market.requirements, [attachment.document_id for attachment in verified]
        )
        return checks, verified

    def _attestation_context(self, application: Application, checks: List[RequirementCheck]) -> dict:
        return {
            "market": application.market,
            "application": application,
            "siret_display": IdentifierService.format_siret(application.siret),
            "submitted_at": as_utc(application.submitted_at),
            "deadline": as_utc(application.market.deadline),
            "required_checks": [check for check in checks if check.required],
            "optional_checks": [check for check in checks if not check.required],
        }

    async def regenerate_artifacts(self, application_id: int) -> ArtifactReport:
        """
        (Re)build the attestation and the dossier of a submitted application.

        Failures are collected in the report, never raised.
        """
        report = ArtifactReport(application_id=application_id)
        application = await application_repository.get_fresh(self.db_session, application_id)
        if application is None or not application.submitted or not application.submission_id:
            report.errors.append("application is not submitted")
            return report

        submission_id = application.submission_id
        checks, verified = await self.verified_checklist(application)

        attestation_pdf: Optional[bytes] = None
        try:
            attestation_pdf = self.renderer.render(
                self._attestation_context(application, checks),
                title=f"Attestation de dépôt {submission_id}",
            )
            await self.blob_storage.write(attestation_path_for(submission_id), attestation_pdf)
            report.attestation_path = attestation_path_for(submission_id)
        except Exception as e:
            logger.warning(f"Attestation generation failed for {submission_id}: {e}")
            report.errors.append(f"attestation: {e}")
            attestation_pdf = None

        try:
            requirement_names = {r.document_id: r.document_name for r in application.market.requirements}
            members = []
            for attachment in verified:
                members.append((
                    attachment_member_name(
                        attachment.document_id,
                        requirement_names.get(attachment.document_id, "document"),
                        application.siret,
                        attachment.filename,
                    ),
                    await self.blob_storage.read(attachment.blob_path),
                ))
            if attestation_pdf is not None:
                members.append((f"attestation_{submission_id}.pdf", attestation_pdf))
            await self.blob_storage.write(dossier_path_for(submission_id), build_dossier_zip(members))
            report.dossier_path = dossier_path_for(submission_id)
        except Exception as e:
            logger.warning(f"Dossier generation failed for {submission_id}: {e}")
            report.errors.append(f"dossier: {e}")

        try:
            await application_repository.set_artifact_paths(
                self.db_session,
                application.id,
                attestation_path=report.attestation_path,
                dossier_path=report.dossier_path,
            )
        except DatabaseOperationException as e:
            logger.warning(f"Could not record artifact paths for {submission_id}: {e.original_error}")
            report.errors.append("artifact paths not recorded")

        if report.errors:
            logger.warning(f"Artifacts of {submission_id} incomplete: {report.errors}")
        else:
            logger.info(f"Artifacts generated for {submission_id}")
        return report

    async def sweep(self, limit: int = 100) -> List[ArtifactReport]:
        """Repair pass over submitted applications missing an artifact."""
        pending = await application_repository.list_missing_artifacts(self.db_session, limit=limit)
        reports = []
        for application in pending:
            reports.append(await self.regenerate_artifacts(application.id))
        repaired = sum(1 for report in reports if report.complete)
        if pending:
            logger.info(f"Artifact sweep: {repaired}/{len(pending)} applications repaired")
        return reports

    # ── Retrieval ────────────────────────────────────────────────────────

    async def _read_artifact(self, path: Optional[str], label: str) -> Result[bytes, DomainException]:
        if not path or not await self.blob_storage.exists(path):
            return Err(ResourceNotFoundException(detail=f"{label} not available"))
        try:
            return Ok(await self.blob_storage.read(path))
        except StorageException as e:
            logger.error(f"Reading {label.lower()} at {path} failed: {e}")
            return Err(ResourceNotFoundException(detail=f"{label} not available"))

    async def fetch_for_editor(
            self, editor: Editor, fast_track_id: str, siret: str, kind: str
    ) -> Result[Tuple[str, bytes], DomainException]:
        """
        Artifact download for the editor owning the market.

        Returns:
            Ok((download filename, bytes))
        """
        market = await market_repository.get_by_fast_track_id(self.db_session, fast_track_id)
        if market is None:
            return Err(ResourceNotFoundException(detail="Market not found"))

        decision = AccessGate().authorize(editor, market)
        if not decision.allowed:
            return Err(PermissionDeniedException(decision.reason))

        normalized = IdentifierService.normalize_siret(siret)
        application = await application_repository.get_by_market_and_siret(self.db_session, market.id, normalized)
        if application is None:
            return Err(ResourceNotFoundException(detail="Application not found"))
        if not application.submitted:
            logger.info(f"Editor {editor.name} requested artifacts of unsubmitted application {application.id}")
            return Err(PermissionDeniedException("Application not yet submitted"))

        if kind == ATTESTATION:
            content = await self._read_artifact(application.attestation_path, "Attestation")
            filename = f"attestation_{application.siret}_{market.fast_track_id}.pdf"
        else:
            content = await self._read_artifact(application.dossier_path, "Dossier ZIP")
            filename = f"dossier_{application.siret}_{market.fast_track_id}.zip"
        if not content.is_ok:
            return content

        logger.info(f"Editor {editor.name} downloading {kind} for application {application.submission_id}")
        return Ok((filename, content.value))

    async def fetch_attestation_for_candidate(self, application: Application) -> Result[Tuple[str, bytes], DomainException]:
        if not application.submitted:
            return Err(PermissionDeniedException("Application not yet submitted"))
        content = await self._read_artifact(application.attestation_path, "Attestation")
        if not content.is_ok:
            return content
        return Ok((f"attestation_{application.submission_id}.pdf", content.value))
