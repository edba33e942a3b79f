"""
Attestation and dossier generation, and artifact retrieval.
"""

import hashlib
import io
import zipfile

import pytest

from fasttrack.adapters.outbound.rendering.attestation_renderer import attestation_renderer
from fasttrack.adapters.outbound.rendering.dossier_bundler import (
    CHECKSUMS_NAME,
    attachment_member_name,
    build_dossier_zip,
    slugify,
)
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.application.use_cases.artifact_use_cases import ATTESTATION, DOSSIER, ArtifactService
from fasttrack.application.use_cases.submission_use_cases import SubmissionCoordinator
from fasttrack.domain.exceptions import PermissionDeniedException, ResourceNotFoundException

from conftest import SIRET, fill_application


async def submitted_application(db, storage, market, documents, keys=("kbis", "dc1", "insurance")):
    application = await fill_application(db, storage, market, documents, keys=keys)
    result = (await SubmissionCoordinator(db, storage).submit(application)).unwrap()
    application = await application_repository.get_fresh(db, result.application_id)
    await db.commit()
    return application


class TestDossierBundler:

    def test_slugify(self):
        assert slugify("Lettre de candidature (DC1)") == "lettre_de_candidature_dc1"
        assert slugify("Attestation d'assurance décennale") == "attestation_d_assurance_decennale"
        assert slugify("***") == "document"

    def test_member_name_keeps_lowercased_extension(self):
        assert attachment_member_name(7, "Extrait Kbis", SIRET, "Scan.PDF") == f"7_extrait_kbis_{SIRET}.pdf"
        assert attachment_member_name(7, "Extrait Kbis", SIRET, "scan") == f"7_extrait_kbis_{SIRET}"

    def test_bundle_is_byte_stable_and_sorted(self):
        members = [("b.pdf", b"second"), ("a.pdf", b"first")]
        bundle = build_dossier_zip(members)
        assert bundle == build_dossier_zip(list(reversed(members)))

        with zipfile.ZipFile(io.BytesIO(bundle)) as zf:
            assert zf.namelist() == ["a.pdf", "b.pdf", CHECKSUMS_NAME]
            manifest = zf.read(CHECKSUMS_NAME).decode().splitlines()
        assert manifest == [
            f"{hashlib.sha256(b'first').hexdigest()}  a.pdf",
            f"{hashlib.sha256(b'second').hexdigest()}  b.pdf",
        ]


class TestGeneratedArtifacts:

    async def test_dossier_contains_attachments_attestation_and_checksums(self, db, storage, market, documents):
        application = await submitted_application(db, storage, market, documents)
        bundle = await storage.read(application.dossier_path)

        with zipfile.ZipFile(io.BytesIO(bundle)) as zf:
            names = zf.namelist()
            contents = {name: zf.read(name) for name in names}

        assert set(names) == {
            f"{documents['kbis'].id}_extrait_kbis_{SIRET}.pdf",
            f"{documents['dc1'].id}_lettre_de_candidature_dc1_{SIRET}.pdf",
            f"{documents['insurance'].id}_attestation_d_assurance_{SIRET}.pdf",
            f"attestation_{application.submission_id}.pdf",
            CHECKSUMS_NAME,
        }
        assert names[-1] == CHECKSUMS_NAME
        assert contents[f"attestation_{application.submission_id}.pdf"] == await storage.read(
            application.attestation_path
        )
        for line in contents[CHECKSUMS_NAME].decode().splitlines():
            digest, name = line.split("  ", 1)
            assert hashlib.sha256(contents[name]).hexdigest() == digest

    async def test_regeneration_gives_identical_bytes(self, db, storage, market, documents):
        application = await submitted_application(db, storage, market, documents)
        attestation = await storage.read(application.attestation_path)
        dossier = await storage.read(application.dossier_path)

        report = await ArtifactService(db, storage).regenerate_artifacts(application.id)

        assert report.complete
        assert await storage.read(application.attestation_path) == attestation
        assert await storage.read(application.dossier_path) == dossier

    async def test_attestation_text(self, db, storage, market, documents):
        application = await submitted_application(db, storage, market, documents, keys=("kbis", "dc1"))
        service = ArtifactService(db, storage)
        checks, _ = await service.verified_checklist(application)

        text = attestation_renderer.render_text(service._attestation_context(application, checks))

        assert application.submission_id in text
        assert "123 456 789 01234" in text
        assert "Extrait Kbis : Fourni" in text
        assert "Attestation d'assurance : Non fourni" in text
        assert attestation_renderer.render_pdf(text, "t").startswith(b"%PDF")

    async def test_missing_blob_is_not_counted_as_fulfilled(self, db, storage, market, documents):
        application = await submitted_application(db, storage, market, documents, keys=("kbis", "dc1"))
        kbis = next(a for a in application.attachments if a.document_id == documents["kbis"].id)
        (storage.root / kbis.blob_path).unlink()

        checks, verified = await ArtifactService(db, storage).verified_checklist(application)

        assert kbis not in verified
        by_id = {check.document_id: check for check in checks}
        assert not by_id[documents["kbis"].id].fulfilled
        assert by_id[documents["dc1"].id].fulfilled


class TestEditorDownload:

    async def test_owner_downloads_both_artifacts(self, db, storage, editor, market, documents):
        application = await submitted_application(db, storage, market, documents)
        service = ArtifactService(db, storage)

        name, pdf = (await service.fetch_for_editor(editor, market.fast_track_id, SIRET, ATTESTATION)).unwrap()
        zip_name, bundle = (await service.fetch_for_editor(editor, market.fast_track_id, SIRET, DOSSIER)).unwrap()

        assert name == f"attestation_{SIRET}_{market.fast_track_id}.pdf"
        assert pdf == await storage.read(application.attestation_path)
        assert zip_name == f"dossier_{SIRET}_{market.fast_track_id}.zip"
        assert zipfile.is_zipfile(io.BytesIO(bundle))

    async def test_other_editor_is_denied(self, db, storage, other_editor, market, documents):
        await submitted_application(db, storage, market, documents)
        result = await ArtifactService(db, storage).fetch_for_editor(
            other_editor, market.fast_track_id, SIRET, ATTESTATION
        )
        assert isinstance(result.error, PermissionDeniedException)

    async def test_unsubmitted_application_is_not_served(self, db, storage, editor, market, documents):
        await fill_application(db, storage, market, documents)
        result = await ArtifactService(db, storage).fetch_for_editor(editor, market.fast_track_id, SIRET, DOSSIER)
        assert isinstance(result.error, PermissionDeniedException)
        assert result.error.detail == "Application not yet submitted"

    @pytest.mark.parametrize("fast_track_id,siret", [("f" * 32, SIRET), (None, "99999999999999")])
    async def test_unknown_market_or_application(self, db, storage, editor, market, fast_track_id, siret):
        result = await ArtifactService(db, storage).fetch_for_editor(
            editor, fast_track_id or market.fast_track_id, siret, ATTESTATION
        )
        assert isinstance(result.error, ResourceNotFoundException)

    async def test_missing_artifact_file_is_not_found(self, db, storage, editor, market, documents):
        application = await submitted_application(db, storage, market, documents)
        (storage.root / application.dossier_path).unlink()
        result = await ArtifactService(db, storage).fetch_for_editor(editor, market.fast_track_id, SIRET, DOSSIER)
        assert isinstance(result.error, ResourceNotFoundException)
        assert result.error.detail == "Dossier ZIP not available"


class TestCandidateAttestation:

    async def test_candidate_gets_attestation_named_by_submission(self, db, storage, market, documents):
        application = await submitted_application(db, storage, market, documents)
        name, pdf = (await ArtifactService(db, storage).fetch_attestation_for_candidate(application)).unwrap()
        assert name == f"attestation_{application.submission_id}.pdf"
        assert pdf.startswith(b"%PDF")

    async def test_not_before_submission(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        result = await ArtifactService(db, storage).fetch_attestation_for_candidate(application)
        assert isinstance(result.error, PermissionDeniedException)
