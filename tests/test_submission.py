"""
Submission: preconditions, exactly-once under concurrency, and the
degraded state left when artifact generation fails.
"""

import asyncio
import re
from datetime import timedelta
from unittest.mock import MagicMock

from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.application.use_cases.application_use_cases import ApplicationLifecycle
from fasttrack.application.use_cases.artifact_use_cases import (
    ArtifactService,
    attestation_path_for,
    dossier_path_for,
)
from fasttrack.application.use_cases.submission_use_cases import SubmissionCoordinator
from fasttrack.domain.exceptions import (
    AlreadySubmittedException,
    DeadlinePassedException,
    IncompleteApplicationException,
    MarketClosedException,
)
from fasttrack.domain.result import Ok
from fasttrack.shared.utils.clock import as_utc, utcnow

from conftest import SIRET, change, fill_application

SUBMISSION_ID = re.compile(r"^FT\d{8}[0-9A-F]{8}$")


async def submit_in_own_session(session_factory, storage, fast_track_id):
    async with session_factory() as session:
        market = await market_repository.get_by_fast_track_id(session, fast_track_id)
        application = (await ApplicationLifecycle(session, storage).get(market, SIRET)).unwrap()
        return await SubmissionCoordinator(session, storage).submit(application)


class TestSubmit:

    async def test_successful_submission(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)

        result = (await SubmissionCoordinator(db, storage).submit(application)).unwrap()

        assert SUBMISSION_ID.match(result.submission_id)
        assert result.submission_id[2:10] == result.submitted_at.strftime("%Y%m%d")
        assert not result.degraded
        assert result.attestation_path == attestation_path_for(result.submission_id)
        assert result.dossier_path == dossier_path_for(result.submission_id)
        assert await storage.exists(result.attestation_path)
        assert await storage.exists(result.dossier_path)

        stored = await application_repository.get_fresh(db, result.application_id)
        assert stored.submitted
        assert stored.submission_id == result.submission_id
        assert as_utc(stored.submitted_at) == result.submitted_at
        assert stored.attestation_path == result.attestation_path

    async def test_second_submission_is_refused_with_original_id(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        coordinator = SubmissionCoordinator(db, storage)
        first = (await coordinator.submit(application)).unwrap()

        again = await coordinator.submit(await application_repository.get_fresh(db, first.application_id))

        assert isinstance(again.error, AlreadySubmittedException)
        assert again.error.submission_id == first.submission_id

    async def test_concurrent_submissions_succeed_exactly_once(self, db, session_factory, storage, market, documents):
        await fill_application(db, storage, market, documents)
        fast_track_id = market.fast_track_id

        results = await asyncio.gather(
            submit_in_own_session(session_factory, storage, fast_track_id),
            submit_in_own_session(session_factory, storage, fast_track_id),
        )

        winners = [result for result in results if isinstance(result, Ok)]
        losers = [result for result in results if not isinstance(result, Ok)]
        assert len(winners) == 1 and len(losers) == 1
        assert isinstance(losers[0].error, AlreadySubmittedException)
        assert losers[0].error.submission_id == winners[0].value.submission_id

    async def test_incomplete_application_lists_what_is_missing(self, db, storage, market, documents):
        dc1_id = documents["dc1"].id
        application = await fill_application(db, storage, market, documents, keys=("kbis", "insurance"))
        application_id = application.id

        result = await SubmissionCoordinator(db, storage).submit(application)

        assert isinstance(result.error, IncompleteApplicationException)
        assert result.error.missing_document_ids == [dc1_id]
        assert result.error.missing_fields == []
        assert (await application_repository.get_fresh(db, application_id)).in_progress

    async def test_missing_contact_fields_block_submission(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        application = (await ApplicationLifecycle(db, storage).update_contact_info(
            application, {"contact_person": ""}
        )).unwrap()

        result = await SubmissionCoordinator(db, storage).submit(application)

        assert result.error.missing_fields == ["contact_person"]

    async def test_deadline_passed(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        await change(db, market, deadline=utcnow() - timedelta(seconds=1))

        result = await SubmissionCoordinator(db, storage).submit(application)

        assert isinstance(result.error, DeadlinePassedException)

    async def test_inactive_market(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        await change(db, market, active=False)

        result = await SubmissionCoordinator(db, storage).submit(application)

        assert isinstance(result.error, MarketClosedException)


class TestDegradedArtifacts:

    async def test_render_failure_keeps_submission_and_sweep_repairs_it(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        failing_renderer = MagicMock()
        failing_renderer.render.side_effect = RuntimeError("font missing")
        coordinator = SubmissionCoordinator(
            db, storage, artifact_service=ArtifactService(db, storage, renderer=failing_renderer)
        )

        result = (await coordinator.submit(application)).unwrap()

        assert result.degraded
        assert result.attestation_path is None
        assert result.dossier_path == dossier_path_for(result.submission_id)
        assert any(error.startswith("attestation") for error in result.artifact_errors)
        stored = await application_repository.get_fresh(db, result.application_id)
        assert stored.submitted and stored.attestation_path is None
        await db.commit()

        reports = await ArtifactService(db, storage).sweep()

        assert [report.application_id for report in reports] == [result.application_id]
        assert reports[0].complete
        repaired = await application_repository.get_fresh(db, result.application_id)
        assert repaired.attestation_path == attestation_path_for(result.submission_id)
        assert await storage.exists(repaired.attestation_path)
        assert await application_repository.list_missing_artifacts(db) == []

    async def test_regenerating_an_unsubmitted_application_reports_an_error(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        report = await ArtifactService(db, storage).regenerate_artifacts(application.id)
        assert report.errors == ["application is not submitted"]
        assert not report.complete
