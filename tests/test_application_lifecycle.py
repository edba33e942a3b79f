"""
Candidate application lifecycle: creation on first visit, contact edits,
attachments and the freeze after submission.
"""

import asyncio
import hashlib
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from fasttrack.adapters.outbound.persistence.models import Application
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.application.use_cases.application_use_cases import ApplicationLifecycle, attachment_blob_path
from fasttrack.domain.exceptions import (
    ApplicationLockedException,
    DeadlinePassedException,
    InvalidInputException,
    InvalidReferenceException,
    MarketClosedException,
    ResourceNotFoundException,
)
from fasttrack.shared.utils.clock import utcnow

from conftest import SIRET, change, count_rows, fill_application


async def visit(session_factory, fast_track_id, siret):
    """One candidate request in its own session."""
    async with session_factory() as session:
        market = await market_repository.get_by_fast_track_id(session, fast_track_id)
        application = (await ApplicationLifecycle(session).find_or_create(market, siret)).unwrap()
        application_id = application.id
        await session.commit()
        return application_id


class TestOpenMarket:

    async def test_open_market(self, db, market):
        opened = (await ApplicationLifecycle(db).open_market(market.fast_track_id)).unwrap()
        assert opened.id == market.id

    async def test_unknown_market(self, db, market):
        result = await ApplicationLifecycle(db).open_market("0" * 32)
        assert isinstance(result.error, ResourceNotFoundException)

    async def test_inactive_market_is_closed(self, db, market):
        await change(db, market, active=False)
        result = await ApplicationLifecycle(db).open_market(market.fast_track_id)
        assert isinstance(result.error, MarketClosedException)

    async def test_deadline_passed(self, db, market):
        await change(db, market, deadline=utcnow() - timedelta(minutes=1))
        result = await ApplicationLifecycle(db).open_market(market.fast_track_id)
        assert isinstance(result.error, DeadlinePassedException)


class TestFindOrCreate:

    async def test_first_visit_creates_in_progress_application(self, db, market):
        application = (await ApplicationLifecycle(db).find_or_create(market, "123 456 789 01234")).unwrap()
        assert application.siret == SIRET
        assert application.in_progress
        assert application.company_name == "Entreprise 123456789"
        assert application.submission_id is None

    async def test_second_visit_returns_same_application(self, db, market):
        lifecycle = ApplicationLifecycle(db)
        first = (await lifecycle.find_or_create(market, SIRET, seed_company_name="ACME")).unwrap()
        second = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        assert first.id == second.id
        assert second.company_name == "ACME"

    async def test_invalid_siret(self, db, market):
        result = await ApplicationLifecycle(db).find_or_create(market, "1234")
        assert isinstance(result.error, InvalidInputException)
        assert "siret" in result.error.fields

    async def test_concurrent_first_visits_share_one_application(self, db, session_factory, market):
        ids = await asyncio.gather(
            visit(session_factory, market.fast_track_id, SIRET),
            visit(session_factory, market.fast_track_id, SIRET),
        )
        assert ids[0] == ids[1]
        assert await count_rows(db, Application, market_id=market.id) == 1

    async def test_lost_insert_race_loads_the_winner(self, db, market):
        lifecycle = ApplicationLifecycle(db)
        winner = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        winner_id = winner.id
        await db.commit()

        real_lookup = application_repository.get_by_market_and_siret
        calls = []

        async def stale_first_lookup(session, market_id, siret):
            calls.append(siret)
            if len(calls) == 1:
                return None
            return await real_lookup(session, market_id, siret)

        with patch.object(
                application_repository, "get_by_market_and_siret", AsyncMock(side_effect=stale_first_lookup)
        ):
            loser = (await lifecycle.find_or_create(market, SIRET)).unwrap()

        assert loser.id == winner_id
        assert len(calls) == 2
        assert await count_rows(db, Application, market_id=market.id) == 1


class TestContactInfo:

    async def test_partial_update_keeps_other_fields(self, db, market):
        lifecycle = ApplicationLifecycle(db)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        application = (await lifecycle.update_contact_info(
            application, {"email": "achats@acme.fr", "contact_person": "Paul Martin"}
        )).unwrap()
        application = (await lifecycle.update_contact_info(application, {"phone": "+33 1 23 45 67 89"})).unwrap()

        assert application.email == "achats@acme.fr"
        assert application.contact_person == "Paul Martin"
        assert application.phone == "+33 1 23 45 67 89"

    async def test_empty_string_clears_a_field(self, db, market):
        lifecycle = ApplicationLifecycle(db)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        application = (await lifecycle.update_contact_info(application, {"phone": "01 02 03 04 05"})).unwrap()
        application = (await lifecycle.update_contact_info(application, {"phone": ""})).unwrap()
        assert application.phone is None

    async def test_invalid_values_are_reported_per_field(self, db, market):
        lifecycle = ApplicationLifecycle(db)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        result = await lifecycle.update_contact_info(
            application, {"email": "not-an-email", "siret": "98765432109876"}
        )
        assert isinstance(result.error, InvalidInputException)
        assert set(result.error.fields) == {"email", "siret"}


class TestAttachments:

    async def test_attachment_is_stored_with_checksum(self, db, storage, market, documents):
        lifecycle = ApplicationLifecycle(db, storage)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        data = b"%PDF-1.4 kbis"

        attachment = (await lifecycle.attach_document(
            application, documents["kbis"].id, "../../etc/kbis.pdf", "application/pdf", data
        )).unwrap()

        assert attachment.filename == "kbis.pdf"
        assert attachment.sha256 == hashlib.sha256(data).hexdigest()
        assert attachment.blob_path == attachment_blob_path(application.id, documents["kbis"].id)
        assert await storage.read(attachment.blob_path) == data

    async def test_reupload_replaces_previous_file(self, db, storage, market, documents):
        lifecycle = ApplicationLifecycle(db, storage)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        document_id = documents["dc1"].id
        (await lifecycle.attach_document(application, document_id, "v1.pdf", "application/pdf", b"v1")).unwrap()
        (await lifecycle.attach_document(application, document_id, "v2.pdf", "application/pdf", b"v2")).unwrap()

        application = (await lifecycle.get(market, SIRET)).unwrap()
        assert [a.filename for a in application.attachments] == ["v2.pdf"]
        assert await storage.read(application.attachments[0].blob_path) == b"v2"

    async def test_document_outside_market_requirements(self, db, storage, market, documents):
        lifecycle = ApplicationLifecycle(db, storage)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        result = await lifecycle.attach_document(
            application, documents["references"].id, "refs.pdf", "application/pdf", b"refs"
        )
        assert isinstance(result.error, InvalidReferenceException)

    async def test_rejected_uploads(self, db, storage, market, documents):
        lifecycle = ApplicationLifecycle(db, storage)
        application = (await lifecycle.find_or_create(market, SIRET)).unwrap()
        kbis = documents["kbis"].id

        empty = await lifecycle.attach_document(application, kbis, "kbis.pdf", "application/pdf", b"")
        html = await lifecycle.attach_document(application, kbis, "kbis.html", "text/html", b"<html>")

        assert empty.error.fields == {"file": "is empty"}
        assert "text/html" in html.error.fields["file"]


class TestCompleteness:

    async def test_required_documents_and_contact_make_it_complete(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        lifecycle = ApplicationLifecycle(db, storage)
        assert lifecycle.is_complete(application)
        assert lifecycle.ready_for_submission(application)
        assert lifecycle.missing(application) == ([], [])

    async def test_optional_document_does_not_replace_a_required_one(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents, keys=("kbis", "insurance"))
        lifecycle = ApplicationLifecycle(db, storage)
        assert not lifecycle.is_complete(application)
        assert lifecycle.missing(application) == ([], [documents["dc1"].id])

    async def test_checklist_rows(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents, keys=("kbis",))
        rows = ApplicationLifecycle(db, storage).checklist(application)
        assert [(r.document_id, r.required, r.fulfilled) for r in rows] == sorted([
            (documents["kbis"].id, True, True),
            (documents["dc1"].id, True, False),
            (documents["insurance"].id, False, False),
        ], key=lambda row: (not row[1], row[0]))


class TestLockedAfterSubmission:

    async def test_submitted_application_is_frozen(self, db, storage, market, documents):
        application = await fill_application(db, storage, market, documents)
        assert await application_repository.mark_submitted(db, application.id, "FT20260101ABCDEF01", utcnow())
        await db.commit()
        application = await application_repository.get_fresh(db, application.id)
        lifecycle = ApplicationLifecycle(db, storage)

        contact = await lifecycle.update_contact_info(application, {"email": "autre@acme.fr"})
        upload = await lifecycle.attach_document(
            application, documents["kbis"].id, "kbis.pdf", "application/pdf", b"new"
        )

        assert isinstance(contact.error, ApplicationLockedException)
        assert isinstance(upload.error, ApplicationLockedException)
        assert not lifecycle.ready_for_submission(application)
