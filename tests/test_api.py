"""
HTTP surface, end to end through the middleware stack.
"""

import io
import re
import zipfile
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.inbound.api.deps import get_blob_storage
from fasttrack.adapters.outbound.persistence.database import get_db
from fasttrack.domain.models.access_domain_model import DENY_REASON
from fasttrack.main import app
from fasttrack.shared.utils.clock import utcnow

from conftest import SIRET, change

API = "/api/v1"


@pytest_asyncio.fixture
async def client(db, session_factory, storage, editor, other_editor, documents):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: storage
    # the fixture session must not hold the SQLite write lock during requests
    await db.commit()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


async def bearer(client, client_id="editor-a", client_secret="secret-a"):
    response = await client.post(f"{API}/oauth/app_token", json={
        "client_id": client_id, "client_secret": client_secret,
    })
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestHealth:

    async def test_up(self, client):
        response = await client.get("/up")
        assert response.json() == {"status": "ok"}

    async def test_security_headers(self, client):
        response = await client.get(f"{API}/documents")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")


class TestOAuth:

    async def test_app_token(self, client):
        response = await client.post(f"{API}/oauth/app_token", json={
            "client_id": "editor-a", "client_secret": "secret-a",
        })
        body = response.json()
        assert response.status_code == 200
        assert body["token_type"] == "Bearer"
        assert body["scope"].split() == ["app_market_config", "app_market_read", "app_application_read"]
        assert body["expires_in"] > 0

    async def test_wrong_secret_and_unknown_client(self, client):
        wrong = await client.post(f"{API}/oauth/app_token", json={"client_id": "editor-a", "client_secret": "x"})
        unknown = await client.post(f"{API}/oauth/app_token", json={"client_id": "ghost", "client_secret": "x"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["code"] == "INVALID_CREDENTIALS"
        assert wrong.json()["detail"] == unknown.json()["detail"]

    async def test_app_status(self, client):
        response = await client.get(f"{API}/oauth/app_status", headers=await bearer(client))
        body = response.json()
        assert response.status_code == 200
        assert body["editor_name"] == "Editeur A"
        assert body["valid"] is True

    async def test_missing_bearer(self, client):
        response = await client.get(f"{API}/oauth/app_status")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing bearer token"

    async def test_refresh_requires_the_secret(self, client):
        headers = await bearer(client)
        refreshed = await client.post(f"{API}/oauth/refresh_token", json={"client_secret": "secret-a"}, headers=headers)
        refused = await client.post(f"{API}/oauth/refresh_token", json={"client_secret": "nope"}, headers=headers)
        assert refreshed.status_code == 200
        assert refreshed.json()["access_token"] != headers["Authorization"].split()[1]
        assert refused.status_code == 401

    async def test_revoked_token_stops_working(self, client):
        headers = await bearer(client)
        response = await client.post(f"{API}/oauth/revoke", json={}, headers=headers)
        assert response.json() == {"revoked": True}
        assert (await client.get(f"{API}/oauth/app_status", headers=headers)).status_code == 401


class TestDocuments:

    async def test_catalog_for_market_type(self, client):
        body = (await client.get(f"{API}/documents", params={"market_type": "services"})).json()
        assert {d["name"] for d in body["mandatory"]} == {"Extrait Kbis", "Lettre de candidature (DC1)"}
        assert {d["name"] for d in body["optional"]} == {
            "Attestation d'assurance", "Références de prestations similaires",
        }

    async def test_unknown_market_type(self, client):
        response = await client.get(f"{API}/documents", params={"market_type": "consulting"})
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_INPUT"


class TestMarkets:

    def draft_body(self, **overrides):
        body = {
            "title": "Entretien des espaces verts",
            "description": "Tonte, taille et désherbage des parcs municipaux",
            "deadline": (utcnow() + timedelta(days=20)).isoformat(),
            "market_type": "services",
        }
        body.update(overrides)
        return body

    async def test_two_step_configuration(self, client, documents):
        headers = await bearer(client)
        draft = await client.post(f"{API}/markets/drafts", json=self.draft_body(), headers=headers)
        assert draft.status_code == 200, draft.text
        assert len(draft.json()["mandatory_documents"]) == 2

        created = await client.post(f"{API}/markets", json={
            "draft_token": draft.json()["draft_token"],
            "optional_document_ids": [documents["insurance"].id],
        }, headers=headers)
        assert created.status_code == 201, created.text
        market = created.json()
        assert re.fullmatch(r"[0-9a-f]{32}", market["fast_track_id"])
        assert sorted(r["required"] for r in market["requirements"]) == [False, True, True]

        fetched = await client.get(f"{API}/markets/{market['fast_track_id']}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Entretien des espaces verts"

    async def test_field_errors(self, client):
        response = await client.post(
            f"{API}/markets/drafts", json=self.draft_body(title="", market_type="consulting"),
            headers=await bearer(client),
        )
        assert response.status_code == 422
        assert set(response.json()["errors"]["fields"]) == {"title", "market_type"}

    async def test_invalid_optional_document(self, client, documents):
        response = await client.post(
            f"{API}/markets/drafts",
            json=self.draft_body(optional_document_ids=[documents["datasheet"].id]),
            headers=await bearer(client),
        )
        assert response.status_code == 422
        assert response.json()["errors"]["ids"] == [documents["datasheet"].id]

    async def test_list_only_own_markets(self, client, market):
        own = await client.get(f"{API}/markets", headers=await bearer(client))
        other = await client.get(f"{API}/markets", headers=await bearer(client, "editor-b", "secret-b"))
        assert [m["fast_track_id"] for m in own.json()] == [market.fast_track_id]
        assert other.json() == []

    async def test_other_editor_cannot_read_market(self, client, market):
        response = await client.get(
            f"{API}/markets/{market.fast_track_id}", headers=await bearer(client, "editor-b", "secret-b")
        )
        assert response.status_code == 403
        assert response.json()["detail"] == DENY_REASON


class TestCandidateJourney:

    async def upload(self, client, market, document_id, name="piece.pdf"):
        return await client.put(
            f"{API}/candidate/{market.fast_track_id}/applications/{SIRET}/documents/{document_id}",
            files={"file": (name, b"%PDF-1.4 " + name.encode(), "application/pdf")},
        )

    async def prepare(self, client, market, documents):
        started = await client.post(f"{API}/candidate/{market.fast_track_id}/applications", json={"siret": SIRET})
        assert started.status_code == 200, started.text
        patched = await client.patch(f"{API}/candidate/{market.fast_track_id}/applications/{SIRET}", json={
            "email": "depot@acme.fr", "contact_person": "Claire Bernard",
        })
        assert patched.status_code == 200, patched.text
        for key in ("kbis", "dc1"):
            response = await self.upload(client, market, documents[key].id, f"{key}.pdf")
            assert response.status_code == 200, response.text

    async def test_from_first_visit_to_editor_download(self, client, market, documents):
        base = f"{API}/candidate/{market.fast_track_id}/applications"
        started = (await client.post(base, json={"siret": "123 456 789 01234"})).json()
        assert started["status"] == "in_progress"
        assert started["missing_fields"] == ["email", "contact_person"]
        assert started["siret_display"] == "123 456 789 01234"

        await self.prepare(client, market, documents)
        application = (await client.get(f"{base}/{SIRET}")).json()
        assert application["complete"] is True
        assert [row["fulfilled"] for row in application["checklist"]] == [True, True, False]

        submitted = await client.post(f"{base}/{SIRET}/submit")
        assert submitted.status_code == 200, submitted.text
        submission = submitted.json()
        assert re.fullmatch(r"FT\d{8}[0-9A-F]{8}", submission["submission_id"])
        assert submission["attestation_available"] and submission["dossier_available"]
        assert submission["degraded"] is False

        again = await client.post(f"{base}/{SIRET}/submit")
        assert again.status_code == 409
        assert again.json()["errors"]["submission_id"] == submission["submission_id"]

        locked = await client.patch(f"{base}/{SIRET}", json={"phone": "0102030405"})
        assert locked.status_code == 409
        assert locked.json()["code"] == "APPLICATION_LOCKED"

        copy = await client.get(f"{base}/{SIRET}/attestation")
        assert copy.status_code == 200
        assert copy.headers["content-type"] == "application/pdf"
        assert f"attestation_{submission['submission_id']}.pdf" in copy.headers["content-disposition"]

        query = {"fast_track_id": market.fast_track_id, "siret": SIRET}
        headers = await bearer(client)
        attestation = await client.get(f"{API}/applications/download_attestation", params=query, headers=headers)
        dossier = await client.get(f"{API}/applications/download_dossier_zip", params=query, headers=headers)
        assert attestation.status_code == 200
        assert attestation.content == copy.content
        assert f"dossier_{SIRET}_{market.fast_track_id}.zip" in dossier.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(dossier.content)) as zf:
            assert "SHA256SUMS.txt" in zf.namelist()

        stranger = await client.get(
            f"{API}/applications/download_dossier_zip", params=query,
            headers=await bearer(client, "editor-b", "secret-b"),
        )
        assert stranger.status_code == 403

    async def test_incomplete_submission(self, client, market, documents):
        base = f"{API}/candidate/{market.fast_track_id}/applications"
        await client.post(base, json={"siret": SIRET})

        response = await client.post(f"{base}/{SIRET}/submit")

        assert response.status_code == 422
        assert response.json()["errors"] == {
            "missing_fields": ["email", "contact_person"],
            "missing_document_ids": sorted([documents["kbis"].id, documents["dc1"].id]),
        }

    async def test_download_before_submission_is_refused(self, client, market, documents):
        await self.prepare(client, market, documents)
        response = await client.get(
            f"{API}/applications/download_attestation",
            params={"fast_track_id": market.fast_track_id, "siret": SIRET},
            headers=await bearer(client),
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Application not yet submitted"

    async def test_closed_market_refuses_writes_but_serves_reads(self, client, db, market, documents):
        base = f"{API}/candidate/{market.fast_track_id}/applications"
        await client.post(base, json={"siret": SIRET})
        await change(db, market, active=False)

        write = await client.post(base, json={"siret": "98765432109876"})
        upload = await self.upload(client, market, documents["kbis"].id)
        read = await client.get(f"{base}/{SIRET}")

        assert write.status_code == upload.status_code == 410
        assert write.json()["code"] == "MARKET_CLOSED"
        assert read.status_code == 200

    async def test_oversized_upload_is_refused(self, client, market, documents, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)
        base = f"{API}/candidate/{market.fast_track_id}/applications"
        await client.post(base, json={"siret": SIRET})

        response = await client.put(
            f"{base}/{SIRET}/documents/{documents['kbis'].id}",
            files={"file": ("big.pdf", b"%PDF-1.4 " + b"0" * (1024 * 1024), "application/pdf")},
        )

        assert response.status_code == 422
        assert response.json()["errors"]["fields"] == {"file": "exceeds 1 MB"}
        application = (await client.get(f"{base}/{SIRET}")).json()
        assert not any(row["fulfilled"] for row in application["checklist"])

    async def test_unknown_market(self, client):
        response = await client.post(f"{API}/candidate/{'0' * 32}/applications", json={"siret": SIRET})
        assert response.status_code == 404

    async def test_invalid_siret(self, client, market):
        response = await client.post(
            f"{API}/candidate/{market.fast_track_id}/applications", json={"siret": "12AB"}
        )
        assert response.status_code == 422
        assert "siret" in response.json()["errors"]["fields"]
