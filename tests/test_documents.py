"""Tests for document upload and download URLs (object storage mocked)."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from lawfirm.integrations.storage import ObjectMetadata, PresignedUpload, UploadResult, storage
from lawfirm.models import Case, Client, Document


@pytest.fixture
def stored():
    upload = AsyncMock(return_value=UploadResult(key="org/documents/abc.txt", url="https://signed"))
    signed = AsyncMock(return_value="https://signed.example.com/abc.txt")
    with patch.object(storage, "upload_file", upload), patch.object(storage, "get_signed_download_url", signed):
        yield upload, signed


async def upload(client, headers, organization, content=b"Retainer agreement", **form):
    return await client.post(
        "/api/documents",
        data={"organizationId": organization.id, **form},
        files={"file": ("retainer.txt", content, "text/plain")},
        headers=headers,
    )


class TestUpload:

    async def test_text_upload_keeps_content(self, client, db, organization, owner_headers, stored):
        response = await upload(client, owner_headers, organization, category="CONTRACT")

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "retainer.txt"
        assert body["category"] == "CONTRACT"
        assert body["size"] == len(b"Retainer agreement")
        assert body["isAnalyzed"] is False

        upload_file, _ = stored
        args = upload_file.call_args
        assert args.args[3] == organization.id
        assert args.kwargs["folder"] == "documents"

        document = await db.scalar(select(Document).where(Document.id == body["id"]))
        assert document.storage_key == "org/documents/abc.txt"
        assert document.text_content == "Retainer agreement"

    async def test_case_fills_client(self, client, db, organization, owner_headers, stored):
        record = Client(organization_id=organization.id, email="cora@example.com")
        db.add(record)
        await db.flush()
        case = Case(organization_id=organization.id, client_id=record.id, title="Smith v. Jones")
        db.add(case)
        await db.commit()

        response = await upload(client, owner_headers, organization, caseId=case.id)
        assert response.json()["caseId"] == case.id
        assert response.json()["clientId"] == record.id

    async def test_unknown_case(self, client, organization, owner_headers, stored):
        response = await upload(client, owner_headers, organization, caseId="missing")
        assert response.status_code == 404
        assert response.json() == {"error": "Case not found"}

    async def test_empty_file(self, client, organization, owner_headers, stored):
        response = await upload(client, owner_headers, organization, content=b"")
        assert response.status_code == 400
        assert response.json() == {"error": "File is empty"}

    async def test_non_member(self, client, organization, outsider_headers, stored):
        response = await upload(client, outsider_headers, organization)
        assert response.status_code == 403
        stored[0].assert_not_awaited()


class TestDownload:

    async def test_presigned_url(self, client, db, organization, owner_headers, stored):
        created = await upload(client, owner_headers, organization)
        response = await client.get(f"/api/documents/{created.json()['id']}/download", headers=owner_headers)

        assert response.status_code == 200
        assert response.json() == {"url": "https://signed.example.com/abc.txt", "expiresIn": 3600}
        stored[1].assert_awaited_once_with("org/documents/abc.txt", expires_in=3600)

    async def test_non_member_sees_not_found(self, client, organization, owner_headers, outsider_headers, stored):
        created = await upload(client, owner_headers, organization)
        response = await client.get(f"/api/documents/{created.json()['id']}/download", headers=outsider_headers)
        assert response.status_code == 404


class TestDirectUpload:

    async def test_upload_url(self, client, organization, owner_headers):
        presigned = PresignedUpload(
            upload_url="https://signed.example.com/put",
            key=f"{organization.id}/documents/abc.pdf",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )
        with patch.object(storage, "generate_presigned_upload", AsyncMock(return_value=presigned)) as presign:
            response = await client.post(
                "/api/documents/upload-url",
                json={"organizationId": organization.id, "fileName": "scan.pdf", "mimeType": "application/pdf"},
                headers=owner_headers,
            )

        assert response.status_code == 200
        assert response.json()["key"] == presigned.key
        assert response.json()["uploadUrl"] == "https://signed.example.com/put"
        presign.assert_awaited_once_with(organization.id, "scan.pdf", "application/pdf", folder="documents")

    async def test_upload_url_non_member(self, client, organization, outsider_headers):
        response = await client.post(
            "/api/documents/upload-url",
            json={"organizationId": organization.id, "fileName": "scan.pdf", "mimeType": "application/pdf"},
            headers=outsider_headers,
        )
        assert response.status_code == 403

    async def register(self, client, headers, organization, key):
        return await client.post(
            "/api/documents/register",
            json={"organizationId": organization.id, "key": key, "fileName": "scan.pdf"},
            headers=headers,
        )

    async def test_register(self, client, organization, owner_headers):
        key = f"{organization.id}/documents/abc.pdf"
        metadata = ObjectMetadata(size=2048, content_type="application/pdf", last_modified=None)
        with patch.object(storage, "get_file_metadata", AsyncMock(return_value=metadata)):
            response = await self.register(client, owner_headers, organization, key)

        assert response.status_code == 201
        assert response.json()["size"] == 2048
        assert response.json()["mimeType"] == "application/pdf"

    async def test_register_foreign_key(self, client, organization, owner_headers):
        response = await self.register(client, owner_headers, organization, "other-org/documents/abc.pdf")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid storage key"}

    async def test_register_missing_object(self, client, organization, owner_headers):
        with patch.object(storage, "get_file_metadata", AsyncMock(return_value=None)):
            response = await self.register(client, owner_headers, organization, f"{organization.id}/documents/x.pdf")
        assert response.status_code == 404

    async def test_register_oversized_object_deleted(self, client, organization, owner_headers):
        key = f"{organization.id}/documents/huge.pdf"
        metadata = ObjectMetadata(size=26 * 1024 * 1024, content_type="application/pdf", last_modified=None)
        delete = AsyncMock(return_value=True)
        with patch.object(storage, "get_file_metadata", AsyncMock(return_value=metadata)), \
                patch.object(storage, "delete_file", delete):
            response = await self.register(client, owner_headers, organization, key)

        assert response.status_code == 400
        assert response.json() == {"error": "File is too large"}
        delete.assert_awaited_once_with(key)
