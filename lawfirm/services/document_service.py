"""
services/document_service.py
----------------------------
Document upload and download through object storage.

Two upload paths: multipart through the API, or a presigned PUT straight
from the browser followed by register_upload, which checks the stored
object before recording it.

Files are stored under {organization_id}/documents/{random}.{ext}. Plain
text uploads also keep their text in text_content so analysis can skip the
storage round trip.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import NotFound, ValidationError
from lawfirm.core.logging import get_logger
from lawfirm.integrations.storage import DEFAULT_URL_EXPIRY, PresignedUpload, storage
from lawfirm.models.case import Case
from lawfirm.models.document import Document, DocumentCategory
from lawfirm.services.organization_service import OrganizationService

logger = get_logger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024
DOCUMENT_FOLDER = "documents"


class DocumentService:

    @staticmethod
    async def _resolve_client(
        db: AsyncSession, organization_id: str, case_id: Optional[str], client_id: Optional[str]
    ) -> Optional[str]:
        """The case's client when no client is given. NotFound for a case outside the organization."""
        if case_id is None:
            return client_id
        case = await db.scalar(
            select(Case).where(Case.id == case_id, Case.organization_id == organization_id)
        )
        if case is None:
            raise NotFound("Case not found")
        return client_id or case.client_id

    @staticmethod
    async def upload(
        db: AsyncSession,
        account_id: str,
        organization_id: str,
        data: bytes,
        file_name: str,
        mime_type: str,
        category: DocumentCategory = DocumentCategory.OTHER,
        case_id: Optional[str] = None,
        client_id: Optional[str] = None,
        is_confidential: bool = False,
    ) -> Document:
        """
        Raises:
            Forbidden: Not a member of the organization.
            ValidationError: Empty or oversized file.
            NotFound: case_id does not belong to the organization.
            UpstreamFailure: Storage rejected the upload.
        """
        await OrganizationService.require_membership(db, account_id, organization_id)

        if not data:
            raise ValidationError("File is empty")
        if len(data) > MAX_UPLOAD_BYTES:
            raise ValidationError("File is too large")

        client_id = await DocumentService._resolve_client(db, organization_id, case_id, client_id)

        uploaded = await storage.upload_file(
            data,
            file_name,
            mime_type,
            organization_id,
            folder=DOCUMENT_FOLDER,
            metadata={"uploadedBy": account_id},
        )

        text_content = None
        if mime_type.startswith("text/"):
            text_content = data.decode("utf-8", errors="replace")

        document = Document(
            organization_id=organization_id,
            case_id=case_id,
            client_id=client_id,
            uploaded_by_id=account_id,
            name=file_name,
            category=category.value,
            storage_key=uploaded.key,
            mime_type=mime_type,
            size=len(data),
            is_confidential=is_confidential,
            text_content=text_content,
        )
        db.add(document)
        await db.flush()
        logger.info("Document uploaded", document_id=document.id, organization_id=organization_id, size=len(data))
        return document

    # ── Direct browser uploads ───────────────────────────────────────────────

    @staticmethod
    async def presign_upload(
        db: AsyncSession,
        account_id: str,
        organization_id: str,
        file_name: str,
        mime_type: str,
    ) -> PresignedUpload:
        await OrganizationService.require_membership(db, account_id, organization_id)
        upload = await storage.generate_presigned_upload(
            organization_id, file_name, mime_type, folder=DOCUMENT_FOLDER
        )
        logger.info("Upload URL issued", organization_id=organization_id, key=upload.key)
        return upload

    @staticmethod
    async def register_upload(
        db: AsyncSession,
        account_id: str,
        organization_id: str,
        key: str,
        file_name: str,
        category: DocumentCategory = DocumentCategory.OTHER,
        case_id: Optional[str] = None,
        client_id: Optional[str] = None,
        is_confidential: bool = False,
    ) -> Document:
        """
        Record an object the browser PUT to a presigned URL.

        Raises:
            Forbidden: Not a member of the organization.
            ValidationError: Key outside the organization's document folder,
                or the object is empty or oversized (it is deleted).
            NotFound: The object does not exist, or case_id is not in the organization.
        """
        await OrganizationService.require_membership(db, account_id, organization_id)

        if not key.startswith(f"{organization_id}/{DOCUMENT_FOLDER}/"):
            raise ValidationError("Invalid storage key")

        metadata = await storage.get_file_metadata(key)
        if metadata is None:
            raise NotFound("Uploaded file not found")
        if not 0 < metadata.size <= MAX_UPLOAD_BYTES:
            await storage.delete_file(key)
            raise ValidationError("File is empty" if metadata.size == 0 else "File is too large")

        client_id = await DocumentService._resolve_client(db, organization_id, case_id, client_id)
        document = Document(
            organization_id=organization_id,
            case_id=case_id,
            client_id=client_id,
            uploaded_by_id=account_id,
            name=file_name,
            category=category.value,
            storage_key=key,
            mime_type=metadata.content_type,
            size=metadata.size,
            is_confidential=is_confidential,
        )
        db.add(document)
        await db.flush()
        logger.info("Direct upload registered", document_id=document.id, organization_id=organization_id)
        return document

    @staticmethod
    async def download_url(db: AsyncSession, account_id: str, document_id: str) -> str:
        """Presigned URL, valid for DEFAULT_URL_EXPIRY seconds. Non-members get NotFound."""
        document = await db.scalar(select(Document).where(Document.id == document_id))
        if document is None:
            raise NotFound("Document not found")
        membership = await OrganizationService.get_membership(db, account_id, document.organization_id)
        if membership is None:
            raise NotFound("Document not found")

        url = await storage.get_signed_download_url(document.storage_key, expires_in=DEFAULT_URL_EXPIRY)
        logger.info("Download URL issued", document_id=document.id, account_id=account_id)
        return url
