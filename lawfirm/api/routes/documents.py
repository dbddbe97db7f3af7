"""
api/routes/documents.py
-----------------------
Document endpoints.

POST /api/documents                 Multipart upload into object storage.
POST /api/documents/upload-url      Presigned PUT for a direct browser upload.
POST /api/documents/register        Record a directly uploaded object.
GET  /api/documents/{id}/download   Presigned download URL.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.db.session import get_db
from lawfirm.dependencies import get_current_account
from lawfirm.integrations.storage import DEFAULT_URL_EXPIRY
from lawfirm.models.account import Account
from lawfirm.models.document import DocumentCategory
from lawfirm.schemas.document import (
    DocumentDownload,
    DocumentRead,
    RegisterUploadRequest,
    UploadUrlRequest,
    UploadUrlResponse,
)
from lawfirm.services.document_service import DocumentService

router = APIRouter(prefix="/api/documents", tags=["Documents"])


@router.post(
    "",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document",
)
async def upload_document(
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
    file: Annotated[UploadFile, File()],
    organization_id: Annotated[str, Form(alias="organizationId")],
    category: Annotated[DocumentCategory, Form()] = DocumentCategory.OTHER,
    case_id: Annotated[Optional[str], Form(alias="caseId")] = None,
    client_id: Annotated[Optional[str], Form(alias="clientId")] = None,
    is_confidential: Annotated[bool, Form(alias="isConfidential")] = False,
) -> DocumentRead:
    data = await file.read()
    document = await DocumentService.upload(
        db,
        account.id,
        organization_id,
        data,
        file.filename or "document",
        file.content_type or "application/octet-stream",
        category=category,
        case_id=case_id,
        client_id=client_id,
        is_confidential=is_confidential,
    )
    return DocumentRead.model_validate(document)


@router.post("/upload-url", response_model=UploadUrlResponse, summary="Presigned upload URL")
async def upload_url(
    body: UploadUrlRequest,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UploadUrlResponse:
    """PUT the file to uploadUrl with the same Content-Type, then call /register with the key."""
    upload = await DocumentService.presign_upload(
        db, account.id, body.organization_id, body.file_name, body.mime_type
    )
    return UploadUrlResponse(upload_url=upload.upload_url, key=upload.key, expires_at=upload.expires_at)


@router.post(
    "/register",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a direct upload",
)
async def register_upload(
    body: RegisterUploadRequest,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DocumentRead:
    document = await DocumentService.register_upload(
        db,
        account.id,
        body.organization_id,
        body.key,
        body.file_name,
        category=body.category,
        case_id=body.case_id,
        client_id=body.client_id,
        is_confidential=body.is_confidential,
    )
    return DocumentRead.model_validate(document)


@router.get("/{document_id}/download", response_model=DocumentDownload, summary="Download URL")
async def download_document(
    document_id: str,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DocumentDownload:
    url = await DocumentService.download_url(db, account.id, document_id)
    return DocumentDownload(url=url, expires_in=DEFAULT_URL_EXPIRY)
