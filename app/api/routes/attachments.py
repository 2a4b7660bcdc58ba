"""Attachment API routes."""
from __future__ import annotations

from typing import List
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_attachment_manager
from app.api.schemas.attachment import AttachmentDeleteResponse, AttachmentOut
from app.core.config import settings
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.attachment_service import AttachmentManager, UploadedFile

router = APIRouter()


@router.post(
    "/tasks/{task_id}/attachments",
    response_model=AttachmentOut,
    status_code=status.HTTP_201_CREATED,
    tags=["attachments"],
)
async def upload_attachment(
    task_id: UUID,
    http_request: Request,
    file: UploadFile = File(...),
    manager: AttachmentManager = Depends(get_attachment_manager),
) -> AttachmentOut:
    """Attach a file to an existing task."""
    request_id = getattr(http_request.state, "request_id", None)
    # One byte past the ceiling is enough for the size check to reject it.
    data = await file.read(settings.attachment_max_bytes + 1)
    uploaded = UploadedFile(
        file_name=file.filename or "file",
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )
    with trace(
        "attachment.upload",
        metadata={
            "task_id": str(task_id),
            "file_type": uploaded.content_type,
            "file_size": uploaded.size,
        },
        request_id=request_id,
        workspace_id=str(manager.scope.workspace_id),
    ):
        attachment = await run_in_threadpool(manager.upload, task_id, uploaded)

    log_metric("attachment.upload.bytes", uploaded.size, metadata={"file_type": uploaded.content_type})
    return AttachmentOut.model_validate(attachment)


@router.get("/tasks/{task_id}/attachments", response_model=List[AttachmentOut], tags=["attachments"])
def list_attachments(
    task_id: UUID,
    manager: AttachmentManager = Depends(get_attachment_manager),
) -> List[AttachmentOut]:
    return [AttachmentOut.model_validate(item) for item in manager.list_for_task(task_id)]


@router.get("/attachments/{attachment_id}/content", tags=["attachments"])
def download_attachment(
    attachment_id: UUID,
    manager: AttachmentManager = Depends(get_attachment_manager),
) -> Response:
    attachment, data = manager.download(attachment_id)
    disposition = f"attachment; filename*=UTF-8''{quote(attachment.file_name)}"
    return Response(
        content=data,
        media_type=attachment.file_type,
        headers={"Content-Disposition": disposition},
    )


@router.delete("/attachments/{attachment_id}", response_model=AttachmentDeleteResponse, tags=["attachments"])
def delete_attachment(
    attachment_id: UUID,
    http_request: Request,
    manager: AttachmentManager = Depends(get_attachment_manager),
) -> AttachmentDeleteResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "attachment.remove",
        metadata={"attachment_id": str(attachment_id)},
        request_id=request_id,
        workspace_id=str(manager.scope.workspace_id),
    ):
        result = manager.remove(attachment_id)

    log_metric("attachment.remove.blob_removed", 1 if result.blob_removed else 0)
    return AttachmentDeleteResponse(
        id=result.attachment_id,
        deleted=True,
        blob_removed=result.blob_removed,
        request_id=request_id or "",
    )
