"""
Temporary upload and file serving routes.
"""

from __future__ import annotations

from fastapi import APIRouter, File, Form, Request, Response, UploadFile
from fastapi.responses import FileResponse

from usim.api.dependencies import get_state, get_ui_context
from usim.api.models import ErrorResponse, UploadResponse
from usim.uploads import file_url, is_inline_type

router = APIRouter(tags=["uploads"])


@router.post(
    "/api/upload/temporary",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse, "description": "File type not allowed"},
        413: {"model": ErrorResponse, "description": "File too large"},
    },
)
def upload_temporary(
    request: Request,
    response: Response,
    file: UploadFile = File(...),
    component_id: str = Form(..., min_length=1, max_length=100),
) -> dict:
    state = get_state(request)
    upload = state.uploads.create(
        file.file,
        filename=file.filename or "upload",
        content_type=file.content_type,
        component_id=component_id,
        context=get_ui_context(request),
    )
    response.headers["Cache-Control"] = "no-store"
    return {**upload.to_dict(), "url": file_url(upload.path)}


@router.delete(
    "/api/upload/temporary/{upload_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse, "description": "Unknown upload or owned by another session"}},
)
def delete_temporary(upload_id: str, request: Request) -> Response:
    get_state(request).uploads.delete(upload_id, get_ui_context(request))
    return Response(status_code=204)


@router.get("/files/{path:path}")
def serve_file(path: str, request: Request) -> FileResponse:
    file_path, mime_type = get_state(request).uploads.serve(path, get_ui_context(request))
    headers = {"Cache-Control": "private, max-age=300"}
    if is_inline_type(mime_type):
        return FileResponse(file_path, media_type=mime_type, headers=headers)
    return FileResponse(
        file_path,
        media_type=mime_type,
        headers=headers,
        filename=file_path.name,
        content_disposition_type="attachment",
    )
