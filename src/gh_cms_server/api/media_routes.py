"""
Media Routes

Upload takes the raw request body; the file name comes from the query
string and the media type from the ``Content-Type`` header.
"""

from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from ..services.media import MediaService
from .dependencies import get_media_service
from .models import MediaFile, MediaPage

router = APIRouter(prefix="/{owner}/{repo}/media", tags=["media"])


def content_disposition(file_name: str) -> str:
    """
    Attachment header per RFC 6266.

    The quoted ``filename`` is an ASCII-only fallback; ``filename*`` carries
    the exact name percent-encoded as UTF-8.
    """
    fallback = "".join(
        ch if " " <= ch <= "~" and ch not in '"\\' else "_"
        for ch in file_name
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.get(
    "",
    response_model=MediaPage,
    summary="List one page of media files",
)
async def list_media(
    service: Annotated[MediaService, Depends(get_media_service)],
    page: Annotated[int, Query(ge=1)] = 1,
) -> MediaPage:
    return await service.list_page(page)


@router.post(
    "",
    response_model=MediaFile,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a media file",
)
async def upload_media(
    request: Request,
    service: Annotated[MediaService, Depends(get_media_service)],
    file_name: Annotated[str, Query(min_length=1)],
    content_type: Annotated[Optional[str], Header()] = None,
) -> MediaFile:
    content = await request.body()
    return await service.upload(file_name, content, content_type)


@router.get(
    "/{media_id}",
    summary="Download a media file",
    response_class=Response,
)
async def get_media(
    media_id: str,
    service: Annotated[MediaService, Depends(get_media_service)],
) -> Response:
    media, content = await service.get(media_id)
    return Response(
        content=content,
        media_type=media.file_type,
        headers={
            "Content-Disposition": content_disposition(media.file_name),
        },
    )
