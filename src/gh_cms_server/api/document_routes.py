"""
Document Routes

CRUD and reorder endpoints for the documents of one collection. These
routes take a free ``{type}`` path segment, so the router must be
registered after every other ``/{owner}/{repo}/...`` router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from ..services.documents import DocumentService
from .dependencies import get_document_service
from .models import (
    Document,
    DocumentPage,
    DocumentPayload,
    OperationResult,
    ReorderRequest,
    ReorderResult,
)

router = APIRouter(prefix="/{owner}/{repo}/{type_slug}", tags=["documents"])


@router.get(
    "",
    response_model=DocumentPage,
    response_model_exclude_none=True,
    summary="List one page of a collection",
)
async def list_documents(
    type_slug: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
    page: Annotated[int, Query(ge=1)] = 1,
) -> DocumentPage:
    return await service.list_page(type_slug, page)


@router.post(
    "",
    response_model=Document,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
)
async def create_document(
    type_slug: str,
    req: DocumentPayload,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Document:
    return await service.create(type_slug, req.values, req.slug)


@router.get(
    "/{id_or_slug}",
    response_model=Document,
    response_model_exclude_none=True,
    summary="Read a document by id or slug",
)
async def read_document(
    type_slug: str,
    id_or_slug: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Document:
    return await service.read(type_slug, id_or_slug)


@router.put(
    "/{item_id}",
    response_model=Document,
    response_model_exclude_none=True,
    summary="Update a document in place",
)
async def update_document(
    type_slug: str,
    item_id: str,
    req: DocumentPayload,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Document:
    return await service.update(type_slug, item_id, req.values, req.slug)


@router.delete(
    "/{item_id}",
    response_model=OperationResult,
    response_model_exclude_none=True,
    summary="Delete a document",
)
async def delete_document(
    type_slug: str,
    item_id: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> OperationResult:
    await service.delete(type_slug, item_id)
    return OperationResult(status="deleted", message="Content value deleted successfully")


@router.post(
    "/{item_id}/reorder",
    response_model=ReorderResult,
    summary="Move a document to a new 1-based position",
)
async def reorder_document(
    type_slug: str,
    item_id: str,
    req: ReorderRequest,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> ReorderResult:
    result = await service.reorder(type_slug, item_id, req.position)
    return ReorderResult(
        status="reordered" if result.changed else "unchanged",
        position=result.position,
    )
