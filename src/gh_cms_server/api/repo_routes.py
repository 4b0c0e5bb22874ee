"""
Repository & Content Type Routes

Bootstrap a repository for the CMS and manage its content types.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from ..content.models import ContentType, RepoConfig
from ..services.content_types import ContentTypeService
from .dependencies import get_content_type_service
from .models import ContentTypeRequest, InitRepoRequest

router = APIRouter(prefix="/{owner}/{repo}", tags=["repository"])


@router.get(
    "/config",
    response_model=RepoConfig,
    summary="Get the repository config",
)
async def get_repo_config(
    service: Annotated[ContentTypeService, Depends(get_content_type_service)],
) -> RepoConfig:
    return await service.get_repo_config()


@router.post(
    "/init",
    response_model=RepoConfig,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize a repository for the CMS",
)
async def initialize_repo(
    req: InitRepoRequest,
    service: Annotated[ContentTypeService, Depends(get_content_type_service)],
) -> RepoConfig:
    return await service.initialize_repo(req.site_name)


@router.get(
    "/content-types",
    response_model=List[ContentType],
    summary="List content types",
)
async def list_content_types(
    service: Annotated[ContentTypeService, Depends(get_content_type_service)],
) -> List[ContentType]:
    return await service.list_content_types()


@router.post(
    "/content-types",
    response_model=ContentType,
    status_code=status.HTTP_201_CREATED,
    summary="Create a content type and its empty collection",
)
async def create_content_type(
    req: ContentTypeRequest,
    service: Annotated[ContentTypeService, Depends(get_content_type_service)],
) -> ContentType:
    content_type = ContentType(
        name=req.name,
        slug=req.slug,
        fields=req.fields,
        items_per_page=req.items_per_page,
        add_to=req.add_to or "",
    )
    return await service.create_content_type(content_type)
