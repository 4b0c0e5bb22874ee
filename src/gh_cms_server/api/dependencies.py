from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..github.client import GitHubBlobStore, get_http_client
from ..services.content_types import ContentTypeService
from ..services.documents import DocumentService
from ..services.media import MediaService
from ..store.base import BlobStore

# The bearer credential is already scoped to the repository by the caller;
# it is passed through to GitHub untouched.
security = HTTPBearer(auto_error=True)


def get_blob_store(
    owner: str,
    repo: str,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> BlobStore:
    return GitHubBlobStore(get_http_client(), credentials.credentials, owner, repo)


def get_document_service(
    store: Annotated[BlobStore, Depends(get_blob_store)],
) -> DocumentService:
    return DocumentService(store)


def get_content_type_service(
    store: Annotated[BlobStore, Depends(get_blob_store)],
) -> ContentTypeService:
    return ContentTypeService(store)


def get_media_service(
    store: Annotated[BlobStore, Depends(get_blob_store)],
) -> MediaService:
    return MediaService(store)
