import pytest

from gh_cms_server.content.models import ContentType, FieldDefinition
from gh_cms_server.core.errors import ConflictError, NotFoundError, ValidationError
from gh_cms_server.index.paths import (
    CONTENT_KEEP_PATH,
    MEDIA_KEEP_PATH,
    REPO_CONFIG_PATH,
    collection_config_path,
    collection_shard_path,
)
from gh_cms_server.services.content_types import ContentTypeService

from conftest import InMemoryBlobStore


def _type(slug="posts", **kwargs):
    return ContentType(
        name=slug.title(),
        slug=slug,
        fields=[FieldDefinition(field_name="title", field_type="text")],
        **kwargs,
    )


@pytest.fixture
async def initialized(store):
    service = ContentTypeService(store)
    await service.initialize_repo("My site")
    return service


@pytest.mark.asyncio
async def test_initialize_empty_repo_writes_default_branch():
    store = InMemoryBlobStore(empty=True)

    config = await ContentTypeService(store).initialize_repo("Site")

    assert config.site_name == "Site"
    assert config.initialization_date
    files = store.branches["main"]
    assert set(files) == {REPO_CONFIG_PATH, CONTENT_KEEP_PATH, MEDIA_KEEP_PATH}
    assert store.merges == []
    assert not store.empty


@pytest.mark.asyncio
async def test_initialize_non_empty_repo_uses_transaction(store):
    store.seed("README.md", b"hi")

    await ContentTypeService(store).initialize_repo("Site")

    assert store.merges == ["Initialize CMS repository"]
    assert store.published(REPO_CONFIG_PATH)["content_types"] == []


@pytest.mark.asyncio
async def test_initialize_twice_conflicts(initialized):
    with pytest.raises(ConflictError):
        await initialized.initialize_repo("Again")


@pytest.mark.asyncio
async def test_uninitialized_repo_is_not_found(store):
    with pytest.raises(NotFoundError):
        await ContentTypeService(store).get_repo_config()


@pytest.mark.asyncio
async def test_create_content_type_writes_empty_collection(initialized, store):
    created = await initialized.create_content_type(_type(items_per_page=0))

    assert created.id
    assert created.items_per_page == 10
    assert created.add_to == "bottom"
    assert store.published(collection_config_path("posts"))["order"] == []
    assert store.published(collection_config_path("posts"))["total_pages"] == 1
    assert store.published(collection_shard_path("posts", 1)) == {"page": 1, "items": []}

    listed = await initialized.list_content_types()
    assert [ct.slug for ct in listed] == ["posts"]
    assert (await initialized.get_content_type("posts")).id == created.id


@pytest.mark.asyncio
async def test_create_content_type_duplicate_slug(initialized, store):
    await initialized.create_content_type(_type())
    with pytest.raises(ConflictError):
        await initialized.create_content_type(_type())
    assert list(store.branches) == ["main"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content_type",
    [
        _type(items_per_page=101),
        _type(add_to="middle"),
        _type(slug="Bad Slug"),
        _type(slug="media"),
        ContentType(
            name="Dup",
            slug="dup",
            fields=[
                FieldDefinition(field_name="a", field_type="text"),
                FieldDefinition(field_name="a", field_type="number"),
            ],
        ),
    ],
)
async def test_create_content_type_validation(initialized, content_type):
    with pytest.raises(ValidationError):
        await initialized.create_content_type(content_type)


@pytest.mark.asyncio
async def test_get_unknown_content_type(initialized):
    with pytest.raises(NotFoundError):
        await initialized.get_content_type("nope")


@pytest.mark.asyncio
async def test_create_content_type_requires_initialized_repo(store):
    with pytest.raises(NotFoundError):
        await ContentTypeService(store).create_content_type(_type())
    assert list(store.branches) == ["main"]
