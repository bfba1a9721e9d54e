"""Sort keys offered by each listing."""

from mediashelf.db.models import Collection, CollectionMedia, Media
from mediashelf.services.pagination import SortOption, SortSpec

COLLECTION_SORT = SortSpec(
    options={
        "createdAt": SortOption(Collection.created_at),
        "name": SortOption(Collection.name),
        "updatedAt": SortOption(Collection.updated_at),
    },
    default_sort="createdAt",
)

MEDIA_SORT = SortSpec(
    options={
        "createdAt": SortOption(Media.created_at),
        "title": SortOption(Media.title),
        "releaseDate": SortOption(Media.release_date, nullable=True),
    },
    default_sort="createdAt",
)

COLLECTION_MEDIA_SORT = SortSpec(
    options={
        "position": SortOption(CollectionMedia.position),
        "addedAt": SortOption(CollectionMedia.added_at),
    },
    default_sort="position",
    default_order="asc",
)
