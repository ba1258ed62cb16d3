"""Data models for the Flickr sync engine."""

from bisect import bisect_left, insort
from dataclasses import dataclass, field
from operator import attrgetter
from pathlib import Path
from typing import Protocol

_by_title = attrgetter("title")


@dataclass(frozen=True)
class Photo:
    """A remote photo, identified for matching purposes by its title."""

    id: str
    title: str


@dataclass
class Photoset:
    """A remote album and its photos, kept sorted ascending by title."""

    id: str
    title: str
    photos: list[Photo] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Sort photos so lookups can use binary search."""
        self.photos = sorted(self.photos, key=_by_title)

    def find(self, title: str) -> Photo | None:
        """Return the photo with exactly this title, if present.

        Args:
            title: Photo title to look for

        Returns:
            The first photo whose title equals ``title``, or None
        """
        index = bisect_left(self.photos, title, key=_by_title)
        if index < len(self.photos) and self.photos[index].title == title:
            return self.photos[index]
        return None

    def add(self, photo: Photo) -> None:
        """Insert a photo, preserving title order."""
        insort(self.photos, photo, key=_by_title)


# Album title -> Photoset, built once per run and updated as uploads succeed.
Inventory = dict[str, Photoset]


@dataclass(frozen=True)
class ScannedFile:
    """A local file eligible for upload."""

    path: Path
    album: str
    photo_name: str


@dataclass(frozen=True)
class UploadResult:
    """Result of a photo transfer."""

    photo_path: Path
    album_title: str
    success: bool
    album_id: str | None = None
    photo_id: str | None = None
    attempts: int = 1
    error_message: str | None = None

    def __post_init__(self) -> None:
        """Validate upload result."""
        if self.success and not (self.photo_id and self.album_id):
            raise ValueError("Successful upload must have a photo_id and an album_id")
        if not self.success and not self.error_message:
            raise ValueError("Failed upload must have an error_message")


class PhotoRepository(Protocol):
    """Remote photo-hosting operations the sync engine relies on."""

    def list_photosets(self) -> list[Photoset]: ...

    def list_photoset_photos(self, photoset_id: str, page: int) -> list[Photo]: ...

    def delete_photo(self, photo_id: str) -> None: ...

    def upload_file(self, path: Path, title: str | None = None) -> str: ...

    def create_photoset(self, title: str, primary_photo_id: str) -> str: ...

    def add_photo(self, photoset_id: str, photo_id: str) -> None: ...
