"""Pytest configuration and shared fixtures."""

import json
from collections import defaultdict
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import responses

from flickr_sync.api_client import FlickrAPIError
from flickr_sync.config import ENV_OVERRIDES, Config
from flickr_sync.models import Photo, Photoset


class FakeRepository:
    """In-memory photo repository that records every call.

    ``pages`` maps a photoset ID to its pages of photos; any page past the
    last one is empty. ``scripted`` maps (photoset ID, page) to a list of
    responses handed out one per call before falling back to ``pages``;
    an Exception instance in that list is raised instead of returned.
    """

    def __init__(
        self,
        photosets: list[Photoset] | None = None,
        pages: dict[str, list[list[Photo]]] | None = None,
    ) -> None:
        self.photosets = photosets or []
        self.pages = pages or {}
        self.scripted: dict[tuple[str, int], list[Any]] = defaultdict(list)
        self.calls: list[tuple[Any, ...]] = []
        self.list_error: Exception | None = None
        self.upload_failures = 0
        self.create_failures = 0
        self.delete_errors: set[str] = set()
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def list_photosets(self) -> list[Photoset]:
        self.calls.append(("list_photosets",))
        if self.list_error:
            raise self.list_error
        return [Photoset(id=ps.id, title=ps.title) for ps in self.photosets]

    def list_photoset_photos(self, photoset_id: str, page: int) -> list[Photo]:
        self.calls.append(("list_photoset_photos", photoset_id, page))
        script = self.scripted[(photoset_id, page)]
        if script:
            response = script.pop(0)
            if isinstance(response, Exception):
                raise response
            return list(response)
        pages = self.pages.get(photoset_id, [])
        return list(pages[page - 1]) if page <= len(pages) else []

    def delete_photo(self, photo_id: str) -> None:
        self.calls.append(("delete_photo", photo_id))
        if photo_id in self.delete_errors:
            raise FlickrAPIError("Photo not found", 1)

    def upload_file(self, path: Path, title: str | None = None) -> str:
        self.calls.append(("upload_file", path, title))
        if self.upload_failures:
            self.upload_failures -= 1
            raise FlickrAPIError("upload failed")
        return self._next_id("photo")

    def create_photoset(self, title: str, primary_photo_id: str) -> str:
        self.calls.append(("create_photoset", title, primary_photo_id))
        if self.create_failures:
            self.create_failures -= 1
            raise FlickrAPIError("create failed")
        return self._next_id("set")

    def add_photo(self, photoset_id: str, photo_id: str) -> None:
        self.calls.append(("add_photo", photoset_id, photo_id))


class RecordingSleep:
    """Stand-in for time.sleep that only records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep credentials from the developer's environment out of the tests."""
    for name in (*ENV_OVERRIDES.values(), "FLICKR_SYNC_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def rsps() -> Iterator[responses.RequestsMock]:
    """Intercept HTTP requests; every registered response must be used."""
    with responses.RequestsMock() as mock:
        yield mock


@pytest.fixture
def repository() -> FakeRepository:
    """Return an empty fake repository."""
    return FakeRepository()


@pytest.fixture
def sleep() -> RecordingSleep:
    """Return a sleep recorder."""
    return RecordingSleep()


@pytest.fixture
def temp_photos_dir(tmp_path: Path) -> Path:
    """Create a temporary photo library.

    Structure:
        library/
            VacationA/
                img1.jpg
                img2.png
                notes.txt
            Trip/
                img1.JPG
                @eaDir/
                    img1.jpg
            root_photo.jpg
    """
    library = tmp_path / "library"
    library.mkdir()

    vacation = library / "VacationA"
    vacation.mkdir()
    (vacation / "img1.jpg").write_bytes(b"fake jpg content")
    (vacation / "img2.png").write_bytes(b"fake png content")
    (vacation / "notes.txt").write_text("not a photo")

    trip = library / "Trip"
    trip.mkdir()
    (trip / "img1.JPG").write_bytes(b"fake jpg content")
    metadata = trip / "@eaDir"
    metadata.mkdir()
    (metadata / "img1.jpg").write_bytes(b"thumbnail")

    (library / "root_photo.jpg").write_bytes(b"fake jpg content")

    return library


@pytest.fixture
def config(temp_photos_dir: Path) -> Config:
    """Return a complete configuration pointing at the temporary library."""
    return Config(
        api_key="test_api_key",
        api_secret="test_api_secret",
        oauth_token="test_oauth_token",
        oauth_token_secret="test_oauth_token_secret",
        photo_library_path=str(temp_photos_dir),
        upload_attempts=5,
        upload_interval=30,
        retrieve_attempts=2,
        retrieve_interval=5,
    )


@pytest.fixture
def config_file(tmp_path: Path, temp_photos_dir: Path) -> Path:
    """Write a configuration file with no retry delays."""
    path = tmp_path / "flickr-sync.conf.json"
    path.write_text(
        json.dumps(
            {
                "api_key": "test_api_key",
                "api_secret": "test_api_secret",
                "oauth_token": "test_oauth_token",
                "oauth_token_secret": "test_oauth_token_secret",
                "photo_library_path": str(temp_photos_dir),
                "upload_attempts": 0,
                "upload_interval": 0,
                "retrieve_attempts": 0,
                "retrieve_interval": 0,
            }
        )
    )
    return path
