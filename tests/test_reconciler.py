"""Tests for reconciling the local library with the remote inventory."""

import dataclasses
from pathlib import Path

import pytest

from flickr_sync.api_client import RateLimitError, ServerError
from flickr_sync.config import Config
from flickr_sync.inventory import InventoryError
from flickr_sync.models import Photo, Photoset, ScannedFile
from flickr_sync.reconciler import DRY_RUN_ALBUM_ID, Reconciler


def uploaded_paths(repository) -> list[Path]:
    return [call[1] for call in repository.calls if call[0] == "upload_file"]


class TestReconciler:
    """Test end-to-end reconciliation against a fake repository."""

    def test_new_album_created_then_appended(self, repository, sleep, config: Config) -> None:
        """Test that the first photo creates the album and the next one joins it."""
        inventory = Reconciler(repository, config, sleep=sleep).run()

        creates = [c for c in repository.calls if c[0] == "create_photoset"]
        assert [c[1] for c in creates] == ["Trip", "VacationA"]

        vacation = inventory["VacationA"]
        vacation_create = creates[1]
        img1_id = vacation_create[2]
        assert ("add_photo", vacation.id, "photo_5") in repository.calls
        assert [p.title for p in vacation.photos] == ["img1", "img2"]
        assert vacation.find("img1").id == img1_id
        assert repository.count("add_photo") == 1

    def test_existing_photo_skipped(self, repository, sleep, config: Config) -> None:
        """Test that a photo already in its album is not uploaded again."""
        repository.photosets = [Photoset("set_trip", "Trip")]
        repository.pages = {"set_trip": [[Photo("p1", "img1")]]}

        inventory = Reconciler(repository, config, sleep=sleep).run()

        assert not any(p.parent.name == "Trip" for p in uploaded_paths(repository))
        assert inventory["Trip"].photos == [Photo("p1", "img1")]

    def test_title_prefix_is_not_a_match(self, repository, sleep, config: Config) -> None:
        """Test that a remote 'img10' does not hide a local 'img1'."""
        repository.photosets = [Photoset("set_trip", "Trip")]
        repository.pages = {"set_trip": [[Photo("p10", "img10")]]}

        inventory = Reconciler(repository, config, sleep=sleep).run()

        trip_upload = next(c for c in repository.calls if c[0] == "upload_file" and c[2] == "img1")
        assert trip_upload[1].parent.name == "Trip"
        assert ("add_photo", "set_trip", "photo_1") in repository.calls
        assert [p.title for p in inventory["Trip"].photos] == ["img1", "img10"]

    def test_rate_limited_page_does_not_cause_reupload(
        self, repository, sleep, config: Config
    ) -> None:
        """Test that photos on a throttled page still count as present."""
        (config.library_path / "Trip" / "img9.jpg").write_bytes(b"fake jpg content")
        repository.photosets = [Photoset("set_trip", "Trip")]
        repository.pages = {"set_trip": [[Photo("p0", "aaa")], [Photo("p1", "img1"), Photo("p9", "img9")]]}
        repository.scripted[("set_trip", 2)] = [RateLimitError("Flickr API rate limit exceeded")]

        Reconciler(repository, config, sleep=sleep).run()

        assert not any(p.parent.name == "Trip" for p in uploaded_paths(repository))
        assert sleep.calls[0] == config.retrieve_interval

    def test_root_files_never_uploaded(self, repository, sleep, config: Config) -> None:
        """Test that files directly in the library root are skipped."""
        Reconciler(repository, config, sleep=sleep).run()

        assert all(p.parent != config.library_path for p in uploaded_paths(repository))
        assert len(uploaded_paths(repository)) == 3

    def test_skipped_directories_ignored(self, repository, sleep, config: Config) -> None:
        """Test that files below a skipped directory are never uploaded."""
        Reconciler(repository, config, sleep=sleep).run()

        assert not any("@eaDir" in p.parts for p in uploaded_paths(repository))

    def test_second_run_uploads_nothing(self, repository, sleep, config: Config) -> None:
        """Test that a rerun against a refreshed inventory is a no-op."""
        inventory = Reconciler(repository, config, sleep=sleep).run()

        # Refresh the remote side with what the first run uploaded
        repository.photosets = [Photoset(ps.id, ps.title) for ps in inventory.values()]
        repository.pages = {ps.id: [list(ps.photos)] for ps in inventory.values()}
        repository.calls.clear()

        reconciler = Reconciler(repository, config, sleep=sleep)
        reconciler.run()

        assert repository.count("upload_file") == 0
        assert reconciler.results == []

    def test_exhausted_upload_leaves_album_unchanged(
        self, repository, sleep, config: Config
    ) -> None:
        """Test that a file failing every attempt is skipped and the run goes on."""
        repository.photosets = [Photoset("set_trip", "Trip")]
        repository.pages = {"set_trip": [[Photo("p9", "zzz")]]}
        repository.upload_failures = config.upload_attempts + 1

        reconciler = Reconciler(repository, config, sleep=sleep)
        inventory = reconciler.run()

        assert inventory["Trip"].photos == [Photo("p9", "zzz")]
        assert inventory["Trip"].id == "set_trip"
        assert repository.count("add_photo") == 0

        trip_result, *vacation_results = reconciler.results
        assert not trip_result.success
        assert trip_result.attempts == config.upload_attempts + 1
        assert all(r.success for r in vacation_results)
        assert [p.title for p in inventory["VacationA"].photos] == ["img1", "img2"]

    def test_duplicates_deleted_when_enabled(self, repository, sleep, config: Config) -> None:
        """Test that duplicate removal runs before any upload."""
        repository.photosets = [Photoset("set_old", "Old")]
        repository.pages = {"set_old": [[Photo("d1", "A"), Photo("d2", "A")]]}

        Reconciler(repository, dataclasses.replace(config, delete_dupes=True), sleep=sleep).run()

        names = [c[0] for c in repository.calls]
        assert repository.calls.count(("delete_photo", "d2")) == 1
        assert names.index("delete_photo") < names.index("upload_file")

    def test_duplicates_kept_by_default(self, repository, sleep, config: Config) -> None:
        """Test that duplicate removal is off unless configured."""
        repository.photosets = [Photoset("set_old", "Old")]
        repository.pages = {"set_old": [[Photo("d1", "A"), Photo("d2", "A")]]}

        Reconciler(repository, config, sleep=sleep).run()

        assert repository.count("delete_photo") == 0

    def test_dry_run_makes_no_writes(self, repository, sleep, config: Config) -> None:
        """Test that dry-run only reads from the repository."""
        inventory = Reconciler(repository, config, dry_run=True, sleep=sleep).run()

        assert {c[0] for c in repository.calls} == {"list_photosets"}
        assert inventory["VacationA"].id == DRY_RUN_ALBUM_ID
        assert [p.title for p in inventory["VacationA"].photos] == ["img1", "img2"]

    def test_inventory_failure_propagates(self, repository, sleep, config: Config) -> None:
        """Test that failing to list albums aborts the run."""
        repository.list_error = ServerError("unavailable")

        with pytest.raises(InventoryError):
            Reconciler(repository, config, sleep=sleep).run()

        assert repository.count("upload_file") == 0


class TestReconcile:
    """Test single-file decisions."""

    def test_upload_into_existing_album(self, repository, sleep, config: Config, tmp_path: Path) -> None:
        """Test that a missing photo goes into the existing album ID."""
        inventory = {"Trip": Photoset("set_trip", "Trip", [Photo("p1", "b")])}
        path = tmp_path / "Trip" / "a.jpg"
        path.parent.mkdir()
        path.write_bytes(b"x")

        result = Reconciler(repository, config, sleep=sleep).reconcile(
            inventory, ScannedFile(path=path, album="Trip", photo_name="a")
        )

        assert result.success
        assert [p.title for p in inventory["Trip"].photos] == ["a", "b"]
        assert repository.calls[-1] == ("add_photo", "set_trip", "photo_1")

    def test_present_photo_returns_none(self, repository, sleep, config: Config, tmp_path: Path) -> None:
        """Test that a present photo is skipped without remote calls."""
        inventory = {"Trip": Photoset("set_trip", "Trip", [Photo("p1", "a")])}

        result = Reconciler(repository, config, sleep=sleep).reconcile(
            inventory, ScannedFile(path=tmp_path / "Trip" / "a.jpg", album="Trip", photo_name="a")
        )

        assert result is None
        assert repository.calls == []
