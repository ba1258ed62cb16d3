"""Reconciliation of the local library against the remote inventory."""

import logging
import time
from collections.abc import Callable

from flickr_sync.config import Config
from flickr_sync.dedupe import delete_duplicates
from flickr_sync.inventory import InventoryReader
from flickr_sync.models import Inventory, Photo, Photoset, PhotoRepository, ScannedFile, UploadResult
from flickr_sync.uploader import PhotoUploader
from flickr_sync.utils import scan_library

logger = logging.getLogger(__name__)

DRY_RUN_ALBUM_ID = "dry_run_album_id"
DRY_RUN_PHOTO_ID = "dry_run_photo_id"


class Reconciler:
    """Uploads every local photo that is missing from Flickr.

    A file is uploaded when its photoset (parent directory name) or its
    title (file name up to the first dot) is absent from the snapshot.
    Successful uploads are recorded in the snapshot so that later files of
    the same run see them.
    """

    def __init__(
        self,
        repository: PhotoRepository,
        config: Config,
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize reconciler.

        Args:
            repository: Remote photo repository
            config: Sync configuration
            dry_run: If True, log decisions without writing to Flickr
            sleep: Sleep function used between retries
        """
        self.repository = repository
        self.config = config
        self.dry_run = dry_run
        self.reader = InventoryReader(
            repository,
            retrieve_attempts=config.retrieve_attempts,
            retrieve_interval=config.retrieve_interval,
            sleep=sleep,
        )
        self.uploader = PhotoUploader(
            repository,
            upload_attempts=config.upload_attempts,
            upload_interval=config.upload_interval,
            sleep=sleep,
        )
        self.results: list[UploadResult] = []

    def run(self) -> Inventory:
        """Read the inventory, optionally dedupe, then sync the library.

        Returns:
            The snapshot, updated with this run's uploads

        Raises:
            InventoryError: If the photoset list cannot be retrieved
            FileNotFoundError: If the library root doesn't exist
            NotADirectoryError: If the library root is not a directory
        """
        inventory = self.reader.read()

        if self.config.delete_dupes:
            delete_duplicates(self.repository, inventory, dry_run=self.dry_run)

        self.results = []
        files = scan_library(
            self.config.library_path,
            skip_dirs=self.config.skip_dirs,
            extensions=self.config.extensions,
        )
        for scanned in files:
            result = self.reconcile(inventory, scanned)
            if result is not None:
                self.results.append(result)

        failed = sum(1 for r in self.results if not r.success)
        logger.info(f"Sync finished: {len(self.results) - failed} uploaded, {failed} failed")
        return inventory

    def reconcile(self, inventory: Inventory, scanned: ScannedFile) -> UploadResult | None:
        """Upload one file if the snapshot lacks it.

        Args:
            inventory: Snapshot to check and update
            scanned: File to reconcile

        Returns:
            The upload result, or None if the photo was already present
        """
        photoset = inventory.get(scanned.album)

        if photoset is None:
            destination = ""
        elif photoset.find(scanned.photo_name) is None:
            destination = photoset.id
        else:
            logger.debug(f"[SKIP] Already uploaded: '{scanned.photo_name}' in '{scanned.album}'")
            return None

        result = self._transfer(scanned, destination)
        if result.success:
            self._record(inventory, scanned, result)
        return result

    def _transfer(self, scanned: ScannedFile, destination: str) -> UploadResult:
        if not self.dry_run:
            return self.uploader.upload(scanned.path, destination)

        if destination:
            logger.info(f"[DRY RUN] Would upload {scanned.path.name} to '{scanned.album}'")
        else:
            logger.info(
                f"[DRY RUN] Would upload {scanned.path.name} and create album '{scanned.album}'"
            )
        return UploadResult(
            photo_path=scanned.path,
            album_title=scanned.album,
            success=True,
            album_id=destination or DRY_RUN_ALBUM_ID,
            photo_id=DRY_RUN_PHOTO_ID,
        )

    def _record(self, inventory: Inventory, scanned: ScannedFile, result: UploadResult) -> None:
        photo = Photo(id=result.photo_id, title=scanned.photo_name)
        photoset = inventory.get(scanned.album)
        if photoset is None:
            inventory[scanned.album] = Photoset(id=result.album_id, title=scanned.album, photos=[photo])
            return
        photoset.id = result.album_id
        photoset.add(photo)
