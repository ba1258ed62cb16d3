"""Photo upload and photoset placement with retry."""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from tenacity import RetryCallState, RetryError, Retrying, stop_after_attempt, wait_fixed

from flickr_sync.models import PhotoRepository, UploadResult
from flickr_sync.utils import photo_name

logger = logging.getLogger(__name__)


class PhotoUploader:
    """Uploads photos and files them into photosets."""

    def __init__(
        self,
        repository: PhotoRepository,
        upload_attempts: int = 5,
        upload_interval: float = 30,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize photo uploader.

        Args:
            repository: Remote photo repository
            upload_attempts: Extra tries after a failed upload
            upload_interval: Seconds to wait between tries
            sleep: Sleep function used between tries
        """
        self.repository = repository
        self.upload_attempts = upload_attempts
        self.upload_interval = upload_interval
        self.sleep = sleep

    def upload(self, photo_path: Path, album_id: str = "") -> UploadResult:
        """Upload a photo and place it into a photoset.

        With an empty ``album_id`` a new photoset named after the photo's
        parent directory is created with the photo as its cover; otherwise
        the photo is appended to ``album_id``. Any failure retries the
        whole operation, so a retry after a partial success uploads the
        photo again.

        Args:
            photo_path: Path to the photo file
            album_id: Destination photoset ID, or "" to create one

        Returns:
            Upload result carrying the effective photoset ID and the photo ID
        """
        album_title = photo_path.parent.name
        retrying = Retrying(
            stop=stop_after_attempt(self.upload_attempts + 1),
            wait=wait_fixed(self.upload_interval),
            before_sleep=self._log_retry,
            sleep=self.sleep,
        )

        try:
            effective_album_id, photo_id = retrying(self._upload_photo, photo_path, album_id)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            error = e.last_attempt.exception()
            logger.error(
                f"[ERROR] Upload of {photo_path.name} to '{album_title}' failed "
                f"after {attempts} attempt(s): {error}"
            )
            return UploadResult(
                photo_path=photo_path,
                album_title=album_title,
                success=False,
                attempts=attempts,
                error_message=str(error) or type(error).__name__,
            )

        return UploadResult(
            photo_path=photo_path,
            album_title=album_title,
            success=True,
            album_id=effective_album_id,
            photo_id=photo_id,
            attempts=retrying.statistics["attempt_number"],
        )

    def _upload_photo(self, photo_path: Path, album_id: str) -> tuple[str, str]:
        """Upload once and place the photo; returns (album ID, photo ID)."""
        photo_id = self.repository.upload_file(photo_path, photo_name(photo_path))
        logger.info(f"[OK] Photo uploaded: {photo_path} (photo ID: {photo_id})")

        if not album_id:
            album_title = photo_path.parent.name
            album_id = self.repository.create_photoset(album_title, photo_id)
            logger.info(f"[OK] Photoset '{album_title}' created with ID: {album_id}")
        else:
            self.repository.add_photo(album_id, photo_id)
            logger.info(f"[OK] Added photo {photo_id} to existing photoset {album_id}")

        return album_id, photo_id

    def _log_retry(self, retry_state: RetryCallState) -> None:
        photo_path = retry_state.args[0]
        logger.warning(
            f"[WARNING] Upload attempt {retry_state.attempt_number} for {photo_path.name} "
            f"failed: {retry_state.outcome.exception()}. "
            f"Waiting {self.upload_interval}s before retry"
        )
