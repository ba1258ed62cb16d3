"""Builds the in-memory snapshot of remote photosets and their photos."""

import logging
import time
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from flickr_sync.api_client import RateLimitError, ServerError
from flickr_sync.models import Inventory, Photo, Photoset, PhotoRepository

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Raised when the remote photoset list cannot be retrieved."""

    pass


def _is_empty(photos: list[Photo]) -> bool:
    return not photos


def _last_result(retry_state: RetryCallState) -> list[Photo]:
    return retry_state.outcome.result()


class InventoryReader:
    """Reads every photoset and all of its photos from a repository."""

    def __init__(
        self,
        repository: PhotoRepository,
        retrieve_attempts: int = 5,
        retrieve_interval: float = 5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize inventory reader.

        Args:
            repository: Remote photo repository
            retrieve_attempts: Extra tries for a page that comes back empty
            retrieve_interval: Seconds to wait between those tries
            sleep: Sleep function used between tries
        """
        self.repository = repository
        self.retrieve_attempts = retrieve_attempts
        self.retrieve_interval = retrieve_interval
        self.sleep = sleep

    def read(self) -> Inventory:
        """Build the full snapshot.

        Returns:
            Mapping of photoset title to Photoset, each with photos sorted by title

        Raises:
            InventoryError: If the photoset list cannot be retrieved
        """
        logger.info("Retrieving photosets from Flickr...")
        try:
            photosets = self.repository.list_photosets()
        except Exception as e:
            raise InventoryError(f"Could not retrieve album list: {e}") from e

        inventory: Inventory = {}
        for photoset in photosets:
            photos = self._read_photos(photoset)
            inventory[photoset.title] = Photoset(id=photoset.id, title=photoset.title, photos=photos)
            logger.info(f"[OK] Photoset '{photoset.title}' loaded with {len(photos)} photo(s)")

        logger.info(f"[OK] {len(inventory)} album(s) have been loaded")
        return inventory

    def _read_photos(self, photoset: Photoset) -> list[Photo]:
        """Collect all pages of a photoset, stopping at the first empty one."""
        photos: list[Photo] = []
        page = 1
        while True:
            try:
                content = self.fetch_page(photoset.id, page)
            except Exception as e:
                logger.error(
                    f"Could not retrieve page {page} of photoset '{photoset.title}': {e}"
                )
                break

            if not content:
                break

            photos.extend(content)
            logger.debug(f"Photoset '{photoset.title}' expanded: page {page}, {len(photos)} total")
            page += 1
        return photos

    def fetch_page(self, photoset_id: str, page: int) -> list[Photo]:
        """Fetch one page, retrying while it comes back empty or fails transiently.

        An empty page either means pagination is over or that Flickr is
        throttling us; the two look identical, so a page that stays empty
        after all tries is taken as the end of the photoset. Rate limit and
        server errors share the same budget and are re-raised once it runs out.

        Args:
            photoset_id: Photoset ID
            page: 1-based page number

        Returns:
            Photos on the page, empty if it stayed empty after every try

        Raises:
            RateLimitError: If every try was rate limited
            ServerError: If every try hit a server or network error
            FlickrAPIError: On the first non-transient failure
        """
        retrying = Retrying(
            retry=retry_if_result(_is_empty) | retry_if_exception_type((RateLimitError, ServerError)),
            stop=stop_after_attempt(self.retrieve_attempts + 1),
            wait=wait_fixed(self.retrieve_interval),
            before_sleep=self._log_retry,
            retry_error_callback=_last_result,
            sleep=self.sleep,
        )
        return retrying(self.repository.list_photoset_photos, photoset_id, page)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        photoset_id, page = retry_state.args
        error = retry_state.outcome.exception()
        if error is not None:
            logger.warning(
                f"Could not retrieve photoset {photoset_id} page {page} "
                f"(attempt {retry_state.attempt_number}): {error}. "
                f"Retrying in {self.retrieve_interval}s"
            )
            return
        logger.debug(
            f"No photo retrieved for photoset {photoset_id} page {page} "
            f"(attempt {retry_state.attempt_number}), "
            f"retrying in {self.retrieve_interval}s"
        )


def read_inventory(
    repository: PhotoRepository,
    retrieve_attempts: int = 5,
    retrieve_interval: float = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> Inventory:
    """Build the snapshot of remote photosets; see InventoryReader."""
    return InventoryReader(repository, retrieve_attempts, retrieve_interval, sleep).read()
