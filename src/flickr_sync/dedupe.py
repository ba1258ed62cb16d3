"""Removal of duplicate photos from remote photosets."""

import logging

from flickr_sync.models import Inventory, PhotoRepository

logger = logging.getLogger(__name__)


def delete_duplicates(
    repository: PhotoRepository, inventory: Inventory, dry_run: bool = False
) -> list[str]:
    """Delete photos whose title repeats the previous one in their photoset.

    Photos must already be sorted by title so that duplicates sit next to
    each other. The inventory is left untouched: the title stays present,
    which is all the upload decisions look at.

    Args:
        repository: Remote photo repository
        inventory: Snapshot with sorted photosets
        dry_run: If True, only log what would be deleted

    Returns:
        IDs of the photos deleted (or that would be deleted)
    """
    deleted: list[str] = []

    for album_name, photoset in inventory.items():
        for previous, photo in zip(photoset.photos, photoset.photos[1:]):
            if photo.title != previous.title:
                continue

            if dry_run:
                logger.info(f"[DRY RUN] Would delete duplicate '{photo.title}' from '{album_name}'")
                deleted.append(photo.id)
                continue

            logger.warning(f"[DELETE] Deleting duplicate '{photo.title}' from '{album_name}'")
            try:
                repository.delete_photo(photo.id)
            except Exception as e:
                logger.error(f"Failed to delete duplicate {photo.id} from '{album_name}': {e}")
                continue
            deleted.append(photo.id)

    return deleted
