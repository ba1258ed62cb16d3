"""Flickr Sync - Mirror a local photo library into Flickr albums."""

__version__ = "0.1.0"

from flickr_sync.api_client import FlickrAPIClient
from flickr_sync.config import Config, load_config
from flickr_sync.dedupe import delete_duplicates
from flickr_sync.inventory import InventoryReader, read_inventory
from flickr_sync.models import Inventory, Photo, Photoset, UploadResult
from flickr_sync.reconciler import Reconciler
from flickr_sync.uploader import PhotoUploader
from flickr_sync.utils import scan_library

__all__ = [
    "FlickrAPIClient",
    "Config",
    "load_config",
    "delete_duplicates",
    "InventoryReader",
    "read_inventory",
    "Inventory",
    "Photo",
    "Photoset",
    "UploadResult",
    "Reconciler",
    "PhotoUploader",
    "scan_library",
]
