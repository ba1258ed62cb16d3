"""Flickr API client built on flickrapi."""

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import ParseError

import flickrapi
import requests
from flickrapi.auth import FlickrAccessToken
from flickrapi.exceptions import FlickrError

from flickr_sync.config import Config
from flickr_sync.models import Photo, Photoset

logger = logging.getLogger(__name__)

REST_URL = "https://api.flickr.com/services/rest/"
UPLOAD_URL = "https://up.flickr.com/services/upload/"

# Largest page size accepted by flickr.photosets.getPhotos
PHOTOS_PER_PAGE = 500

# "Service currently unavailable"
SERVICE_UNAVAILABLE_CODE = 105

# flickrapi reports HTTP failures only through the error message
_STATUS_CODE = re.compile(r"Status code (\d+)")


class FlickrAPIError(Exception):
    """Base exception for Flickr API errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimitError(FlickrAPIError):
    """Exception raised when hitting rate limits."""

    pass


class ServerError(FlickrAPIError):
    """Exception raised for 5xx server errors and network failures."""

    pass


def _content(value: Any) -> str:
    """Unwrap Flickr's {"_content": ...} text nodes."""
    if isinstance(value, dict):
        return str(value.get("_content", ""))
    return "" if value is None else str(value)


def _error_code(error: FlickrError) -> int | None:
    code = getattr(error, "code", None)
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def _status_code(error: FlickrError) -> int | None:
    match = _STATUS_CODE.search(str(error))
    return int(match.group(1)) if match else None


class FlickrAPIClient:
    """Photo repository backed by the Flickr REST and upload APIs."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        oauth_token: str,
        oauth_token_secret: str,
    ) -> None:
        """Initialize Flickr API client.

        Args:
            api_key: Flickr application key
            api_secret: Flickr application secret
            oauth_token: OAuth access token
            oauth_token_secret: OAuth access token secret
        """
        self.api_key = api_key
        token = FlickrAccessToken(oauth_token, oauth_token_secret, "delete")
        self.flickr = flickrapi.FlickrAPI(
            api_key,
            api_secret,
            token=token,
            format="parsed-json",
            store_token=False,
        )

    @classmethod
    def from_config(cls, config: Config) -> "FlickrAPIClient":
        """Build a client from loaded configuration."""
        return cls(
            config.api_key,
            config.api_secret,
            config.oauth_token,
            config.oauth_token_secret,
        )

    def list_photosets(self) -> list[Photoset]:
        """List all photosets of the authenticated user.

        Returns:
            Photosets in the order Flickr returns them, without photos
        """
        result = self._call("calling flickr.photosets.getList", self.flickr.photosets.getList)
        items = result.get("photosets", {}).get("photoset", [])
        return [Photoset(id=str(ps["id"]), title=_content(ps.get("title"))) for ps in items]

    def list_photoset_photos(self, photoset_id: str, page: int) -> list[Photo]:
        """Fetch one page of photos from a photoset.

        Args:
            photoset_id: Photoset ID
            page: 1-based page number

        Returns:
            Photos on that page; empty when Flickr returns none
        """
        result = self._call(
            "calling flickr.photosets.getPhotos",
            self.flickr.photosets.getPhotos,
            photoset_id=photoset_id,
            page=page,
            per_page=PHOTOS_PER_PAGE,
        )
        items = result.get("photoset", {}).get("photo", [])
        return [Photo(id=str(ph["id"]), title=_content(ph.get("title"))) for ph in items]

    def delete_photo(self, photo_id: str) -> None:
        """Delete a photo."""
        self._call("calling flickr.photos.delete", self.flickr.photos.delete, photo_id=photo_id)
        logger.debug(f"Deleted photo {photo_id}")

    def create_photoset(self, title: str, primary_photo_id: str) -> str:
        """Create a photoset seeded with a primary photo.

        Args:
            title: Photoset title
            primary_photo_id: Photo that becomes the photoset's cover

        Returns:
            Photoset ID
        """
        result = self._call(
            "calling flickr.photosets.create",
            self.flickr.photosets.create,
            title=title,
            primary_photo_id=primary_photo_id,
        )
        try:
            photoset_id = str(result["photoset"]["id"])
        except (KeyError, TypeError) as e:
            raise FlickrAPIError(f"No photoset ID in response: {result}") from e
        logger.debug(f"Created photoset '{title}' with ID: {photoset_id}")
        return photoset_id

    def add_photo(self, photoset_id: str, photo_id: str) -> None:
        """Append a photo to an existing photoset."""
        self._call(
            "calling flickr.photosets.addPhoto",
            self.flickr.photosets.addPhoto,
            photoset_id=photoset_id,
            photo_id=photo_id,
        )
        logger.debug(f"Added photo {photo_id} to photoset {photoset_id}")

    def upload_file(self, path: Path, title: str | None = None) -> str:
        """Upload a photo file.

        Args:
            path: Path to the photo file
            title: Photo title; Flickr derives one from the file name if omitted

        Returns:
            Photo ID

        Raises:
            FlickrAPIError: If the upload is rejected
            RateLimitError: If rate limit is exceeded
            ServerError: If server or network error occurs
            FileNotFoundError: If photo file doesn't exist
        """
        if not path.exists():
            raise FileNotFoundError(f"Photo file not found: {path}")

        params = {"title": title} if title else {}
        # Uploads only support XML replies
        rsp = self._call(f"uploading {path.name}", self.flickr.upload, str(path), format="etree", **params)

        photo_id = rsp.findtext("photoid")
        if not photo_id:
            raise FlickrAPIError(f"No photo ID in response while uploading {path.name}")
        logger.debug(f"Uploaded {path.name}, photo ID: {photo_id}")
        return photo_id.strip()

    def _call(self, context: str, api_call: Callable[..., Any], *args: Any, **params: Any) -> Any:
        """Run a flickrapi call, translating its failures into FlickrAPIError.

        Args:
            context: Description of the operation, used in messages
            api_call: Bound flickrapi method
            *args: Positional arguments for the call
            **params: Method arguments

        Returns:
            The parsed response

        Raises:
            FlickrAPIError: If Flickr reports a failure
            RateLimitError: If rate limit is exceeded
            ServerError: If server or network error occurs
        """
        try:
            return api_call(*args, **params)
        except FlickrError as e:
            self._handle_error_response(_status_code(e), _error_code(e), str(e), context)
        except requests.RequestException as e:
            logger.warning(f"Network error while {context}: {e}")
            raise ServerError(f"Network error: {e}") from e
        except (ValueError, ParseError) as e:
            # Non-JSON/XML response (e.g., HTML error page during outages)
            logger.warning(f"Unparsable response while {context}")
            raise ServerError(f"Invalid API response while {context}: {e}") from e

    def _handle_error_response(
        self, status_code: int | None, code: int | None, message: str, context: str
    ) -> None:
        """Turn a failed Flickr response into the matching exception.

        Args:
            status_code: HTTP status code, when the failure came from HTTP
            code: Flickr error code, if any
            message: Flickr error message
            context: Description of what operation failed

        Raises:
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
            FlickrAPIError: For other API errors
        """
        lowered = message.lower()
        if status_code == 429 or "rate limit" in lowered or "too many requests" in lowered:
            logger.warning(f"Rate limit exceeded while {context}")
            raise RateLimitError(f"Flickr API rate limit exceeded: {message}", code)

        if (status_code or 0) >= 500 or code == SERVICE_UNAVAILABLE_CODE:
            logger.warning(f"Server error while {context}")
            raise ServerError(f"Flickr API server error: {message}", code)

        error_msg = f"Flickr API error while {context}: {message}"
        if code is not None:
            error_msg += f" (code {code})"
        logger.debug(error_msg)
        raise FlickrAPIError(error_msg, code)
