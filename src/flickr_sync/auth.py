"""Out-of-band OAuth handshake used to obtain a Flickr access token."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import flickrapi
import requests
from flickrapi.exceptions import FlickrError

logger = logging.getLogger(__name__)

OAUTH_BASE_URL = "https://www.flickr.com/services/oauth"
REQUEST_TOKEN_URL = f"{OAUTH_BASE_URL}/request_token"
AUTHORIZE_URL = f"{OAUTH_BASE_URL}/authorize"
ACCESS_TOKEN_URL = f"{OAUTH_BASE_URL}/access_token"

# Deleting duplicates needs the broadest permission level
DEFAULT_PERMS = "delete"


class AuthenticationError(Exception):
    """Raised when the OAuth handshake fails."""

    pass


@dataclass(frozen=True)
class OAuthToken:
    """An OAuth token and its secret."""

    token: str
    secret: str


def authorize(
    api_key: str,
    api_secret: str,
    ask_verifier: Callable[[str], str],
    perms: str = DEFAULT_PERMS,
) -> OAuthToken:
    """Run the whole handshake.

    Args:
        api_key: Flickr application key
        api_secret: Flickr application secret
        ask_verifier: Called with the authorize URL, returns the code the
            user copied from the Flickr confirmation page
        perms: Permission level to request

    Returns:
        The access token pair to store as oauth_token/oauth_token_secret

    Raises:
        AuthenticationError: If any step of the handshake fails
    """
    flickr = flickrapi.FlickrAPI(api_key, api_secret, store_token=False)

    try:
        flickr.get_request_token(oauth_callback="oob")
        verifier = ask_verifier(flickr.auth_url(perms=perms)).strip()
        if not verifier:
            raise AuthenticationError("No verification code provided")
        flickr.get_access_token(verifier)
    except FlickrError as e:
        raise AuthenticationError(f"Flickr refused the token request: {e}") from e
    except KeyError as e:
        raise AuthenticationError(f"Unexpected token response from Flickr, missing {e}") from e
    except requests.RequestException as e:
        raise AuthenticationError(f"Network error while contacting Flickr: {e}") from e

    token = flickr.token_cache.token
    logger.info("[OK] Retrieved OAuth access token")
    return OAuthToken(token.token, token.token_secret)
