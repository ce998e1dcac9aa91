"""
Crunchyroll API Client
Handles token authentication, watch history paging and media lookups
against the Crunchyroll content API.
"""

import logging
import time
import uuid
from typing import Any, Dict, Iterator, Optional

import requests

from crunchyroll_models import Media, WatchHistoryEntry, media_from_api

logger = logging.getLogger(__name__)

CRUNCHYROLL_BASE_URL = "https://www.crunchyroll.com"

# Public web client credentials ("noaihdevm_6iyg0a8l0q:")
CRUNCHYROLL_BASIC_AUTH = "Basic bm9haWhkZXZtXzZpeWcwYThsMHE6"

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

REQUEST_TIMEOUT = 30
MAX_RETRIES = 3
HISTORY_PAGE_SIZE = 100


class CrunchyrollAuthError(Exception):
    """Raised when Crunchyroll rejects the credentials or a token refresh."""
    pass


class CrunchyrollAPIError(Exception):
    """Raised when a Crunchyroll API request fails."""
    pass


class CrunchyrollClient:
    """Minimal Crunchyroll content API client for a single account"""

    def __init__(self, locale: str = "en-US",
                 page_size: int = HISTORY_PAGE_SIZE,
                 session: Optional[requests.Session] = None,
                 basic_auth: str = CRUNCHYROLL_BASIC_AUTH):
        self.locale = locale
        self.page_size = page_size
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': USER_AGENT,
            'Accept': 'application/json',
        })
        self.basic_auth = basic_auth
        self.device_id = str(uuid.uuid4())

        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.account_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token and self.account_id)

    def login(self, username: str, password: str) -> None:
        """
        Log in with account credentials

        Raises:
            CrunchyrollAuthError: if the token endpoint rejects the login
        """
        logger.info("🔐 Authenticating with Crunchyroll...")

        self._request_token({
            'grant_type': 'password',
            'username': username,
            'password': password,
            'scope': 'offline_access',
            'device_id': self.device_id,
            'device_type': 'Chrome',
        })

        if not self.account_id:
            raise CrunchyrollAuthError("No account_id in token response")

        logger.info(f"✅ Authenticated as account {self.account_id[:8]}...")

    def watch_history(self) -> Iterator[WatchHistoryEntry]:
        """
        Lazily iterate the account's watch history, most recent first

        Pages are fetched on demand. Items the API returns in an unexpected
        shape are skipped with a warning.

        Raises:
            CrunchyrollAPIError: if a history page cannot be fetched
        """
        if not self.is_authenticated:
            raise CrunchyrollAuthError("Not authenticated! Call login() first.")

        page_num = 0
        seen = 0

        while True:
            page_num += 1
            logger.debug(f"📄 Fetching watch history page {page_num}...")

            data = self._get(
                f"/content/v2/{self.account_id}/watch-history",
                params={
                    'locale': self.locale,
                    'page': page_num,
                    'page_size': self.page_size,
                },
            )

            items = data.get('data') or []
            if not items:
                logger.debug(f"No more watch history at page {page_num}")
                return

            for item in items:
                seen += 1
                try:
                    entry = WatchHistoryEntry.from_api(item)
                except (ValueError, TypeError) as e:
                    logger.warning(f"⚠️ Skipping malformed watch history item: {e}")
                    continue
                yield entry

            total = data.get('total')
            if isinstance(total, int) and seen >= total:
                return

    def media_from_id(self, media_id: str) -> Media:
        """
        Look up a CMS object (series, episode, movie...) by id

        Raises:
            CrunchyrollAPIError: if the lookup fails or returns nothing
        """
        data = self._get(
            f"/content/v2/cms/objects/{media_id}",
            params={'locale': self.locale},
        )

        items = data.get('data') or []
        if not items:
            raise CrunchyrollAPIError(f"No media found for id {media_id}")

        return media_from_api(items[0])

    def close(self) -> None:
        """Close the underlying HTTP session"""
        self.session.close()

    def _request_token(self, form: Dict[str, str]) -> None:
        """POST to the token endpoint and store the returned tokens"""
        try:
            response = self.session.post(
                f"{CRUNCHYROLL_BASE_URL}/auth/v1/token",
                headers={
                    'Authorization': self.basic_auth,
                    'Content-Type': 'application/x-www-form-urlencoded',
                },
                data=form,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise CrunchyrollAuthError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            raise CrunchyrollAuthError(
                f"Token request failed: {response.status_code} - {response.text}"
            )

        try:
            token_data = response.json()
        except ValueError as e:
            raise CrunchyrollAuthError(f"Invalid token response: {e}") from e

        self.access_token = token_data.get('access_token')
        self.refresh_token = token_data.get('refresh_token', self.refresh_token)
        self.account_id = token_data.get('account_id', self.account_id)

        if not self.access_token:
            raise CrunchyrollAuthError("No access_token in token response")

    def _refresh_access_token(self) -> bool:
        """Swap the refresh token for a new access token"""
        if not self.refresh_token:
            return False

        logger.info("🔄 Refreshing access token...")
        try:
            self._request_token({
                'grant_type': 'refresh_token',
                'refresh_token': self.refresh_token,
                'scope': 'offline_access',
                'device_id': self.device_id,
                'device_type': 'Chrome',
            })
        except CrunchyrollAuthError as e:
            logger.error(f"❌ Failed to refresh access token: {e}")
            return False

        logger.info("✅ Access token refreshed successfully")
        return True

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET an API endpoint with retry on rate limits and server errors

        Implements exponential backoff for server and network errors and
        one token refresh on 401.
        """
        url = f"{CRUNCHYROLL_BASE_URL}{endpoint}"
        retry_count = 0
        refreshed = False

        while retry_count < MAX_RETRIES:
            try:
                response = self.session.get(
                    url,
                    headers={'Authorization': f'Bearer {self.access_token}'},
                    params=params,
                    timeout=REQUEST_TIMEOUT,
                )
            except requests.exceptions.RequestException as e:
                wait_time = (2 ** retry_count) * 2
                logger.warning(f"🔌 Network error: {e}, retrying in {wait_time}s...")
                time.sleep(wait_time)
                retry_count += 1
                continue

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise CrunchyrollAPIError(f"Invalid JSON from {endpoint}: {e}") from e

            if response.status_code == 401 and not refreshed:
                refreshed = True
                if self._refresh_access_token():
                    continue
                raise CrunchyrollAuthError("Access token expired and could not be refreshed")

            if response.status_code == 429:
                retry_after = response.headers.get('Retry-After', '60')
                try:
                    wait_seconds = int(retry_after)
                except ValueError:
                    wait_seconds = 60

                logger.warning(f"🚫 Rate limit exceeded. Waiting {wait_seconds} seconds...")
                time.sleep(wait_seconds)
                retry_count += 1
                continue

            if response.status_code in [500, 502, 503, 504]:
                wait_time = 2 ** retry_count
                logger.warning(f"🔧 Server error {response.status_code}, retrying in {wait_time}s...")
                time.sleep(wait_time)
                retry_count += 1
                continue

            raise CrunchyrollAPIError(
                f"API request failed: {response.status_code} - {response.text}"
            )

        raise CrunchyrollAPIError(f"API request to {endpoint} failed after {MAX_RETRIES} retries")
