import logging
import os
from typing import Any

import httpx

from account_doctor.utils import call_with_retry

_log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.apify.com"
DEFAULT_ACTOR = "apify~instagram-profile-scraper"
RESULTS_LIMIT = 12


class ScraperError(RuntimeError):
    """The scraping service failed or returned something unusable."""


class ProfileNotFound(ScraperError):
    """The account does not exist or is private."""


def fetch_profile(username: str, results_limit: int = RESULTS_LIMIT) -> dict[str, Any]:
    """Run the Apify Instagram profile scraper synchronously and return its first item.

    Uses APIFY_API_TOKEN, and optionally APIFY_BASE_URL / APIFY_ACTOR, from the
    environment. Transport errors are retried with backoff before giving up.
    """
    token = os.getenv("APIFY_API_TOKEN")
    if not token:
        raise ScraperError("APIFY_API_TOKEN not set")
    base_url = os.getenv("APIFY_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    actor = os.getenv("APIFY_ACTOR", DEFAULT_ACTOR)

    _log.info("apify: scraping @%s (limit=%d)", username, results_limit)
    with httpx.Client(base_url=base_url, timeout=120) as client:
        try:
            response = call_with_retry(
                client.post,
                f"/v2/acts/{actor}/run-sync-get-dataset-items",
                params={"token": token},
                json={"usernames": [username], "resultsLimit": results_limit},
                retry_on=(httpx.TransportError,),
            )
        except httpx.TransportError as exc:
            raise ScraperError(f"Apify request failed: {exc}") from exc

    # run-sync endpoints answer 201 when the run was created and finished
    if response.status_code not in (200, 201):
        raise ScraperError(f"Apify API error (HTTP {response.status_code}): {response.text[:200]}")

    items = response.json()
    if not isinstance(items, list) or not items:
        raise ProfileNotFound(f"No data returned for @{username}")

    item = items[0]
    error = item.get("error") if isinstance(item, dict) else None
    if error:
        if error in ("not_found", "no_items") or "private" in str(item.get("errorDescription", "")).lower():
            raise ProfileNotFound(f"@{username}: {item.get('errorDescription') or error}")
        raise ScraperError(f"Apify error: {error} - {item.get('errorDescription', '')}")

    _log.info(
        "apify: got @%s followers=%s posts=%s",
        item.get("username"), item.get("followersCount"), item.get("postsCount"),
    )
    return item
