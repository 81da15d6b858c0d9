"""Instagram platform: Apify-backed profile provider."""
from account_doctor.models import ProfileSnapshot
from account_doctor.platforms.instagram.fetcher import RESULTS_LIMIT, ProfileNotFound, ScraperError, fetch_profile
from account_doctor.platforms.instagram.parser import clean_username, parse_profile


class ApifyInstagramProvider:
    """ProfileProvider that scrapes through Apify and normalizes the result."""

    def __init__(self, results_limit: int = RESULTS_LIMIT) -> None:
        self.results_limit = results_limit

    def fetch_snapshot(self, username: str) -> ProfileSnapshot:
        handle = clean_username(username)
        return parse_profile(fetch_profile(handle, results_limit=self.results_limit), username=handle)


__all__ = [
    "ApifyInstagramProvider",
    "ProfileNotFound",
    "ScraperError",
    "clean_username",
    "fetch_profile",
    "parse_profile",
]
