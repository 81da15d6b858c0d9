"""Provider protocol: the interface each platform module exposes to the audit flow."""
from typing import Protocol

from account_doctor.models import ProfileSnapshot


class ProfileProvider(Protocol):
    """Fetches a profile and normalizes it into a ProfileSnapshot.

    Normalization is the provider's job; the scoring engine only ever sees
    the normalized snapshot.
    """

    def fetch_snapshot(self, username: str) -> ProfileSnapshot:
        ...
