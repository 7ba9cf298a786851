"""Port for cloud/debrid provider catalogs."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reelmatch.domain.entities.media import Candidate


@runtime_checkable
class ProviderPort(Protocol):
    """Async interface to one user's stored items on a provider.

    Implementations raise ``ProviderError`` (or ``ProviderAuthError``) on
    failure; the coordinator turns those into empty results.
    """

    name: str
    supports_bulk_listing: bool

    async def bulk_list(self, api_key: str) -> list[Candidate]:
        """Return the user's whole catalog in one pass."""
        ...

    async def search_by_title(
        self, api_key: str, term: str, threshold: float
    ) -> list[Candidate]:
        """Provider-side search for *term* (fallback when bulk listing fails)."""
        ...

    async def get_details(self, api_key: str, candidate_id: str) -> Candidate | None:
        """Load the video list of a container item."""
        ...

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        """Build the playback URL for a file link."""
        ...
