"""Domain exceptions."""

from __future__ import annotations


class ReelmatchError(Exception):
    """Base class for all reelmatch errors."""


class InputError(ReelmatchError):
    """Raised for bad query input; surfaced to the caller before any phase."""


class UnsupportedProviderError(InputError):
    """Raised when a provider name is not known to the registry."""


class InvalidSearchRequestError(InputError):
    """Raised when season/episode/threshold values are inconsistent."""


class CollaboratorUnavailableError(ReelmatchError):
    """Base for failures of external services; degraded to empty signals."""


class ProviderError(CollaboratorUnavailableError):
    """Raised when a provider API call fails or returns garbage."""


class ProviderAuthError(ProviderError):
    """Raised when a provider rejects the API key."""


class MetadataLookupError(CollaboratorUnavailableError):
    """Raised when a metadata service (TMDB, Trakt, Jikan) fails."""
