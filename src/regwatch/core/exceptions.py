"""Custom exceptions for Regwatch."""


class RegwatchError(Exception):
    """Base exception for all Regwatch errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


# Ingestion errors
class IngestionError(RegwatchError):
    """Base error for ingestion layer."""


class FeedFetchError(IngestionError):
    """A feed could not be retrieved (network failure or non-2xx response)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ProviderAPIError(IngestionError):
    """A paid provider's search API call failed."""


# Configuration errors
class ConfigurationError(RegwatchError):
    """Base error for configuration problems."""


class MissingCredentialsError(ConfigurationError):
    """Required credential variables are absent."""

    def __init__(self, provider: str, missing: list[str]) -> None:
        self.provider = provider
        self.missing = missing
        noun = "this secret" if len(missing) == 1 else "these secrets"
        super().__init__(
            f"{' and '.join(missing)} not configured. "
            f"Set {noun} to enable {provider} regulatory monitoring."
        )


# Storage errors
class StorageError(RegwatchError):
    """Base error for storage layer."""


class StoreUnavailableError(StorageError):
    """The persistent store cannot be reached."""

