"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when weather provider requests or normalization fail."""


class ProviderDataError(WeatherProviderError):
    """Raised when a provider response lacks a required field."""


class StoreError(Exception):
    """Raised when reading or writing a local store fails."""


class LocationNotFoundError(StoreError):
    """Raised when a location id does not exist in the directory."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""


class SummarizerUnavailable(Exception):
    """Raised when the narrative text-generation service cannot be used."""
