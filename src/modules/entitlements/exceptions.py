class EntitlementsError(Exception):
    """Base exception for entitlements module errors."""
    pass


class EntitlementsRepositoryError(EntitlementsError):
    """Raised when a repository operation fails due to infrastructure issues."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class SubscriptionUnavailableError(EntitlementsError):
    """The subscription store failed or timed out during resolution."""
    pass


class UsageUnavailableError(EntitlementsError):
    """The usage store failed or timed out during resolution."""
    pass


class RecordingFailedError(EntitlementsError):
    """A usage event could not be appended."""
    pass


class TierCatalogError(EntitlementsError):
    """Raised when the tier catalog document is missing or invalid."""
    pass
