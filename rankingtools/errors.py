class SearchProviderError(Exception):
    """Raised when the remote search API fails or answers with malformed data."""
