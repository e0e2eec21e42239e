class ConcertoLinksError(RuntimeError):
    pass


class CallerContractViolation(ConcertoLinksError, ValueError):
    """Both artist and title were empty."""


class ProviderTransientFailure(ConcertoLinksError):
    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class StorageCorrupted(ConcertoLinksError):
    pass


class StorageUnavailable(ConcertoLinksError):
    """Persisted cache temporarily unusable (locked, busy); its contents are intact."""
