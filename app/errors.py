class ConfigurationError(RuntimeError):
    """Required credentials or settings are missing; no upstream call was made."""


class UpstreamError(RuntimeError):
    """A third-party API answered with a non-success status."""

    def __init__(self, service: str, status_code: int, body: str = ""):
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(f"{service} failed: {status_code}")
