from __future__ import annotations


class PlatformApiError(RuntimeError):
    """An HTTP call to a tracker failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
