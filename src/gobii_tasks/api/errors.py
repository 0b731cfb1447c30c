# src/gobii_tasks/api/errors.py

from __future__ import annotations


class GobiiApiError(RuntimeError):
    """Base class for everything the remote execution client can raise."""

    user_message = "Gobii API error."

    def friendly(self) -> str:
        return self.user_message


class AuthError(GobiiApiError):
    user_message = "API key is missing. Set it with /key <value> or GOBII_API_KEY in .env."


class TransportError(GobiiApiError):
    user_message = "Network error while talking to the Gobii API. Try again later."


class ServerError(GobiiApiError):
    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"Server returned HTTP {status_code}" + (f": {detail}" if detail else ""))
        self.status_code = status_code

    def friendly(self) -> str:
        if self.status_code in (401, 403):
            return f"Server rejected the API key (HTTP {self.status_code}). Check it with /key."
        return f"Server returned an error with status code {self.status_code}."


class DecodeError(GobiiApiError):
    user_message = "Received an invalid response from the Gobii API."


def friendly_api_error_message(err: Exception) -> str:
    if isinstance(err, GobiiApiError):
        return err.friendly()
    return str(err).strip() or "Unexpected error."
