from typing import Dict, Optional

from fastapi import status
from src.domain.result import Error


class ClientError(Exception):
    def __init__(
        self,
        base_error: Error,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_error = base_error
        self.status_code = status_code
        self.headers = headers
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(
        self, base_error: Error, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


def store_or_server_error(error: Error) -> ServerError:
    """Map an unhandled use case error; store outages become 503."""
    if error.code == "STORE_UNAVAILABLE":
        return ServerError(error, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return ServerError(error)
