"""Domain concept for mapping failed API results to exceptions and HTTP responses."""
from dataclasses import dataclass

from fastapi import HTTPException

from crypto_advisor import messages
from crypto_advisor.api.exceptions import ApiError, UnrecognizedResponseShape
from crypto_advisor.schemas import HttpResponse


@dataclass(frozen=True)
class ResultErrorMapper:
    """Turns `{success: False}` results into ApiError, and errors into HTTP.

    One instance per resource (crypto list, coin history, advisor...) so
    messages name the thing that failed.
    """

    resource_name: str = "Resource"
    api_name: str = "Backend API"

    def to_exception(self, result: HttpResponse) -> ApiError:
        message = result.error or f"Failed to fetch {self.resource_name.lower()}"
        return ApiError(message, status=result.status)

    def raise_for_result(self, result: HttpResponse) -> None:
        """Raise ApiError unless the result succeeded."""
        if not result.success:
            raise self.to_exception(result)

    def to_http(self, exc: Exception, symbol: str | None = None) -> tuple[int, str]:
        """Map an error to (status_code, detail) for an HTTPException.

        Args:
            exc: ApiError, UnrecognizedResponseShape, or anything else.
            symbol: Optional identifier to include in not-found details.

        Returns:
            (status_code, detail).
        """
        if isinstance(exc, UnrecognizedResponseShape):
            return (502, f"{self.api_name} returned an unexpected {exc.resource} payload")
        if isinstance(exc, ApiError):
            if exc.status is None:
                if exc.message == messages.SERVICE_UNAVAILABLE:
                    return (503, exc.message)
                return (502, exc.message)
            if exc.status == 404:
                detail = (
                    f"{self.resource_name} not found"
                    if symbol is None
                    else f"{self.resource_name} '{symbol}' not found"
                )
                return (404, detail)
            if exc.status >= 500:
                return (502, f"{self.api_name} error")
            return (exc.status, exc.message)
        return (500, "Internal server error")

    def raise_http(self, exc: Exception, symbol: str | None = None) -> None:
        """Map an error to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc, symbol=symbol)
        raise HTTPException(status_code=status_code, detail=detail) from exc
