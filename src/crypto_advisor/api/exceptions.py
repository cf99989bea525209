"""Typed errors raised inside the client layer."""


class ApiError(Exception):
    """A failed API result turned into an exception.

    Carries the upstream status (None for transport failures and the
    open-circuit short-circuit) so retry policies can tell client errors apart.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_client_error(self) -> bool:
        """4xx other than 401; 401 is handled by the refresh flow instead."""
        return self.status is not None and 400 <= self.status < 500 and self.status != 401


class UnrecognizedResponseShape(ValueError):
    """The backend returned a payload none of the known decoders accept."""

    def __init__(self, resource: str, payload: object) -> None:
        kind = type(payload).__name__
        keys = sorted(payload) if isinstance(payload, dict) else None
        detail = f"Unrecognized {resource} payload ({kind}"
        detail += f" with keys {keys})" if keys is not None else ")"
        super().__init__(detail)
        self.resource = resource
        self.payload = payload
