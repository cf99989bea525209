"""Result envelope returned by every gateway call."""
from typing import Any

from pydantic import BaseModel


class HttpResponse(BaseModel):
    """Uniform `{success, data?, error?}` result, whatever the server sent.

    `status` is the upstream HTTP status when a response was received; it is
    None for transport failures and for the open-circuit short-circuit.
    """

    success: bool
    data: Any = None
    error: str | None = None
    status: int | None = None
