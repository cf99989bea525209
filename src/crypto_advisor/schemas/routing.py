"""Navigation decisions produced by the route gate and access predicates."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Allow:
    """Render the requested page."""


@dataclass(frozen=True)
class Redirect:
    """Send the browser to `target` instead."""

    target: str


RouteDecision = Allow | Redirect
