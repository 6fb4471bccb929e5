"""Result type for explicit error handling.

Every step of a release returns either ``Ok(value)`` or ``Err(error)``
instead of raising, so the orchestrator can decide per step whether a
failure is fatal, advisory, or simply reported.

Usage:
    def parse_ticket(raw: str) -> Result[LockTicket, ReleaseError]:
        ...

    ticket = parse_ticket(stdout)
    if isinstance(ticket, Err):
        return ticket
    console.info(f"ticket: {ticket.value.ticket_id}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed result carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]
