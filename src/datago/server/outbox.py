"""
Outbound delivery seam between the game core and the transport
"""

from typing import Iterable, Optional, Protocol

from ..models.events import ServerEventBase


class Outbox(Protocol):
    """Where the game service sends events; the transport decides how they reach sockets"""

    def send(self, player_id: str, event: ServerEventBase) -> None:
        ...

    def broadcast(self, event: ServerEventBase, exclude: Optional[Iterable[str]] = None) -> None:
        ...
