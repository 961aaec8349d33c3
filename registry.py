# registry.py
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Set

from starlette.websockets import WebSocketState

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_client_id(length: int = 6) -> str:
    """Short base-36 id for log correlation. Not guaranteed unique."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


# eq=False keeps identity hashing: two entries are the same only if they are
# the same object, even when they wrap equal-looking sockets.
@dataclass(eq=False)
class ConnectionEntry:
    websocket: Any
    client_id: str = field(default_factory=new_client_id)

    @property
    def is_open(self) -> bool:
        return (
            getattr(self.websocket, "client_state", None) == WebSocketState.CONNECTED
            and getattr(self.websocket, "application_state", None) == WebSocketState.CONNECTED
        )


class ConnectionRegistry:
    """Authoritative set of open connections.

    ``add`` and ``remove`` are idempotent and report whether membership
    changed, so the broadcast pass and the connection handler can both try to
    drop a failed connection and only one of them sees ``True``. Iteration
    always walks a point-in-time copy; removals made mid-iteration do not
    affect the traversal in progress.
    """

    def __init__(self):
        self._entries: Set[ConnectionEntry] = set()

    def add(self, entry: ConnectionEntry) -> bool:
        if entry in self._entries:
            return False
        self._entries.add(entry)
        return True

    def remove(self, entry: ConnectionEntry) -> bool:
        if entry not in self._entries:
            return False
        self._entries.discard(entry)
        return True

    def snapshot(self) -> List[ConnectionEntry]:
        return list(self._entries)

    def for_each(self, fn: Callable[[ConnectionEntry], None]) -> None:
        for entry in self.snapshot():
            fn(entry)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, entry: object) -> bool:
        return entry in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConnectionEntry]:
        return iter(self.snapshot())
