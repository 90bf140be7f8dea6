"""Progress relay: per-installation pub/sub with late-joiner replay.

Installations are tracked by id. Each id has a room, ``installation:<id>``.
Connections subscribe once and then join or leave rooms. Every event for a
room is put on each member's queue synchronously, inside the call that emits
it. There is no await between the state update and the fan-out, so:

- a subscriber sees a room's events in emission order;
- a joiner is sent the current state immediately, ahead of any later event.

Nothing is persisted. Subscribers that stop draining their queue are the
transport's problem; ``unsubscribe`` drops them from every room.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from scalardb_setup.models.installation import InstallationState, StepRecord

logger = logging.getLogger(__name__)

_SECRET_MARKERS = ("password", "secret", "accesskey", "token")
REDACTED = "********"


def _now() -> datetime:
    return datetime.now(UTC)


def room_for(installation_id: str) -> str:
    return f"installation:{installation_id}"


def redact_secrets(value: Any) -> Any:
    """Return a copy of ``value`` with credential-looking fields masked."""
    if isinstance(value, dict):
        redacted = {}
        for key, item in value.items():
            lowered = str(key).lower()
            secret = lowered == "key" or any(marker in lowered for marker in _SECRET_MARKERS)
            if secret and not isinstance(item, (dict, list)):
                redacted[key] = REDACTED if item not in (None, "") else item
            else:
                redacted[key] = redact_secrets(item)
        return redacted
    if isinstance(value, list):
        return [redact_secrets(item) for item in value]
    return value


class Subscriber:
    """One connection's inbox. Events are ``{"event": name, "data": payload}`` dicts."""

    def __init__(self) -> None:
        self.id = uuid.uuid4().hex
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.rooms: set[str] = set()

    def deliver(self, message: dict[str, Any]) -> None:
        self.queue.put_nowait(message)


class ProgressRelay:
    """In-process pub/sub keyed by installation id."""

    def __init__(self) -> None:
        self._installations: dict[str, InstallationState] = {}
        self._rooms: dict[str, set[Subscriber]] = defaultdict(set)
        self._subscribers: set[Subscriber] = set()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def subscribe(self) -> Subscriber:
        sub = Subscriber()
        self._subscribers.add(sub)
        logger.info("Client connected: %s", sub.id)
        sub.deliver({
            "event": "welcome",
            "data": {
                "message": "ScalarDB Installer WebSocket connected",
                "timestamp": _now().isoformat(),
            },
        })
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        for room in list(sub.rooms):
            self._leave_room(sub, room)
        self._subscribers.discard(sub)
        logger.info("Client disconnected: %s", sub.id)

    def join(self, sub: Subscriber, installation_id: str, ack: int | None = None) -> None:
        """Add ``sub`` to the installation's room and replay its current state.

        When ``ack`` is given the acknowledgement is queued before the replay.
        """
        room = room_for(installation_id)
        self._rooms[room].add(sub)
        sub.rooms.add(room)
        logger.info("Client %s joined installation %s", sub.id, installation_id)

        if ack is not None:
            sub.deliver({
                "event": "ack",
                "ack": ack,
                "data": {
                    "success": True,
                    "installationId": installation_id,
                    "message": f"Joined installation {installation_id}",
                },
            })

        state = self._installations.get(installation_id)
        if state is not None:
            sub.deliver({"event": "installation:state", "data": state.to_wire()})

    def leave(self, sub: Subscriber, installation_id: str) -> None:
        self._leave_room(sub, room_for(installation_id))
        logger.info("Client %s left installation %s", sub.id, installation_id)

    def _leave_room(self, sub: Subscriber, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(sub)
            if not members:
                del self._rooms[room]
        sub.rooms.discard(room)

    def connected_clients(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Installation lifecycle
    # ------------------------------------------------------------------

    def start_installation(self, installation_id: str, config: dict[str, Any]) -> InstallationState:
        state = InstallationState(
            installation_id=installation_id,
            status="started",
            config=redact_secrets(config),
            start_time=_now(),
        )
        self._installations[installation_id] = state
        self._emit(installation_id, "installation:started", {
            "installationId": installation_id,
            "status": "started",
            "timestamp": state.start_time.isoformat(),
        })
        logger.info("Installation started: %s", installation_id)
        return state

    def update_progress(
        self,
        installation_id: str,
        step: str,
        progress: int,
        status: str = "running",
        message: str | None = None,
    ) -> None:
        state = self._installations.get(installation_id)
        if state is None:
            logger.warning("Progress update for unknown installation: %s", installation_id)
            return

        now = _now()
        state.current_step = step
        state.progress = progress
        state.status = status
        state.steps.append(StepRecord(
            step=step, progress=progress, status=status, message=message, timestamp=now,
        ))
        self._emit(installation_id, "installation:progress", {
            "installationId": installation_id,
            "step": step,
            "progress": progress,
            "status": status,
            "message": message,
            "timestamp": now.isoformat(),
        })

    def send_error(
        self,
        installation_id: str,
        error: str,
        step: str | None = None,
        details: Any = None,
    ) -> None:
        state = self._installations.get(installation_id)
        if state is not None:
            state.status = "error"
            state.error = error
            state.end_time = _now()
        self._emit(installation_id, "installation:error", {
            "installationId": installation_id,
            "error": error,
            "step": step,
            "details": details,
            "timestamp": _now().isoformat(),
        })
        logger.error("Installation %s failed at %s: %s", installation_id, step, error)

    def complete_installation(self, installation_id: str, result: dict[str, Any]) -> None:
        state = self._installations.get(installation_id)
        if state is not None:
            state.status = "completed"
            state.progress = 100
            state.result = result
            state.end_time = _now()
        self._emit(installation_id, "installation:completed", {
            "installationId": installation_id,
            "result": result,
            "timestamp": _now().isoformat(),
        })
        logger.info("Installation completed: %s", installation_id)

    def send_log(self, installation_id: str, message: str, level: str = "info") -> None:
        """Emit a log line to the room; no state is required."""
        self._emit(installation_id, "installation:log", {
            "installationId": installation_id,
            "level": level,
            "message": message,
            "timestamp": _now().isoformat(),
        })

    def get_installation_state(self, installation_id: str) -> InstallationState | None:
        return self._installations.get(installation_id)

    def prune(self, older_than: timedelta) -> int:
        """Forget finished installations whose end time is older than ``older_than``."""
        cutoff = _now() - older_than
        stale = [
            installation_id
            for installation_id, state in self._installations.items()
            if state.finished and state.end_time is not None and state.end_time < cutoff
        ]
        for installation_id in stale:
            del self._installations[installation_id]
        if stale:
            logger.info("Pruned %d finished installations", len(stale))
        return len(stale)

    def _emit(self, installation_id: str, event: str, payload: dict[str, Any]) -> None:
        message = {"event": event, "data": payload}
        for sub in list(self._rooms.get(room_for(installation_id), ())):
            sub.deliver(message)


progress_relay = ProgressRelay()
