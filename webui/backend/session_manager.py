"""Session lifecycle: one Studio per browser session, background tasks, SSE events."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from filmcore.config import Config
from filmcore.errors import ErrorKind
from filmcore.models import Project
from filmcore.studio import Studio

log = logging.getLogger(__name__)


@dataclass
class Session:
    session_id: str
    studio: Studio
    queue: asyncio.Queue
    created_at: float = field(default_factory=time.time)
    tasks: dict[str, asyncio.Task] = field(default_factory=dict)

    def push(self, msg: dict) -> None:
        self.queue.put_nowait({**msg, "ts": time.time()})


class SessionManager:
    def __init__(
        self,
        config_loader: Callable[[], Config] = Config.load,
        studio_factory: Callable[..., Studio] = Studio,
    ) -> None:
        self.config_loader = config_loader
        self.studio_factory = studio_factory
        self._sessions: dict[str, Session] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, project: Project | None = None) -> Session:
        session_id = str(uuid.uuid4())[:8]
        queue: asyncio.Queue = asyncio.Queue()

        def _push(msg: dict) -> None:
            queue.put_nowait({**msg, "ts": time.time()})

        def _credential(kind: ErrorKind, message: str) -> None:
            _push({"type": "credential", "kind": kind.value, "text": message})

        studio = self.studio_factory(
            self.config_loader(),
            project,
            progress_cb=lambda text: _push({"type": "log", "text": text}),
            on_credential_needed=_credential,
            on_alert=lambda text: _push({"type": "alert", "text": text}),
        )
        session = Session(session_id=session_id, studio=studio, queue=queue)
        self._sessions[session_id] = session
        log.info("Session %s created", session_id)
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Session {session_id!r} not found")
        return session

    def start(self, session: Session, name: str, factory: Callable[[], Awaitable[object]]) -> str:
        """Run a studio operation in the background. Returns the task name."""
        running = session.tasks.get(name)
        if running is not None and not running.done():
            raise ValueError(f"Task {name!r} is already running")
        session.push({"type": "task", "task": name, "state": "running"})
        session.tasks[name] = asyncio.create_task(self._run(session, name, factory))
        return name

    def running(self, session: Session) -> list[str]:
        return [name for name, task in session.tasks.items() if not task.done()]

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        for task in session.tasks.values():
            task.cancel()
        await session.studio.aclose()
        session.push({"type": "status", "state": "closed"})
        log.info("Session %s closed", session_id)

    async def stream(self, session_id: str) -> AsyncIterator[dict]:
        """Async generator: yields SSE message dicts until the session closes."""
        session = self._sessions.get(session_id)
        if session is None:
            return
        queue = session.queue
        while True:
            msg = await queue.get()
            yield msg
            if msg.get("type") == "status":
                break

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, session: Session, name: str, factory: Callable[[], Awaitable[object]]) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            session.push({"type": "task", "task": name, "state": "cancelled"})
            raise
        except Exception as exc:
            # The studio has already routed the failure to its alert hooks
            log.exception("Task %s in session %s failed", name, session.session_id)
            session.push({"type": "task", "task": name, "state": "failed", "error": str(exc)})
            return
        session.push({"type": "task", "task": name, "state": "done"})


# Singleton
session_manager = SessionManager()
