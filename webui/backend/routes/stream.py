"""SSE event streaming route."""
from __future__ import annotations

import json

from litestar import get
from litestar.response import ServerSentEvent, ServerSentEventMessage

from webui.backend.session_manager import session_manager


@get("/api/projects/{session_id:str}/stream", media_type="text/event-stream")
async def stream_session(session_id: str) -> ServerSentEvent:
    session_manager.require(session_id)

    async def _generate():
        async for msg in session_manager.stream(session_id):
            yield ServerSentEventMessage(data=json.dumps(msg), event=msg.get("type"))

    return ServerSentEvent(_generate())
