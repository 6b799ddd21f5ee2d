"""Live pipeline status fan-out.

An in-process hook for code that embeds the pipeline (there is no HTTP
status route). Subscribers register interest in one asset, or in every asset
with :data:`ANY_ASSET`, and receive each state transition the orchestrator
publishes. A successful run ends with ``uploaded``, which is what downstream
consumers (feeds, notifications) listen for.

Entries are created on first subscribe and removed as soon as the last
subscriber leaves, so the registry only holds assets somebody is watching.
"""

import queue
import threading
from datetime import datetime, timezone
from typing import Optional

from postpic.modules.transcoding.models import PipelineState
from postpic.modules.transcoding.schemas import PipelineStatusEvent

# Never a valid asset id, so it cannot collide with one
ANY_ASSET = "*"


class StatusRegistry:
    """Thread-safe map of asset ID -> subscriber queues."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[queue.SimpleQueue]] = {}

    def subscribe(self, asset_id: str) -> queue.SimpleQueue:
        """Start receiving events for an asset."""
        q: queue.SimpleQueue = queue.SimpleQueue()
        with self._lock:
            self._subscribers.setdefault(asset_id, []).append(q)
        return q

    def unsubscribe(self, asset_id: str, q: queue.SimpleQueue) -> None:
        """Stop receiving events; drops the asset entry when it empties."""
        with self._lock:
            subscribers = self._subscribers.get(asset_id)
            if not subscribers:
                return
            try:
                subscribers.remove(q)
            except ValueError:
                pass
            if not subscribers:
                del self._subscribers[asset_id]

    def publish(
        self,
        asset_id: str,
        state: PipelineState,
        detail: Optional[str] = None,
    ) -> PipelineStatusEvent:
        """Deliver a state transition to every current subscriber."""
        event = PipelineStatusEvent(
            asset_id=asset_id,
            state=state,
            detail=detail,
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            targets = list(self._subscribers.get(asset_id, ()))
            if asset_id != ANY_ASSET:
                targets += self._subscribers.get(ANY_ASSET, ())
        for q in targets:
            q.put(event)
        return event

    def subscriber_count(self, asset_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(asset_id, ()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)


status_registry = StatusRegistry()
