"""Tests for live pipeline status fan-out."""

import threading

from postpic.modules.transcoding.models import PipelineState
from postpic.modules.transcoding.status import ANY_ASSET, StatusRegistry


class TestStatusRegistry:
    """Subscribe, publish and unsubscribe."""

    def test_publish_reaches_subscribers(self, registry: StatusRegistry) -> None:
        first = registry.subscribe("abc")
        second = registry.subscribe("abc")

        event = registry.publish("abc", PipelineState.SOURCE_SAVED, "saved")

        assert first.get_nowait() == event
        assert second.get_nowait() == event
        assert event.detail == "saved"
        assert event.timestamp.tzinfo is not None

    def test_other_assets_not_notified(self, registry: StatusRegistry) -> None:
        watched = registry.subscribe("abc")

        registry.publish("other", PipelineState.ALLOCATED)

        assert watched.empty()

    def test_wildcard_sees_every_asset(self, registry: StatusRegistry) -> None:
        every = registry.subscribe(ANY_ASSET)
        one = registry.subscribe("abc")

        registry.publish("abc", PipelineState.UPLOADED)
        registry.publish("xyz", PipelineState.UPLOADED)

        assert [every.get_nowait().asset_id for _ in range(2)] == ["abc", "xyz"]
        assert one.get_nowait().asset_id == "abc"
        assert one.empty()

    def test_wildcard_unsubscribe(self, registry: StatusRegistry) -> None:
        every = registry.subscribe(ANY_ASSET)
        registry.unsubscribe(ANY_ASSET, every)

        registry.publish("abc", PipelineState.UPLOADED)

        assert every.empty()
        assert len(registry) == 0

    def test_publish_without_subscribers(self, registry: StatusRegistry) -> None:
        event = registry.publish("abc", PipelineState.ALLOCATED)

        assert event.state == PipelineState.ALLOCATED
        assert len(registry) == 0

    def test_last_unsubscribe_drops_entry(self, registry: StatusRegistry) -> None:
        first = registry.subscribe("abc")
        second = registry.subscribe("abc")

        registry.unsubscribe("abc", first)
        assert registry.subscriber_count("abc") == 1
        assert len(registry) == 1

        registry.unsubscribe("abc", second)
        assert registry.subscriber_count("abc") == 0
        assert len(registry) == 0

    def test_unsubscribe_unknown_is_noop(self, registry: StatusRegistry) -> None:
        q = registry.subscribe("abc")

        registry.unsubscribe("missing", q)
        registry.unsubscribe("abc", q)
        registry.unsubscribe("abc", q)

        assert len(registry) == 0

    def test_concurrent_subscribers(self, registry: StatusRegistry) -> None:
        queues = []
        lock = threading.Lock()

        def subscribe():
            q = registry.subscribe("abc")
            with lock:
                queues.append(q)

        threads = [threading.Thread(target=subscribe) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        registry.publish("abc", PipelineState.MANIFEST_READY)

        assert registry.subscriber_count("abc") == 20
        assert all(q.get_nowait().state == PipelineState.MANIFEST_READY for q in queues)
