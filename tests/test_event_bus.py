from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pm_command_center.integration.event_bus import InMemoryEventBus
from pm_command_center.integration.events import DomainEvent, IssuesFetched


@dataclass(frozen=True)
class _Evt(DomainEvent):
    value: int


def test_event_bus_publish_subscribe() -> None:
    bus = InMemoryEventBus()
    seen: list[int] = []

    def handler(e: _Evt) -> None:
        seen.append(e.value)

    bus.subscribe(_Evt, handler)
    bus.publish(_Evt(occurred_at=datetime.now(timezone.utc), value=1))
    bus.publish(_Evt(occurred_at=datetime.now(timezone.utc), value=2))

    assert seen == [1, 2]


def test_failing_handler_does_not_stop_delivery() -> None:
    bus = InMemoryEventBus()
    seen: list[str] = []

    def broken(e: IssuesFetched) -> None:
        raise RuntimeError("boom")

    bus.subscribe(IssuesFetched, broken)
    bus.subscribe(IssuesFetched, lambda e: seen.append(e.platform))
    bus.subscribe(_Evt, lambda e: seen.append("wrong"))

    bus.publish(IssuesFetched(occurred_at=datetime.now(timezone.utc), platform="jira", issue_count=3))

    assert seen == ["jira"]
