from __future__ import annotations

from pytest import MonkeyPatch
from sqlmodel import Session, SQLModel, create_engine, select

from app.domain.models import EventEnvelope, EventRecord
from app.infra import events
from app.infra.events import ORG_NODE_CREATED, ORG_NODE_DELETED, EventBus


def test_event_bus_publish_and_subscribe() -> None:
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    bus = EventBus()
    seen: list[str] = []

    def handler(event: EventEnvelope) -> None:
        seen.append(event.event_id)

    event = EventEnvelope(
        event_type=ORG_NODE_CREATED,
        actor_id="user-1",
        payload={"id": "node-1", "name": "Ada"},
    )
    bus.subscribe(ORG_NODE_CREATED, handler)
    bus.subscribe(ORG_NODE_CREATED, handler)

    with Session(engine) as session:
        bus.publish(event, session=session)
        session.commit()

    with Session(engine) as session:
        stored = session.exec(select(EventRecord)).all()

    assert len(stored) == 1
    assert stored[0].event_id == event.event_id
    assert stored[0].actor_id == "user-1"
    assert stored[0].payload == {"id": "node-1", "name": "Ada"}
    assert seen == [event.event_id]


def test_wildcard_and_unsubscribe(monkeypatch: MonkeyPatch) -> None:
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(events, "engine", engine)

    bus = EventBus()
    everything: list[str] = []
    deletes: list[str] = []

    def on_any(event: EventEnvelope) -> None:
        everything.append(event.event_type)

    def on_delete(event: EventEnvelope) -> None:
        deletes.append(event.payload["id"])

    bus.subscribe("*", on_any)
    bus.subscribe(ORG_NODE_DELETED, on_delete)

    bus.publish(EventEnvelope(event_type=ORG_NODE_CREATED, payload={"id": "a"}))
    bus.publish(EventEnvelope(event_type=ORG_NODE_DELETED, actor_id="admin", payload={"id": "a"}))
    bus.unsubscribe(ORG_NODE_DELETED, on_delete)
    bus.publish(EventEnvelope(event_type=ORG_NODE_DELETED, payload={"id": "b"}))

    assert everything == [ORG_NODE_CREATED, ORG_NODE_DELETED, ORG_NODE_DELETED]
    assert deletes == ["a"]
    with Session(engine) as session:
        assert len(session.exec(select(EventRecord)).all()) == 3


def test_recorded_event_rolls_back_with_its_transaction() -> None:
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(ORG_NODE_CREATED, lambda event: seen.append(event.event_id))

    event = EventEnvelope(event_type=ORG_NODE_CREATED, payload={"id": "node-9"})
    with Session(engine) as session:
        bus.record(event, session)
        session.rollback()

    with Session(engine) as session:
        assert session.exec(select(EventRecord)).all() == []
    assert seen == []

    bus.dispatch(event)
    assert seen == [event.event_id]
