"""Tests for ingest_service.ingest_event()."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from matrix_vcon.schemas.matrix import RoomEventSchema
from matrix_vcon.services.export_service import sweep
from matrix_vcon.services.identity import MalformedSenderError, record_uuid
from matrix_vcon.services.ingest_service import ingest_event


def _make_event(**overrides) -> RoomEventSchema:
    defaults = dict(
        type="m.room.message",
        room_id="!r1",
        sender="@alice:example.org:1",
        event_id="e1",
        origin_server_ts=1000,
        content={"msgtype": "m.text", "body": "hi"},
    )
    defaults.update(overrides)
    return RoomEventSchema(**defaults)


# ---------------------------------------------------------------------------


def test_first_message_creates_record(store, settings):
    before = datetime.now(timezone.utc)

    outcome = ingest_event(store, settings, _make_event(), "General")

    assert outcome.status == "appended"
    path = store.path_for("General", "!r1")
    assert path.name == "General:!r1.vcon"
    result = store.load(path)
    assert result.status == "ok"
    vcon = result.vcon
    assert vcon.subject == "Recording of General"
    assert vcon.uuid == record_uuid(settings.DOMAIN_NAME, "!r1")
    assert before <= vcon.created_at <= datetime.now(timezone.utc)
    assert len(vcon.parties) == 1
    assert vcon.parties[0].tel == "alice"
    assert vcon.parties[0].mailto == "alice@example.org"
    assert len(vcon.dialog) == 1
    assert vcon.dialog[0].body == "hi"
    assert vcon.dialog[0].parties == [0]
    assert vcon.dialog[0].originator == [0]


def test_same_event_twice_is_idempotent(store, settings):
    ingest_event(store, settings, _make_event(), "General")

    outcome = ingest_event(store, settings, _make_event(), "General")

    assert outcome.status == "duplicate"
    vcon = store.load(store.path_for("General", "!r1")).vcon
    assert len(vcon.dialog) == 1
    assert len(vcon.parties) == 1


def test_duplicate_does_not_rewrite_file(store, settings):
    ingest_event(store, settings, _make_event(), "General")

    with patch.object(store, "save") as mock_save:
        ingest_event(store, settings, _make_event(), "General")

    mock_save.assert_not_called()


def test_party_uniqueness_across_senders(store, settings):
    for i, name in enumerate(["a", "b", "a", "c", "a"]):
        ingest_event(
            store, settings,
            _make_event(event_id=f"e{i}", sender=f"@{name}:example.org:1"),
            "General",
        )

    vcon = store.load(store.path_for("General", "!r1")).vcon
    assert len(vcon.parties) == 3
    assert len({p.tel for p in vcon.parties}) == 3
    assert len(vcon.dialog) == 5


def test_created_at_and_subject_are_set_once(store, settings):
    ingest_event(store, settings, _make_event(event_id="e1"), "General")
    first = store.load(store.path_for("General", "!r1")).vcon

    ingest_event(store, settings, _make_event(event_id="e2"), "General")
    second = store.load(store.path_for("General", "!r1")).vcon

    assert second.created_at == first.created_at
    assert second.subject == first.subject
    assert second.uuid == first.uuid


def test_each_room_gets_its_own_record(store, settings):
    ingest_event(store, settings, _make_event(room_id="!r1"), "General")
    ingest_event(store, settings, _make_event(room_id="!r2"), "Random")

    first = store.load(store.path_for("General", "!r1")).vcon
    second = store.load(store.path_for("Random", "!r2")).vcon
    assert first.uuid != second.uuid
    assert len(store.list_all()) == 2


def test_non_message_events_are_ignored(store, settings):
    event = _make_event(type="m.room.member", content={"membership": "join"})

    with patch.object(store, "load_or_create") as mock_load:
        outcome = ingest_event(store, settings, event, "General")

    assert outcome is None
    mock_load.assert_not_called()
    assert store.list_all() == []


def test_malformed_sender_raises_and_writes_nothing(store, settings):
    with pytest.raises(MalformedSenderError):
        ingest_event(store, settings, _make_event(sender="not-an-address"), "General")

    assert store.list_all() == []


def test_save_failure_propagates_and_keeps_previous_record(store, settings):
    ingest_event(store, settings, _make_event(event_id="e1"), "General")
    path = store.path_for("General", "!r1")
    before = path.read_text(encoding="utf-8")

    with patch("matrix_vcon.services.vcon_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            ingest_event(store, settings, _make_event(event_id="e2"), "General")

    assert path.read_text(encoding="utf-8") == before
    assert len(json.loads(before)["dialog"]) == 1


def test_corrupt_record_is_quarantined_and_restarted(store, settings):
    path = store.path_for("General", "!r1")
    path.parent.mkdir(parents=True)
    path.write_text("garbage", encoding="utf-8")

    outcome = ingest_event(store, settings, _make_event(), "General")

    assert outcome.status == "appended"
    assert len(store.load(path).vcon.dialog) == 1
    assert len(list(path.parent.glob("*.corrupt-*"))) == 1


def test_new_record_created_at_is_recent_not_event_time(store, settings):
    ingest_event(store, settings, _make_event(origin_server_ts=1000), "General")

    vcon = store.load(store.path_for("General", "!r1")).vcon
    assert datetime.now(timezone.utc) - vcon.created_at < timedelta(minutes=1)
    assert vcon.dialog[0].start == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_dot_named_room_is_exported_by_sweep(store, settings):
    ingest_event(store, settings, _make_event(), ".ops")
    path = store.path_for(".ops", "!r1")
    client = MagicMock()
    client.post_vcon.return_value.status_code = 200

    stats = sweep(
        store, client, timedelta(minutes=60),
        now=datetime.now(timezone.utc) + timedelta(days=2),
    )

    assert stats.scanned == 1
    assert stats.exported == 1
    assert not path.exists()


def test_long_room_name_is_recorded(store, settings):
    outcome = ingest_event(store, settings, _make_event(), "é" * 200)

    assert outcome.status == "appended"
    path = store.path_for("é" * 200, "!r1")
    vcon = store.load(path).vcon
    assert vcon.subject == "Recording of " + "é" * 200
    assert store.list_all() == [path]
