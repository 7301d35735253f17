"""NotificationDispatcher: short-circuits, counts, date boundary, pruning, reporting."""

import logging
from datetime import datetime, timezone

import pytest

from app.core.errors import FcmError, PushTransportError
from app.models.device_token import DeviceToken
from app.repos.notification_store import NotificationStore
from app.services.assignment_reminder_service import (
    SKIP_NO_ASSIGNMENTS,
    SKIP_NO_TOKENS,
    NotificationDispatcher,
    build_reminder_message,
    today_iso,
)
from app.services.fcm import SendResponse

TODAY = "2026-10-19"


class RecordingStore(NotificationStore):
    """NotificationStore that remembers which operations were called."""

    def __init__(self, db):
        super().__init__(db)
        self.calls: list[str] = []

    def get_active_assignments(self, today):
        self.calls.append("get_active_assignments")
        return super().get_active_assignments(today)

    def list_user_ids(self):
        self.calls.append("list_user_ids")
        return super().list_user_ids()

    def get_tokens_for_user(self, user_id):
        self.calls.append("get_tokens_for_user")
        return super().get_tokens_for_user(user_id)

    def delete_tokens(self, token):
        self.calls.append("delete_tokens")
        return super().delete_tokens(token)


def _stored_tokens(db) -> list[str]:
    return sorted(row.token for row in db.query(DeviceToken).all())


class TestShortCircuit:
    def test_no_active_assignments_reads_nothing_else(self, db, add_assignment, add_token, fake_transport):
        add_assignment("2026-10-18")
        add_token("u1", "tA")
        store = RecordingStore(db)
        transport = fake_transport()

        result = NotificationDispatcher(store, transport).dispatch(TODAY)

        assert store.calls == ["get_active_assignments"]
        assert transport.messages == []
        assert result.skipped == SKIP_NO_ASSIGNMENTS
        assert result.to_dict()["sentCount"] == 0

    def test_no_tokens_sends_nothing(self, db, add_assignment, fake_transport):
        add_assignment(TODAY)
        store = RecordingStore(db)
        transport = fake_transport()

        result = NotificationDispatcher(store, transport).dispatch(TODAY)

        assert transport.messages == []
        assert result.skipped == SKIP_NO_TOKENS
        assert "delete_tokens" not in store.calls

    def test_users_without_tokens_count_as_no_tokens(self, db, add_assignment, add_token, fake_transport):
        add_assignment(TODAY)
        add_token("u1", "tA")
        NotificationStore(db).delete_tokens("tA")
        db.commit()
        transport = fake_transport()

        result = NotificationDispatcher(NotificationStore(db), transport).dispatch(TODAY)

        assert result.skipped == SKIP_NO_TOKENS
        assert transport.messages == []


class TestCounts:
    def test_count_and_token_list(self, db, add_assignment, add_token, fake_transport):
        for due in ("2026-10-19", "2026-10-20", "2026-12-01"):
            add_assignment(due)
        add_token("u1", "tA")
        add_token("u1", "tB")
        add_token("u2", "tA")  # duplicate across users is sent twice
        transport = fake_transport()

        result = NotificationDispatcher(NotificationStore(db), transport).dispatch(TODAY)

        assert len(transport.messages) == 1
        message = transport.messages[0]
        assert message.data == {"type": "assignment_reminder", "count": "3"}
        assert sorted(message.tokens) == ["tA", "tA", "tB"]
        assert result.sent_count == 3
        assert result.failed_count == 0
        assert result.skipped is None

    def test_date_boundary(self, db, add_assignment, add_token, fake_transport):
        add_assignment("2026-10-18")  # yesterday: excluded
        add_assignment("2026-10-19")  # today: included
        add_assignment("2026-10-20")  # tomorrow: included
        add_token("u1", "tA")
        transport = fake_transport()

        NotificationDispatcher(NotificationStore(db), transport).dispatch(TODAY)

        assert transport.messages[0].data["count"] == "2"


class TestPruning:
    def test_example_scenario(self, db, add_assignment, add_token, fake_transport):
        for due in ("2026-10-19", "2026-10-25", "2026-11-02"):
            add_assignment(due)
        add_token("u1", "tA")
        add_token("u2", "tB")
        add_token("u3", "tC")
        transport = fake_transport(failing={"tB"})

        result = NotificationDispatcher(NotificationStore(db), transport, locale="en").dispatch(TODAY)
        db.commit()

        assert "3" in transport.messages[0].body
        assert result.to_dict() == {
            "success": True,
            "sentCount": 2,
            "failedCount": 1,
            "prunedCount": 1,
            "skipped": None,
        }
        assert _stored_tokens(db) == ["tA", "tC"]

    def test_failed_token_deleted_under_every_user(self, db, add_assignment, add_token, fake_transport):
        add_assignment(TODAY)
        add_token("u1", "tA")
        add_token("u1", "tB")
        add_token("u2", "tB")
        add_token("u3", "tC")
        transport = fake_transport(failing={"tB"})

        result = NotificationDispatcher(NotificationStore(db), transport).dispatch(TODAY)
        db.commit()

        assert result.failed_count == 2
        assert result.pruned_count == 2
        assert _stored_tokens(db) == ["tA", "tC"]

    def test_pruning_twice_is_a_noop(self, db, add_token):
        add_token("u1", "tB")
        store = NotificationStore(db)

        assert store.delete_tokens("tB") == 1
        assert store.delete_tokens("tB") == 0

    def test_database_error_on_one_delete_does_not_stop_the_rest(
        self, db, add_assignment, add_token, fake_transport, lock_token_deletes
    ):
        add_assignment(TODAY)
        add_token("u1", "tA")
        add_token("u2", "tB")
        add_token("u3", "tC")
        lock_token_deletes("tA")
        store = RecordingStore(db)
        transport = fake_transport(failing={"tA", "tB"})

        result = NotificationDispatcher(store, transport).dispatch(TODAY)
        db.commit()

        assert result.failed_count == 2
        assert result.pruned_count == 1
        assert _stored_tokens(db) == ["tA", "tC"]

    def test_failure_log_says_whether_token_is_invalid(self, db, add_assignment, add_token, fake_transport, caplog):
        add_assignment(TODAY)
        add_token("u1", "tA")
        add_token("u2", "tB")
        transport = fake_transport(failing={"tA"})
        transient = SendResponse(success=False, error=FcmError("UNAVAILABLE", "timed out"))
        send = transport.send_each_for_multicast

        def send_with_transient_tb(message):
            batch = send(message)
            batch.responses[message.tokens.index("tB")] = transient
            return batch

        transport.send_each_for_multicast = send_with_transient_tb

        with caplog.at_level(logging.WARNING, logger="app.services.assignment_reminder_service"):
            NotificationDispatcher(NotificationStore(db), transport).dispatch(TODAY)

        failures = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Send failed")]
        assert any("tA" in m and "(invalid token)" in m for m in failures)
        assert any("tB" in m and "(transient)" in m for m in failures)

    def test_no_prune_without_failures(self, db, add_assignment, add_token, fake_transport):
        add_assignment(TODAY)
        add_token("u1", "tA")
        store = RecordingStore(db)

        NotificationDispatcher(store, fake_transport()).dispatch(TODAY)

        assert "delete_tokens" not in store.calls


class TestFailures:
    def test_whole_send_failure_propagates_without_pruning(self, db, add_assignment, add_token, fake_transport):
        add_assignment(TODAY)
        add_token("u1", "tA")
        store = RecordingStore(db)
        transport = fake_transport(error=PushTransportError("fcm unreachable"))

        with pytest.raises(PushTransportError):
            NotificationDispatcher(store, transport).dispatch(TODAY)

        assert "delete_tokens" not in store.calls
        assert _stored_tokens(db) == ["tA"]

    def test_store_failure_propagates(self, fake_transport):
        class BrokenStore:
            def get_active_assignments(self, today):
                raise RuntimeError("store down")

        transport = fake_transport()
        with pytest.raises(RuntimeError, match="store down"):
            NotificationDispatcher(BrokenStore(), transport).dispatch(TODAY)
        assert transport.messages == []


class TestBuildReminderMessage:
    def test_japanese_default(self):
        message = build_reminder_message(4, ["t1"])
        assert message.title == "Project3776 - 課題のお知らせ"
        assert message.body == "現在、4件の課題があります。学習を忘れずに！"
        assert message.data == {"type": "assignment_reminder", "count": "4"}

    def test_english(self):
        message = build_reminder_message(1, ["t1", "t2"], "en")
        assert message.body == "You currently have 1 assignment(s); don't forget to study!"
        assert message.tokens == ["t1", "t2"]


class TestTodayIso:
    def test_converts_aware_time_into_zone(self):
        # 2026-10-19 15:30 UTC is already 2026-10-20 00:30 in Tokyo
        now = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
        assert today_iso("Asia/Tokyo", now) == "2026-10-20"
        assert today_iso("UTC", now) == "2026-10-19"

    def test_zero_padded(self):
        assert today_iso("Asia/Tokyo", datetime(2027, 1, 5, 9, 0)) == "2027-01-05"
