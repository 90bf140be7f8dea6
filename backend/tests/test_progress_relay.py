"""Tests for the progress relay (rooms, ordering, late-joiner replay)."""

from datetime import UTC, datetime, timedelta

from scalardb_setup.core.progress_relay import REDACTED, redact_secrets, room_for


def _events(messages: list[dict]) -> list[str]:
    return [m["event"] for m in messages]


class TestSubscribe:
    def test_welcome_is_first_message(self, relay, drain):
        sub = relay.subscribe()
        messages = drain(sub)
        assert _events(messages) == ["welcome"]
        assert messages[0]["data"]["message"] == "ScalarDB Installer WebSocket connected"
        assert relay.connected_clients() == 1

    def test_unsubscribe_leaves_every_room(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "a")
        relay.join(sub, "b")
        relay.unsubscribe(sub)

        assert sub.rooms == set()
        assert relay.connected_clients() == 0
        drain(sub)
        relay.send_log("a", "after disconnect")
        assert drain(sub) == []


class TestJoin:
    def test_join_unknown_installation_sends_nothing(self, relay, drain):
        sub = relay.subscribe()
        drain(sub)
        relay.join(sub, "missing")
        assert drain(sub) == []
        assert room_for("missing") in sub.rooms

    def test_ack_comes_before_state_replay(self, relay, drain):
        relay.start_installation("abc", {"version": "3.16.0"})
        relay.update_progress("abc", "Java environment check", 10)

        sub = relay.subscribe()
        drain(sub)
        relay.join(sub, "abc", ack=7)
        messages = drain(sub)

        assert _events(messages) == ["ack", "installation:state"]
        assert messages[0]["ack"] == 7
        assert messages[0]["data"] == {
            "success": True,
            "installationId": "abc",
            "message": "Joined installation abc",
        }
        state = messages[1]["data"]
        assert state["installationId"] == "abc"
        assert state["currentStep"] == "Java environment check"
        assert state["progress"] == 10
        assert len(state["steps"]) == 1

    def test_late_joiner_gets_state_then_later_events(self, relay, drain):
        relay.start_installation("abc", {})
        relay.update_progress("abc", "step one", 10)

        sub = relay.subscribe()
        drain(sub)
        relay.join(sub, "abc")
        relay.update_progress("abc", "step two", 20)

        assert _events(drain(sub)) == ["installation:state", "installation:progress"]

    def test_leave_stops_delivery(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "abc")
        relay.leave(sub, "abc")
        drain(sub)

        relay.send_log("abc", "hello")
        assert drain(sub) == []


class TestLifecycle:
    def test_events_arrive_in_emission_order(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "abc")
        drain(sub)

        relay.start_installation("abc", {})
        relay.update_progress("abc", "s1", 10)
        relay.send_log("abc", "working")
        relay.update_progress("abc", "s1", 15, "completed")
        relay.complete_installation("abc", {"success": True})

        assert _events(drain(sub)) == [
            "installation:started",
            "installation:progress",
            "installation:log",
            "installation:progress",
            "installation:completed",
        ]

    def test_rooms_are_isolated(self, relay, drain):
        first = relay.subscribe()
        second = relay.subscribe()
        relay.join(first, "one")
        relay.join(second, "two")
        drain(first)
        drain(second)

        relay.send_log("one", "only for the first")

        assert len(drain(first)) == 1
        assert drain(second) == []

    def test_progress_updates_state_and_history(self, relay):
        relay.start_installation("abc", {})
        relay.update_progress("abc", "s1", 10)
        relay.update_progress("abc", "s1", 15, "completed", "done")

        state = relay.get_installation_state("abc")
        assert state.progress == 15
        assert state.status == "completed"
        assert [s.progress for s in state.steps] == [10, 15]
        assert state.steps[-1].message == "done"

    def test_progress_for_unknown_installation_is_ignored(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "ghost")
        drain(sub)

        relay.update_progress("ghost", "s1", 10)

        assert drain(sub) == []
        assert relay.get_installation_state("ghost") is None

    def test_complete_sets_terminal_state(self, relay):
        relay.start_installation("abc", {})
        relay.complete_installation("abc", {"success": True, "version": "3.16.0"})

        state = relay.get_installation_state("abc")
        assert state.status == "completed"
        assert state.progress == 100
        assert state.result["version"] == "3.16.0"
        assert state.end_time is not None
        assert state.finished

    def test_error_sets_terminal_state(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "abc")
        relay.start_installation("abc", {})
        drain(sub)

        relay.send_error("abc", "Java is not installed", step="Java environment check", details="InstallerError")

        state = relay.get_installation_state("abc")
        assert state.status == "error"
        assert state.error == "Java is not installed"
        messages = drain(sub)
        assert messages[0]["event"] == "installation:error"
        assert messages[0]["data"]["step"] == "Java environment check"
        assert messages[0]["data"]["details"] == "InstallerError"

    def test_log_needs_no_state(self, relay, drain):
        sub = relay.subscribe()
        relay.join(sub, "scalardb-download")
        drain(sub)

        relay.send_log("scalardb-download", "Downloading 50%", level="info")

        [message] = drain(sub)
        assert message["data"]["message"] == "Downloading 50%"
        assert message["data"]["level"] == "info"


class TestPrune:
    def test_prunes_only_old_finished_installations(self, relay):
        relay.start_installation("old-done", {})
        relay.complete_installation("old-done", {})
        relay.get_installation_state("old-done").end_time = datetime.now(UTC) - timedelta(hours=48)

        relay.start_installation("fresh-done", {})
        relay.complete_installation("fresh-done", {})

        relay.start_installation("running", {})

        assert relay.prune(timedelta(hours=24)) == 1
        assert relay.get_installation_state("old-done") is None
        assert relay.get_installation_state("fresh-done") is not None
        assert relay.get_installation_state("running") is not None


class TestRedaction:
    def test_masks_nested_credentials(self):
        config = {
            "version": "3.16.0",
            "database": {"type": "postgresql", "username": "postgres", "password": "s3cret"},
            "cloud": {"accessKey": "AKIA", "secretKey": "xyz", "region": "us-east-1"},
        }
        redacted = redact_secrets(config)

        assert redacted["database"]["password"] == REDACTED
        assert redacted["database"]["username"] == "postgres"
        assert redacted["cloud"]["accessKey"] == REDACTED
        assert redacted["cloud"]["secretKey"] == REDACTED
        assert redacted["cloud"]["region"] == "us-east-1"
        # The caller's dict is untouched.
        assert config["database"]["password"] == "s3cret"

    def test_empty_secret_is_left_alone(self):
        assert redact_secrets({"password": ""}) == {"password": ""}

    def test_started_state_holds_redacted_config(self, relay):
        relay.start_installation("abc", {"database": {"password": "pw"}})
        assert relay.get_installation_state("abc").config["database"]["password"] == REDACTED
