"""
Tests for pack selection, result slots and pack sessions.
"""

from datetime import datetime, timedelta

from evp_gear.initial_data import default_items
from evp_gear.models import PackAnalysis
from evp_gear.pack import PackSelection, PackSession, ResultSlot
from evp_gear.session_manager import SessionManager


class TestPackSelection:

    def test_toggle_adds_and_removes(self):
        selection = PackSelection()
        assert selection.toggle("1") is True
        assert "1" in selection
        assert selection.toggle("1") is False
        assert "1" not in selection

    def test_total_follows_every_toggle(self):
        items = default_items()
        selection = PackSelection()
        selection.toggle("1")
        selection.toggle("3")
        assert selection.total_weight(items) == 1793
        selection.toggle("1")
        assert selection.total_weight(items) == 73
        selection.toggle("5")
        assert selection.total_weight(items) == 253

    def test_packed_is_heaviest_first(self):
        selection = PackSelection({"3", "1", "4"})
        assert [i.id for i in selection.packed(default_items())] == ["1", "4", "3"]

    def test_packed_skips_deleted_items(self):
        selection = PackSelection({"1", "gone"})
        assert [i.id for i in selection.packed(default_items())] == ["1"]


class TestResultSlot:

    def test_current_token_commits(self):
        slot: ResultSlot[str] = ResultSlot()
        token = slot.begin()
        assert slot.commit(token, "done")
        assert slot.value == "done"

    def test_superseded_token_is_discarded(self):
        slot: ResultSlot[str] = ResultSlot()
        first = slot.begin()
        second = slot.begin()

        assert slot.commit(second, "new")
        assert not slot.commit(first, "stale")
        assert slot.value == "new"

    def test_invalidate_orphans_in_flight_request(self):
        slot: ResultSlot[str] = ResultSlot()
        token = slot.begin()
        slot.invalidate()
        assert not slot.commit(token, "late")
        assert slot.value is None


class TestPackSession:

    def test_selection_change_drops_analysis(self):
        session = PackSession()
        token = session.analysis.begin()
        session.analysis.commit(token, PackAnalysis(total_weight=10))

        session.toggle("1")

        assert session.analysis.value is None

    def test_analysis_started_before_toggle_is_not_stored(self):
        session = PackSession()
        token = session.analysis.begin()
        session.toggle("1")
        assert not session.analysis.commit(token, PackAnalysis(total_weight=10))

    def test_to_dict_reports_total(self):
        session = PackSession()
        session.select(["1", "3"])
        data = session.to_dict(default_items())
        assert data["total_weight"] == 1793
        assert data["item_ids"] == ["1", "3"]
        assert data["analysis"] is None

    def test_expiry(self):
        session = PackSession(ttl_minutes=1)
        assert not session.is_expired()
        session.expires_at = datetime.now() - timedelta(seconds=1)
        assert session.is_expired()


class TestSessionManager:

    def test_create_and_get(self):
        manager = SessionManager(ttl_minutes=5)
        session = manager.create_session()
        assert manager.get_session(session.session_id) is session

    def test_expired_sessions_are_removed(self):
        manager = SessionManager(ttl_minutes=5)
        session = manager.create_session()
        session.expires_at = datetime.now() - timedelta(seconds=1)

        assert manager.get_session(session.session_id) is None
        assert manager.get_stats()["total_sessions"] == 0

    def test_cleanup_expired_counts(self):
        manager = SessionManager(ttl_minutes=5)
        old = manager.create_session()
        manager.create_session()
        old.expires_at = datetime.now() - timedelta(seconds=1)
        assert manager.cleanup_expired() == 1

    def test_forget_items_deselects_everywhere(self):
        manager = SessionManager(ttl_minutes=5)
        a = manager.create_session()
        b = manager.create_session()
        a.select(["1", "2"])
        b.select(["2"])

        manager.forget_items({"2"})

        assert a.selection.item_ids == {"1"}
        assert b.selection.item_ids == set()
