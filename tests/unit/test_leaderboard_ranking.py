"""Unit tests for leaderboard ordering, dense ranks and display names."""

from questforge.guilds.leaderboard import display_name_for, rank_entries

UID = "0b6f3c1e-7d2a-4f5b-9c8e-1a2b3c4d5e6f"


def _entry(name: str, xp: int, user_id: str | None = None) -> dict:
    return {"user_id": user_id or name, "display_name": name, "xp": xp}


class TestRankEntries:

    def test_orders_by_xp_desc(self):
        ranked = rank_entries([_entry("a", 10), _entry("b", 30), _entry("c", 20)])
        assert [e["display_name"] for e in ranked] == ["b", "c", "a"]
        assert [e["rank"] for e in ranked] == [1, 2, 3]

    def test_ties_share_a_dense_rank(self):
        ranked = rank_entries([_entry("Zed", 50), _entry("Amy", 50), _entry("Bob", 10)])
        assert [(e["display_name"], e["rank"]) for e in ranked] == [("Amy", 1), ("Zed", 1), ("Bob", 2)]

    def test_zero_xp_members_are_kept(self):
        ranked = rank_entries([_entry("a", 0), _entry("b", 5)])
        assert len(ranked) == 2
        assert ranked[-1]["xp"] == 0

    def test_empty(self):
        assert rank_entries([]) == []


class TestDisplayName:

    def test_prefers_display_name(self):
        assert display_name_for(UID, "Jin-Woo", "sung") == "Jin-Woo"

    def test_falls_back_to_username(self):
        assert display_name_for(UID, "  ", "sung") == "sung"

    def test_falls_back_to_short_tag(self):
        assert display_name_for(UID, None, None) == "Hunter#5E6F"
