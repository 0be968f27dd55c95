"""
Unit tests for content units and the content pool.
"""

import json

import pytest

from src.content.models import ContentUnit, UnitType
from src.content.pool import ContentPool
from src.core.exceptions import ContentNotFoundError, InvalidContentError


class TestContentUnit:
    def test_topic_group_is_first_topic(self, make_unit):
        unit = make_unit("u1", topics=("food", "travel"))
        assert unit.topic_group == "food"

    def test_topic_group_defaults_to_general(self, make_unit):
        assert make_unit("u1", topics=()).topic_group == "general"

    @pytest.mark.parametrize("difficulty", [0.5, 5.5, float("nan"), True])
    def test_difficulty_must_be_on_scale(self, make_unit, difficulty):
        with pytest.raises(InvalidContentError):
            make_unit("u1", difficulty=difficulty)

    def test_empty_id_rejected(self, make_unit):
        with pytest.raises(InvalidContentError):
            make_unit("")

    def test_from_dict(self):
        unit = ContentUnit.from_dict(
            {
                "id": "c1",
                "text": "je voudrais ___",
                "translation": "I would like ___",
                "type": "frame",
                "difficulty": 2,
                "topics": ["food"],
                "slots": ["un café"],
            }
        )
        assert unit.unit_type == UnitType.FRAME
        assert unit.is_frame
        assert unit.slots == ("un café",)
        assert unit.frequency_rank == 1000

    def test_from_dict_missing_text(self):
        with pytest.raises(InvalidContentError):
            ContentUnit.from_dict({"id": "c1"})

    def test_from_dict_unknown_type(self):
        with pytest.raises(InvalidContentError):
            ContentUnit.from_dict({"id": "c1", "text": "x", "type": "poem"})


class TestLookup:
    def test_get(self, pool):
        assert pool.get("u-mid-1").difficulty == 2.0

    def test_get_missing_raises(self, pool):
        with pytest.raises(ContentNotFoundError) as exc:
            pool.get("missing")
        assert exc.value.unit_id == "missing"

    def test_get_many_fails_on_any_missing(self, pool):
        with pytest.raises(ContentNotFoundError):
            pool.get_many(["u-mid-1", "missing"])

    def test_contains_and_len(self, pool):
        assert "u-easy-1" in pool
        assert "missing" not in pool
        assert len(pool) == 10

    def test_topics(self, pool):
        assert pool.topics == ["food", "greetings", "travel", "work"]

    def test_duplicate_keeps_latest(self, make_unit):
        pool = ContentPool([make_unit("u1", topics=("food",)), make_unit("u1", topics=("work",))])
        assert len(pool) == 1
        assert pool.get("u1").topic_group == "work"
        assert pool.find(topics=["food"]) == []


class TestFind:
    def test_difficulty_range_is_inclusive(self, pool):
        ids = [u.id for u in pool.find(min_difficulty=1.5, max_difficulty=2.0)]
        assert ids == ["u-easy-2", "u-mid-1", "u-mid-2", "u-mid-3", "u-mid-5", "u-mid-6"]

    def test_topic_filter(self, pool):
        ids = [u.id for u in pool.find(topics=["travel"])]
        assert ids == ["u-mid-2", "u-mid-4", "u-hard-2"]

    def test_paging(self, pool):
        first = pool.find(limit=3)
        second = pool.find(offset=3, limit=3)
        assert [u.id for u in first] == ["u-easy-1", "u-easy-2", "u-mid-1"]
        assert [u.id for u in second] == ["u-mid-2", "u-mid-3", "u-mid-4"]

    def test_empty_range(self, pool):
        assert pool.find(min_difficulty=3.0, max_difficulty=3.5) == []


class TestLoadJson:
    def test_load_list(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps([{"id": "a", "text": "bonjour", "topics": ["greetings"]}]))
        pool = ContentPool.load_json(path)
        assert len(pool) == 1
        assert pool.get("a").text == "bonjour"

    def test_invalid_units_are_skipped(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(
            json.dumps(
                {
                    "units": [
                        {"id": "a", "text": "bonjour"},
                        {"id": "b", "text": "merci", "difficulty": 9},
                        {"id": "c"},
                    ]
                }
            )
        )
        pool = ContentPool.load_json(path)
        assert len(pool) == 1
        assert pool.rejected_count == 2

    def test_non_object_entries_are_skipped(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps([{"id": "a", "text": "bonjour"}, "merci", 42, None]))
        pool = ContentPool.load_json(path)
        assert len(pool) == 1
        assert pool.rejected_count == 3

    def test_non_object_entry_fails_in_strict_mode(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps(["merci"]))
        with pytest.raises(InvalidContentError, match="must be an object"):
            ContentPool.load_json(path, strict=True)

    def test_strict_raises(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps([{"id": "b", "text": "merci", "difficulty": 9}]))
        with pytest.raises(InvalidContentError):
            ContentPool.load_json(path, strict=True)

    def test_sample_deck(self, deck_path):
        pool = ContentPool.load_json(deck_path, strict=True)
        assert len(pool) == 24
        assert set(pool.topics) >= {"greetings", "food", "travel", "work"}
