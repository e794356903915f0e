import pytest

from extensions import db
from models.constants import RANKS
from models.errors import InvalidState
from models.rank import Rank, RankTable, evaluate_rank, load_rank_table, invalidate_rank_table

TABLE = RankTable([("Rat", 0), ("Thug", 100), ("Capo", 500)])


def test_zero_xp_has_first_rank():
    assert evaluate_rank(0, TABLE) == "Rat"


@pytest.mark.parametrize("xp, label", [
    (99, "Rat"),
    (100, "Thug"),
    (101, "Thug"),
    (499, "Thug"),
    (500, "Capo"),
    (10 ** 9, "Capo"),
])
def test_threshold_boundaries(xp, label):
    assert evaluate_rank(xp, TABLE) == label


def test_negative_xp_still_gets_a_rank():
    assert evaluate_rank(-5, TABLE) == "Rat"


def test_table_must_start_at_zero():
    with pytest.raises(ValueError):
        RankTable([("Thug", 10), ("Capo", 20)])


def test_table_thresholds_must_increase():
    with pytest.raises(ValueError):
        RankTable([("Rat", 0), ("Thug", 50), ("Capo", 50)])


def test_empty_table_rejected():
    with pytest.raises(ValueError):
        RankTable([])


def test_from_unordered_sorts_by_threshold():
    table = RankTable.from_unordered([("Capo", 500), ("Rat", 0), ("Thug", 100)])
    assert list(table) == [("Rat", 0), ("Thug", 100), ("Capo", 500)]


def test_seeded_table_matches_constants(app):
    table = load_rank_table()
    assert list(table) == RANKS


def test_rank_table_is_cached_until_invalidated(app):
    first = load_rank_table()
    db.session.add(Rank(label="Legend", min_xp=10 ** 7))
    db.session.commit()
    assert load_rank_table() is first
    invalidate_rank_table()
    assert evaluate_rank(10 ** 7, load_rank_table()) == "Legend"


def test_malformed_stored_table_is_invalid_state(app):
    Rank.query.filter_by(min_xp=0).delete()
    db.session.commit()
    invalidate_rank_table()
    with pytest.raises(InvalidState):
        load_rank_table()
