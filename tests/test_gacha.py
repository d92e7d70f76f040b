import random

import pytest

from banner import BannerKind, Rarity, hard_pity_threshold
from catalog import RewardType
from gacha import (
    HISTORY_LIMIT,
    STARTING_PRIMARY_CURRENCY,
    Stats,
    can_pull,
    get_initial_state,
    grant_currency,
    perform_pull,
    pull_cost,
)


def _pull_many(state, banner_kind, batches, rng):
    results = []
    for _ in range(batches):
        outcome = perform_pull(state, banner_kind, 10, rng=rng)
        assert len(outcome.results) == 10
        results.extend(outcome.results)
        state = outcome.new_state
    return state, results


def test_initial_state():
    state = get_initial_state()
    assert state.primary_currency == STARTING_PRIMARY_CURRENCY
    assert state.secondary_tickets == 0
    assert set(state.banners) == set(BannerKind)
    for banner in state.banners.values():
        assert banner.pity_count == 0
        assert banner.last_rarity is None
        assert not banner.is_completed
        assert not banner.spark_used
    assert state.pull_history == []
    assert state.stats.counts_by_rarity == {6: 0, 5: 0, 4: 0, 3: 0}


def test_ten_pull_on_standard_banner():
    state = get_initial_state()
    outcome = perform_pull(state, "standard", 10)
    new_state = outcome.new_state

    assert len(outcome.results) == 10
    assert new_state.banners[BannerKind.STANDARD].total_pulls == 10
    assert new_state.primary_currency == 6767676767 - 5000
    assert new_state.stats.total_pulls == 10
    assert all(r.banner_kind == BannerKind.STANDARD for r in outcome.results)
    assert all(r.reward_type == RewardType.OPERATOR for r in outcome.results)


def test_input_state_is_not_mutated():
    state = get_initial_state()
    snapshot = state.model_copy(deep=True)
    outcome = perform_pull(state, BannerKind.LIMITED, 10)

    assert state == snapshot
    assert outcome.new_state is not state


def test_single_pull_currency_and_tickets(fixed_rng):
    state = get_initial_state()
    outcome = perform_pull(state, BannerKind.STANDARD, 1, rng=fixed_rng(0.5))
    new_state = outcome.new_state

    assert outcome.results[0].rarity == Rarity.FOUR
    assert new_state.primary_currency == state.primary_currency - 500
    assert new_state.stats.total_currency_spent == 500
    assert new_state.secondary_tickets == 20


def test_insufficient_primary_currency():
    state = get_initial_state()
    state.primary_currency = 4999

    outcome = perform_pull(state, BannerKind.LIMITED, 10)
    assert outcome.results == []
    assert outcome.new_state is state
    assert state.primary_currency == 4999
    assert state.banners[BannerKind.LIMITED].spark_count == 0


def test_insufficient_tickets():
    state = get_initial_state()
    outcome = perform_pull(state, BannerKind.WEAPON, 1)
    assert outcome.results == []
    assert outcome.new_state is state


def test_weapon_ten_pull_spends_tickets(fixed_rng):
    state = grant_currency(get_initial_state(), secondary=1980)
    outcome = perform_pull(state, BannerKind.WEAPON, 10, rng=fixed_rng(0.5))
    new_state = outcome.new_state

    assert len(outcome.results) == 10
    assert new_state.secondary_tickets == 0
    assert new_state.primary_currency == state.primary_currency
    assert new_state.stats.total_currency_spent == 0
    assert new_state.banners[BannerKind.WEAPON].guarantee_count == 10
    assert all(r.reward_type == RewardType.WEAPON for r in outcome.results)


def test_hard_pity_run(fixed_rng):
    state, results = _pull_many(get_initial_state(), BannerKind.STANDARD, 9, fixed_rng(0.99))

    rarities = [r.rarity for r in results]
    assert rarities.index(Rarity.SIX) == 80
    assert rarities.count(Rarity.SIX) == 1
    assert rarities.count(Rarity.FIVE) == 7
    assert state.stats.pity_history == [81]
    assert state.stats.average_pity == 81
    assert state.stats.counts_by_rarity == {6: 1, 5: 7, 4: 82, 3: 0}
    assert state.banners[BannerKind.STANDARD].pity_count == 9
    assert state.secondary_tickets == 2000 + 7 * 200 + 82 * 20
    assert state.stats.total_currency_spent == 45000


@pytest.mark.parametrize("banner_kind", list(BannerKind))
def test_non_six_star_streak_is_bounded(banner_kind):
    rng = random.Random(2024)
    state = grant_currency(get_initial_state(), secondary=1980 * 30)
    streak = 0
    for _ in range(30):
        outcome = perform_pull(state, banner_kind, 10, rng=rng)
        if not outcome.results:
            break
        for record in outcome.results:
            if record.rarity == Rarity.SIX:
                streak = 0
            else:
                streak += 1
                assert streak <= hard_pity_threshold(banner_kind)
        state = outcome.new_state
        assert state.banners[banner_kind].pity_count <= hard_pity_threshold(banner_kind)


def test_pity_resets_after_six_star(fixed_rng):
    outcome = perform_pull(get_initial_state(), BannerKind.LIMITED, 1, rng=fixed_rng(0.0))
    assert outcome.results[0].rarity == Rarity.SIX
    assert outcome.new_state.banners[BannerKind.LIMITED].pity_count == 0
    assert outcome.new_state.stats.pity_history == [1]


def test_beginner_banner_is_terminal(fixed_rng):
    outcome = perform_pull(get_initial_state(), BannerKind.BEGINNER, 1, rng=fixed_rng(0.0))
    state = outcome.new_state
    assert outcome.results[0].rarity == Rarity.SIX
    assert state.banners[BannerKind.BEGINNER].is_completed
    assert not can_pull(state, BannerKind.BEGINNER, 1)

    snapshot = state.model_copy(deep=True)
    again = perform_pull(state, BannerKind.BEGINNER, 10)
    assert again.results == []
    assert again.new_state is state
    assert state == snapshot


def test_spark_guarantees_featured_on_120th_draw(fixed_rng):
    state, results = _pull_many(get_initial_state(), BannerKind.LIMITED, 12, fixed_rng(0.99))

    assert results[80].rarity == Rarity.SIX
    assert not results[80].is_featured
    assert results[119].rarity == Rarity.SIX
    assert results[119].is_featured
    assert results[119].name == "Laevatain"

    banner = state.banners[BannerKind.LIMITED]
    assert banner.spark_used
    assert banner.spark_count == 120
    assert state.stats.pity_history == [81, 39]
    assert state.stats.average_pity == 60


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_spark_is_always_consumed_within_120_draws(seed):
    state, _ = _pull_many(get_initial_state(), BannerKind.LIMITED, 12, random.Random(seed))
    banner = state.banners[BannerKind.LIMITED]
    assert banner.spark_used
    assert banner.spark_count == 120


def test_spark_does_not_rearm(fixed_rng):
    state, _ = _pull_many(get_initial_state(), BannerKind.LIMITED, 24, fixed_rng(0.99))
    banner = state.banners[BannerKind.LIMITED]
    assert banner.spark_used
    assert banner.spark_count == 120
    assert banner.total_pulls == 240


def test_history_is_capped_and_most_recent_first():
    rng = random.Random(11)
    state = get_initial_state()
    for _ in range(101):
        outcome = perform_pull(state, BannerKind.STANDARD, 10, rng=rng)
        state = outcome.new_state

    assert state.stats.total_pulls == 1010
    assert len(state.pull_history) == HISTORY_LIMIT
    assert state.pull_history[0].id == outcome.results[-1].id
    assert state.pull_history[9].id == outcome.results[0].id


def test_history_spans_banners(fixed_rng):
    state = get_initial_state()
    state = perform_pull(state, BannerKind.STANDARD, 1, rng=fixed_rng(0.5)).new_state
    state = perform_pull(state, BannerKind.LIMITED, 1, rng=fixed_rng(0.5)).new_state

    assert [r.banner_kind for r in state.pull_history] == [
        BannerKind.LIMITED,
        BannerKind.STANDARD,
    ]


def test_pull_cost():
    assert pull_cost(BannerKind.LIMITED, 1) == 500
    assert pull_cost(BannerKind.BEGINNER, 10) == 5000
    assert pull_cost(BannerKind.WEAPON, 1) == 198
    assert pull_cost("weapon", 10) == 1980


def test_invalid_count_fails_fast():
    with pytest.raises(ValueError):
        perform_pull(get_initial_state(), BannerKind.STANDARD, 5)


def test_unknown_banner_fails_fast():
    with pytest.raises(ValueError):
        perform_pull(get_initial_state(), "event", 1)


def test_can_pull():
    state = get_initial_state()
    assert can_pull(state, BannerKind.STANDARD, 10)
    assert not can_pull(state, BannerKind.WEAPON, 1)

    state.primary_currency = 500
    assert can_pull(state, BannerKind.LIMITED, 1)
    assert not can_pull(state, BannerKind.LIMITED, 10)


def test_grant_currency_is_not_counted_as_spent():
    state = get_initial_state()
    granted = grant_currency(state, primary=1000, secondary=50)

    assert granted.primary_currency == state.primary_currency + 1000
    assert granted.secondary_tickets == 50
    assert granted.stats.total_currency_spent == 0
    assert state.secondary_tickets == 0


def test_grant_currency_rejects_negative_amounts():
    with pytest.raises(ValueError):
        grant_currency(get_initial_state(), primary=-1)


def test_average_pity_rounds_half_up():
    stats = Stats(pity_history=[1, 2])
    stats.refresh_average_pity()
    assert stats.average_pity == 2

    stats = Stats()
    stats.refresh_average_pity()
    assert stats.average_pity == 0
