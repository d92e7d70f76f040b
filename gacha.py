"""Gacha pull engine."""

import logging
import math
import random
import time
import uuid
from typing import Optional, Union

from pydantic import BaseModel, Field

from banner import (
    BannerKind,
    BannerState,
    RandomSource,
    Rarity,
    resolve_rarity,
)
from catalog import RewardDomain, RewardType, reward_type_for, select_item

logger = logging.getLogger(__name__)

STARTING_PRIMARY_CURRENCY = 6767676767
HISTORY_LIMIT = 1000
VALID_PULL_COUNTS = (1, 10)

SINGLE_PULL_COST: dict[BannerKind, int] = {
    BannerKind.LIMITED: 500,
    BannerKind.STANDARD: 500,
    BannerKind.BEGINNER: 500,
    BannerKind.WEAPON: 198,
}

# Secondary tickets earned per draw on operator banners.
TICKET_REWARDS: dict[Rarity, int] = {
    Rarity.SIX: 2000,
    Rarity.FIVE: 200,
    Rarity.FOUR: 20,
    Rarity.THREE: 0,
}


class PullRecord(BaseModel):
    """The outcome of a single draw."""

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex, description="Unique draw id"
    )
    timestamp: int = Field(
        default_factory=lambda: int(time.time() * 1000),
        description="Epoch milliseconds of the draw",
    )
    banner_kind: BannerKind = Field(..., description="Banner the draw was made on")
    rarity: Rarity = Field(..., description="Rarity of the draw")
    name: str = Field(..., description="Name of the reward")
    reward_type: RewardType = Field(..., description="Kind of reward handed out")
    is_featured: bool = Field(False, description="Whether the reward is rate-up")
    image_url: Optional[str] = Field(None, description="Card art of the reward")

    model_config = {"frozen": True}


def _empty_rarity_counts() -> dict[int, int]:
    return {int(rarity): 0 for rarity in sorted(Rarity, reverse=True)}


class Stats(BaseModel):
    """Aggregate statistics across all banners."""

    total_pulls: int = Field(0, ge=0, description="Draws across all banners")
    counts_by_rarity: dict[int, int] = Field(
        default_factory=_empty_rarity_counts,
        description="Draws per rarity across all banners",
    )
    pity_history: list[int] = Field(
        default_factory=list, description="Pity count at each 6★ draw"
    )
    average_pity: int = Field(
        0, ge=0, description="Mean of pity_history, rounded half up"
    )
    total_currency_spent: int = Field(
        0,
        ge=0,
        description="Primary currency spent on pulls, excluding any granted currency",
    )

    def record(self, rarity: Rarity, pity_reached: Optional[int]) -> None:
        self.total_pulls += 1
        key = int(rarity)
        self.counts_by_rarity[key] = self.counts_by_rarity.get(key, 0) + 1
        if pity_reached is not None:
            self.pity_history.append(pity_reached)

    def refresh_average_pity(self) -> None:
        if not self.pity_history:
            self.average_pity = 0
            return
        mean = sum(self.pity_history) / len(self.pity_history)
        self.average_pity = math.floor(mean + 0.5)


def _initial_banners() -> dict[BannerKind, BannerState]:
    return {kind: BannerState() for kind in BannerKind}


class GlobalState(BaseModel):
    """Everything a player session owns: balances, banners, history and stats."""

    primary_currency: int = Field(
        0, description="Currency spent on operator banner pulls"
    )
    secondary_tickets: int = Field(
        0, description="Tickets spent on weapon banner pulls, earned from operator pulls"
    )
    banners: dict[BannerKind, BannerState] = Field(
        default_factory=_initial_banners, description="Draw state of each banner"
    )
    pull_history: list[PullRecord] = Field(
        default_factory=list,
        description=f"Draws, most recent first, at most {HISTORY_LIMIT}",
    )
    stats: Stats = Field(default_factory=Stats, description="Aggregate statistics")


class PullOutcome(BaseModel):
    results: list[PullRecord] = Field(
        default_factory=list, description="Draws of this call, in draw order"
    )
    new_state: GlobalState = Field(..., description="State after the call")


def get_initial_state() -> GlobalState:
    """Create a fresh state with the starting currency grant."""
    return GlobalState(primary_currency=STARTING_PRIMARY_CURRENCY)


def _check_count(count: int) -> None:
    if count not in VALID_PULL_COUNTS:
        raise ValueError(f"Pull count must be 1 or 10, got {count}")


def pull_cost(banner_kind: Union[BannerKind, str], count: int) -> int:
    _check_count(count)
    return SINGLE_PULL_COST[BannerKind(banner_kind)] * count


def _balance(state: GlobalState, banner_kind: BannerKind) -> int:
    if banner_kind == BannerKind.WEAPON:
        return state.secondary_tickets
    return state.primary_currency


def can_pull(state: GlobalState, banner_kind: Union[BannerKind, str], count: int) -> bool:
    """Whether a pull of ``count`` on the banner would be accepted."""
    banner_kind = BannerKind(banner_kind)
    if banner_kind == BannerKind.BEGINNER and state.banners[banner_kind].is_completed:
        return False
    return _balance(state, banner_kind) >= pull_cost(banner_kind, count)


def grant_currency(
    state: GlobalState, primary: int = 0, secondary: int = 0
) -> GlobalState:
    """Return a copy of ``state`` with currency added from outside the pull loop."""
    if primary < 0 or secondary < 0:
        raise ValueError("Granted currency cannot be negative")
    new_state = state.model_copy(deep=True)
    new_state.primary_currency += primary
    new_state.secondary_tickets += secondary
    return new_state


def perform_pull(
    state: GlobalState,
    banner_kind: Union[BannerKind, str],
    count: int,
    rng: Optional[RandomSource] = None,
) -> PullOutcome:
    """Draw ``count`` times on a banner.

    The input state is never mutated. If the pull is refused (not enough
    currency, or the beginner banner is already completed) the outcome has
    no results and carries the input state unchanged.

    Args:
        state: Current state.
        banner_kind: Banner to draw on.
        count: 1 or 10.
        rng: Source of uniform [0, 1) values, the ``random`` module by default.

    Returns:
        PullOutcome with the draws in order and the updated state.
    """
    banner_kind = BannerKind(banner_kind)
    cost = pull_cost(banner_kind, count)
    if rng is None:
        rng = random

    if banner_kind == BannerKind.BEGINNER and state.banners[banner_kind].is_completed:
        logger.debug("Pull refused: beginner banner already completed")
        return PullOutcome(results=[], new_state=state)
    if _balance(state, banner_kind) < cost:
        logger.debug(
            "Pull refused: %s x%d costs %d, balance is %d",
            banner_kind.value,
            count,
            cost,
            _balance(state, banner_kind),
        )
        return PullOutcome(results=[], new_state=state)

    new_state = state.model_copy(deep=True)
    banner = new_state.banners.setdefault(banner_kind, BannerState())
    domain = RewardDomain.for_banner(banner_kind)
    results: list[PullRecord] = []

    for _ in range(count):
        force_featured = banner.advance_spark(banner_kind)
        if force_featured:
            logger.debug("Spark triggered on draw %d", banner.total_pulls + 1)

        rarity = resolve_rarity(
            banner_kind, banner.pity_count, banner.last_rarity, rng=rng
        )
        if force_featured and rarity != Rarity.SIX:
            rarity = Rarity.SIX

        entry = select_item(
            rarity,
            banner_kind,
            domain,
            force_featured=force_featured,
            guarantee_count=banner.guarantee_count,
            rng=rng,
        )
        pity_reached = banner.record_draw(banner_kind, rarity, entry.is_featured)
        new_state.stats.record(rarity, pity_reached)

        if banner_kind != BannerKind.WEAPON:
            new_state.secondary_tickets += TICKET_REWARDS[rarity]

        results.append(
            PullRecord(
                banner_kind=banner_kind,
                rarity=rarity,
                name=entry.name,
                reward_type=reward_type_for(banner_kind, rarity),
                is_featured=entry.is_featured,
                image_url=entry.image_url,
            )
        )

    if banner_kind == BannerKind.WEAPON:
        new_state.secondary_tickets -= cost
    else:
        new_state.primary_currency -= cost
        new_state.stats.total_currency_spent += cost
    new_state.stats.refresh_average_pity()

    new_state.pull_history = (list(reversed(results)) + new_state.pull_history)[
        :HISTORY_LIMIT
    ]

    logger.debug(
        "Pulled %s x%d: %s",
        banner_kind.value,
        count,
        ", ".join(f"{int(r.rarity)}★ {r.name}" for r in results),
    )
    return PullOutcome(results=results, new_state=new_state)
