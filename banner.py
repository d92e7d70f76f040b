"""Banner kinds, rarity resolution and per-banner draw state."""

import random
from enum import Enum, IntEnum
from typing import Optional, Protocol

from pydantic import BaseModel, Field

SPARK_THRESHOLD = 120


class RandomSource(Protocol):
    """Anything with a uniform [0, 1) ``random()``, e.g. ``random.Random``."""

    def random(self) -> float: ...


class Rarity(IntEnum):
    """Rarity tiers, 6 being the rarest."""

    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6


class BannerKind(str, Enum):
    """The independent reward pools a player can draw from"""

    LIMITED = "limited"
    STANDARD = "standard"
    BEGINNER = "beginner"
    WEAPON = "weapon"


class RarityProbability(BaseModel):
    """Probability of a single rarity level in the base roll"""

    rarity: Rarity = Field(..., description="Rarity level (e.g., 4, 5, 6)")
    probability: float = Field(
        ..., ge=0.0, le=1.0, description="Probability of drawing this rarity"
    )

    model_config = {"frozen": True}


class BannerRules(BaseModel):
    """Pity thresholds and rate tables of one banner kind.

    Rules are evaluated by :func:`resolve_rarity` in a fixed precedence:
    hard pity, then soft pity (a rate ramp) or flat pity (a constant boosted
    rate), then the guaranteed 5★ floor, then the base roll.
    """

    hard_pity: int = Field(
        default=80,
        ge=1,
        description="Pity count at which the highest rarity is guaranteed",
    )
    soft_pity_start: Optional[int] = Field(
        default=65,
        description="Pity count at which the highest rarity rate starts ramping up",
    )
    soft_pity_base_rate: float = Field(
        default=0.008,
        ge=0.0,
        le=1.0,
        description="Highest rarity rate at soft_pity_start",
    )
    soft_pity_rate_per_draw: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Rate added for each draw past soft_pity_start",
    )
    flat_pity_start: Optional[int] = Field(
        default=None,
        description="Pity count from which the highest rarity rate is flat_pity_rate",
    )
    flat_pity_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Highest rarity rate once flat_pity_start is reached",
    )
    floor_interval: int = Field(
        default=10,
        ge=1,
        description="Every this many pity draws a 5★ is guaranteed unless a 5★ or 6★ just dropped",
    )
    base_distribution: list[RarityProbability] = Field(
        default=[
            RarityProbability(rarity=Rarity.SIX, probability=0.008),
            RarityProbability(rarity=Rarity.FIVE, probability=0.08),
            RarityProbability(rarity=Rarity.FOUR, probability=0.912),
        ],
        description="Base roll distribution, checked from rarest to most common",
    )

    model_config = {"frozen": True}

    def validate_distribution(self) -> bool:
        """Validate that the base distribution sums to 1.0."""
        total = sum(rp.probability for rp in self.base_distribution)
        return abs(total - 1.0) <= 1e-9

    def soft_pity_rate(self, pity_count: int) -> float:
        return self.soft_pity_base_rate + self.soft_pity_rate_per_draw * (
            pity_count - self.soft_pity_start
        )

    def roll_base(self, rng: RandomSource) -> Rarity:
        rand = rng.random()
        probability = 0.0
        for rp in self.base_distribution:
            probability += rp.probability
            if rand < probability:
                return rp.rarity
        # Rounding can leave the last bucket a hair short of 1.0.
        return self.base_distribution[-1].rarity


BANNER_RULES: dict[BannerKind, BannerRules] = {
    BannerKind.LIMITED: BannerRules(),
    BannerKind.STANDARD: BannerRules(),
    BannerKind.BEGINNER: BannerRules(hard_pity=40),
    BannerKind.WEAPON: BannerRules(
        soft_pity_start=None,
        flat_pity_start=40,
        flat_pity_rate=0.25,
        base_distribution=[
            RarityProbability(rarity=Rarity.SIX, probability=0.04),
            RarityProbability(rarity=Rarity.FIVE, probability=0.15),
            RarityProbability(rarity=Rarity.FOUR, probability=0.81),
        ],
    ),
}


def hard_pity_threshold(banner_kind: BannerKind) -> int:
    return BANNER_RULES[BannerKind(banner_kind)].hard_pity


def resolve_rarity(
    banner_kind: BannerKind,
    pity_count: int,
    last_rarity: Optional[Rarity],
    rng: RandomSource = random,
) -> Rarity:
    """Decide the rarity of the next draw from the banner's pity state.

    Args:
        banner_kind: Banner being drawn on, selects the rules table.
        pity_count: Draws since the last 6★ on this banner.
        last_rarity: Rarity of the previous draw, None before the first one.
        rng: Source of uniform [0, 1) values.

    Returns:
        The resolved rarity. 3★ is never produced here.
    """
    if pity_count < 0:
        raise ValueError(f"Pity count cannot be negative: {pity_count}")
    rules = BANNER_RULES[BannerKind(banner_kind)]

    if pity_count >= rules.hard_pity:
        return Rarity.SIX

    if rules.soft_pity_start is not None and pity_count >= rules.soft_pity_start:
        if rng.random() < rules.soft_pity_rate(pity_count):
            return Rarity.SIX

    if rules.flat_pity_start is not None and pity_count >= rules.flat_pity_start:
        if rng.random() < rules.flat_pity_rate:
            return Rarity.SIX

    if (
        pity_count > 0
        and pity_count % rules.floor_interval == 0
        and last_rarity not in (Rarity.FIVE, Rarity.SIX)
    ):
        return Rarity.FIVE

    return rules.roll_base(rng)


class BannerState(BaseModel):
    """Mutable draw counters of one banner.

    Only the pull orchestrator mutates these, one transition per draw.
    """

    pity_count: int = Field(0, ge=0, description="Draws since the last 6★")
    last_rarity: Optional[Rarity] = Field(
        None, description="Rarity of the previous draw, used by the 5★ floor"
    )
    guarantee_count: int = Field(
        0,
        ge=0,
        description="Weapon banner only: draws since the last 6★, drives featured escalation",
    )
    total_pulls: int = Field(0, ge=0, description="Draws spent on this banner")
    is_completed: bool = Field(
        False, description="Beginner banner only: whether its 6★ has been drawn"
    )
    spark_count: int = Field(
        0,
        ge=0,
        le=SPARK_THRESHOLD,
        description="Limited banner only: draws counted toward the featured spark",
    )
    spark_used: bool = Field(
        False, description="Limited banner only: whether the spark has been consumed"
    )

    def advance_spark(self, banner_kind: BannerKind) -> bool:
        """Count one draw toward the spark before it is resolved.

        Returns:
            True if this draw triggers the spark and must be a featured 6★.
        """
        if banner_kind != BannerKind.LIMITED or self.spark_used:
            return False
        self.spark_count = min(self.spark_count + 1, SPARK_THRESHOLD)
        return self.spark_count >= SPARK_THRESHOLD

    def record_draw(
        self, banner_kind: BannerKind, rarity: Rarity, is_featured: bool
    ) -> Optional[int]:
        """Advance the counters after a resolved draw.

        Returns:
            The pity count the 6★ was reached at, or None for any other rarity.
        """
        self.pity_count += 1
        self.total_pulls += 1
        self.last_rarity = rarity

        pity_reached = None
        if rarity == Rarity.SIX:
            pity_reached = self.pity_count
            self.pity_count = 0

        if banner_kind == BannerKind.WEAPON:
            if rarity == Rarity.SIX:
                self.guarantee_count = 0
            else:
                self.guarantee_count += 1

        if banner_kind == BannerKind.BEGINNER and rarity == Rarity.SIX:
            self.is_completed = True

        if (
            banner_kind == BannerKind.LIMITED
            and not self.spark_used
            and rarity == Rarity.SIX
            and is_featured
        ):
            self.spark_used = True
            self.spark_count = SPARK_THRESHOLD

        return pity_reached
