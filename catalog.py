"""Reward catalogs and item selection."""

import random
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from banner import BannerKind, RandomSource, Rarity


class RewardDomain(str, Enum):
    """Which catalog a banner draws from"""

    OPERATOR = "operator"
    WEAPON = "weapon"

    @classmethod
    def for_banner(cls, banner_kind: BannerKind) -> "RewardDomain":
        if banner_kind == BannerKind.WEAPON:
            return cls.WEAPON
        return cls.OPERATOR


class RewardType(str, Enum):
    """What a single draw hands out"""

    OPERATOR = "operator"
    WEAPON = "weapon"
    ITEM = "item"


class CatalogEntry(BaseModel):
    name: str = Field(..., description="Display name of the reward")
    is_featured: bool = Field(
        False, description="Whether this is the rate-up entry of its tier"
    )
    image_url: Optional[str] = Field(None, description="Card art of the reward")

    model_config = {"frozen": True}


Catalog = dict[Rarity, list[CatalogEntry]]

_PRYDWEN = "https://www.prydwen.gg/static"
_ARSENAL = "https://arknightsendfield.gg/wp-content/uploads"

OPERATOR_CATALOG: Catalog = {
    Rarity.SIX: [
        CatalogEntry(
            name="Laevatain",
            is_featured=True,
            image_url=f"{_PRYDWEN}/5909b148a77c8311b612a8a0f2306976/b26e2/Laevatain_card.webp",
        ),
        CatalogEntry(
            name="Ember",
            image_url=f"{_PRYDWEN}/271c93d0a66fc6608a907ddb44924455/b26e2/Ember_card.webp",
        ),
        CatalogEntry(
            name="Gilberta",
            image_url=f"{_PRYDWEN}/ea11bc1f5a07f87e1f09b427077f80ce/b26e2/Gilberta_card.webp",
        ),
        CatalogEntry(
            name="Yvonne",
            image_url=f"{_PRYDWEN}/3329002cd26c80ef654481fb8470b6eb/b26e2/Yvonne_card.webp",
        ),
        CatalogEntry(
            name="Last Rite",
            image_url=f"{_PRYDWEN}/2a92e48cfa9514dda6d3ae2bae3464c7/b26e2/lastrite_card.webp",
        ),
        CatalogEntry(
            name="Ardelina",
            image_url=f"{_PRYDWEN}/33dc6ba762f79eb801a225df3f23fc63/b26e2/ardelia_card.webp",
        ),
        CatalogEntry(
            name="Lifeng",
            image_url=f"{_PRYDWEN}/824a2636112f900b39e0b880f0721a70/b26e2/Lifeng_card.webp",
        ),
        CatalogEntry(
            name="Pogranichnik",
            image_url=f"{_PRYDWEN}/93cc60b9b7b5d8e4d10d75049c13a12d/b26e2/pog_card.webp",
        ),
    ],
    Rarity.FIVE: [
        CatalogEntry(
            name="Alesh",
            image_url=f"{_PRYDWEN}/4ab4a04bc6ea4608e3fdc0b029e8adbd/b26e2/alesh_card.webp",
        ),
        CatalogEntry(
            name="Arclight",
            image_url=f"{_PRYDWEN}/47af9a2d24eae5c81e42cf52a2f93ec8/b26e2/Arclight_card.webp",
        ),
        CatalogEntry(
            name="Avywenna",
            image_url=f"{_PRYDWEN}/6645b4a98fe068e1a0baf2d92671a2c8/b26e2/Avywenna_card.webp",
        ),
        CatalogEntry(
            name="Chen Qianyu",
            image_url=f"{_PRYDWEN}/ffb2f1fdf02c5addcfdb98f7b4349c6a/b26e2/Chen_Qianyu_card.webp",
        ),
        CatalogEntry(
            name="Da Pan",
            image_url=f"{_PRYDWEN}/1dcf4fb5768b0ebed63fdec362a9f32d/b26e2/Da_Pan_card.webp",
        ),
        CatalogEntry(
            name="Perlica",
            image_url=f"{_PRYDWEN}/75c75610b5049c97925ee6fe298fa01d/b26e2/Perlica_card.webp",
        ),
        CatalogEntry(
            name="Snowshine",
            image_url=f"{_PRYDWEN}/267013fd7ebe68504acdc30a40822370/b26e2/Snowshine_card.webp",
        ),
        CatalogEntry(
            name="Wulfgard",
            image_url=f"{_PRYDWEN}/387044801881e9b065a92997bb940612/b26e2/Wulfguard_card.webp",
        ),
        CatalogEntry(
            name="Xaihi",
            image_url=f"{_PRYDWEN}/033cef5dba728ff5d8e058a457523093/b26e2/Xaihi_card.webp",
        ),
    ],
    Rarity.FOUR: [
        CatalogEntry(
            name="Akekuri",
            image_url=f"{_PRYDWEN}/4ae8f2802b09b4861048cd448ba8ac1c/b26e2/akekuri_card.webp",
        ),
        CatalogEntry(
            name="Antal",
            image_url=f"{_PRYDWEN}/e273a723742f6952c1c3ea33bb8f91dc/b26e2/antel_card.webp",
        ),
        CatalogEntry(
            name="Catcher",
            image_url=f"{_PRYDWEN}/b14c31b1d502e096c14d250da05ee67c/b26e2/catcher_card.webp",
        ),
        CatalogEntry(
            name="Estalla",
            image_url=f"{_PRYDWEN}/ddc19b6df6cc72c0a54dc8613e593441/b26e2/estella_card.webp",
        ),
        CatalogEntry(
            name="Fluorite",
            image_url=f"{_PRYDWEN}/c43a32a2c506dea5dc1cdb7e1bf4536e/b26e2/fluorite_card.webp",
        ),
    ],
    Rarity.THREE: [],
}

WEAPON_CATALOG: Catalog = {
    Rarity.SIX: [
        CatalogEntry(
            name="Forgeborn Scathe",
            is_featured=True,
            image_url=f"{_ARSENAL}/The-Fifth-Heirloom.png",
        ),
        CatalogEntry(
            name="White Night Nova", image_url=f"{_ARSENAL}/Cerulean-Resonance.png"
        ),
        CatalogEntry(name="Wedge", image_url=f"{_ARSENAL}/Wedge.png"),
        CatalogEntry(name="Clannibal", image_url=f"{_ARSENAL}/Clannibal.png"),
        CatalogEntry(
            name="Chivalric Virtues", image_url=f"{_ARSENAL}/Chivalric-Virtues.png"
        ),
        CatalogEntry(name="Valiant", image_url=f"{_ARSENAL}/Valiant.png"),
        CatalogEntry(name="Former Finery", image_url=f"{_ARSENAL}/Former-Finery.png"),
    ],
    Rarity.FIVE: [
        CatalogEntry(name="5 star", image_url=f"{_ARSENAL}/OBJ-Velocitous.png"),
    ],
    Rarity.FOUR: [
        CatalogEntry(name="4 star", image_url=f"{_ARSENAL}/Howling-Guard.png"),
    ],
    Rarity.THREE: [
        CatalogEntry(name="3 star", image_url=f"{_ARSENAL}/Peco-5.png"),
    ],
}

CATALOGS: dict[RewardDomain, Catalog] = {
    RewardDomain.OPERATOR: OPERATOR_CATALOG,
    RewardDomain.WEAPON: WEAPON_CATALOG,
}

WEAPON_FEATURED_GUARANTEE = 80
WEAPON_FEATURED_BOOST_START = 40
WEAPON_FEATURED_BOOST_RATE = 0.25
LIMITED_FEATURED_RATE = 0.5


def featured_entry(catalog: Catalog, rarity: Rarity) -> Optional[CatalogEntry]:
    for entry in catalog.get(rarity, []):
        if entry.is_featured:
            return entry
    return None


def reward_type_for(banner_kind: BannerKind, rarity: Rarity) -> RewardType:
    if banner_kind != BannerKind.WEAPON:
        return RewardType.OPERATOR
    if rarity == Rarity.THREE:
        return RewardType.ITEM
    return RewardType.WEAPON


def select_item(
    rarity: Rarity,
    banner_kind: BannerKind,
    domain: RewardDomain,
    force_featured: bool = False,
    guarantee_count: int = 0,
    rng: RandomSource = random,
    catalog: Optional[Catalog] = None,
) -> CatalogEntry:
    """Pick the concrete reward of a draw whose rarity is already resolved.

    The pick is uniform within the tier. On 6★ draws the banner's featured
    rules may then swap it for the tier's featured entry:

    - limited: always when ``force_featured`` (the spark), otherwise on a 50% coin flip
    - weapon: always once ``guarantee_count`` reaches 80, 25% of the time from 40

    Args:
        rarity: Resolved rarity of the draw.
        banner_kind: Banner being drawn on.
        domain: Catalog to draw from.
        force_featured: Whether the limited banner spark fired on this draw.
        guarantee_count: Weapon banner guarantee cycle counter before this draw.
        rng: Source of uniform [0, 1) values.
        catalog: Override of the domain's catalog.

    Returns:
        The chosen entry, or an ``Unknown`` placeholder if the tier is empty.
    """
    if catalog is None:
        catalog = CATALOGS[RewardDomain(domain)]
    pool = catalog.get(rarity, [])
    if not pool:
        return CatalogEntry(name=f"Unknown {int(rarity)}★")

    index = min(int(rng.random() * len(pool)), len(pool) - 1)
    entry = pool[index]

    if rarity != Rarity.SIX:
        return entry

    make_featured = False
    if banner_kind == BannerKind.LIMITED:
        make_featured = force_featured or rng.random() < LIMITED_FEATURED_RATE
    elif banner_kind == BannerKind.WEAPON:
        if guarantee_count >= WEAPON_FEATURED_GUARANTEE:
            make_featured = True
        elif guarantee_count >= WEAPON_FEATURED_BOOST_START:
            make_featured = rng.random() < WEAPON_FEATURED_BOOST_RATE

    if make_featured:
        return featured_entry(catalog, rarity) or entry
    return entry
