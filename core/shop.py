"""
core.shop
Black market catalogue. Item effects are fixed; prices wobble by +/- 10.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Tuple

from .effects import Effect


PRICE_JITTER = 10


@dataclass(frozen=True)
class ShopItem:
    id: str
    name: str
    description: str
    base_price: int
    effect: Effect


SHOP_ITEMS: Tuple[ShopItem, ...] = (
    ShopItem(
        id="supplies",
        name="Underground Rations",
        description="Black market food supplies to keep your party fed.",
        base_price=50,
        effect=Effect(supplies=30),
    ),
    ShopItem(
        id="medicine",
        name="Bootleg Medicine",
        description="Illegal healthcare supplies (banned by the regime).",
        base_price=80,
        effect=Effect(health=25, party_health=15),
    ),
    ShopItem(
        id="morale_boost",
        name="Forbidden Books",
        description="Banned literature to boost party morale.",
        base_price=40,
        effect=Effect(morale=20, party_morale=10),
    ),
    ShopItem(
        id="energy_drink",
        name="Resistance Energy Drink",
        description="Caffeinated rebellion in a can.",
        base_price=25,
        effect=Effect(health=10, morale=10),
    ),
    ShopItem(
        id="survival_kit",
        name="Prepper's Survival Kit",
        description="Everything you need to survive the wasteland.",
        base_price=150,
        effect=Effect(supplies=40, health=15, party_health=10),
    ),
)

ITEMS_BY_ID: Dict[str, ShopItem] = {item.id: item for item in SHOP_ITEMS}


def get_item(item_id: str) -> ShopItem:
    item = ITEMS_BY_ID.get(str(item_id))
    if item is None:
        raise ValueError(f"Unknown shop item: {item_id}")
    return item


def roll_price(item: ShopItem, rng: random.Random) -> int:
    return item.base_price + rng.randint(-PRICE_JITTER, PRICE_JITTER)
