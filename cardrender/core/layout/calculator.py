"""
Layout Calculator
=================

Pure functions mapping a card count to a layout plan and title bounds.
Results are cached by card count; identical input always yields an equal plan.
"""

from functools import lru_cache
from typing import Dict, Mapping, NamedTuple, Optional

from cardrender.models.schemas import LayoutPlan, TitleConfig

BOTTOM_RESERVED_PX = 100


class LayoutTier(NamedTuple):
    title_size_class: str
    desc_size_class: str
    icon_size: str
    wrapper_gap: str
    container_gap: str
    card_padding: str


DEFAULT_LAYOUT_TIERS: Dict[str, LayoutTier] = {
    "tier1": LayoutTier("text-5-5xl", "text-4xl", "72px", "72px", "32px", "40px"),
    "tier1_5": LayoutTier("text-5xl", "text-3-5xl", "68px", "68px", "28px", "36px"),
    "tier2": LayoutTier("text-4-5xl", "text-3xl", "64px", "36px", "24px", "32px"),
    # 7-8 cards: tighter spacing so the viewport shrink rarely kicks in
    "tier2_5": LayoutTier("text-4xl", "text-2-5xl", "52px", "32px", "20px", "20px"),
    "tier3": LayoutTier("text-3-5xl", "text-2xl", "48px", "32px", "12px", "16px"),
}

DEFAULT_TITLE_CONFIGS: Dict[str, TitleConfig] = {
    "1-3": TitleConfig(initial_font_size=90, min_font_size=45),
    "4": TitleConfig(initial_font_size=80, min_font_size=40),
    "5-6": TitleConfig(initial_font_size=72, min_font_size=36),
    "7-8": TitleConfig(initial_font_size=64, min_font_size=32),
    "9+": TitleConfig(initial_font_size=56, min_font_size=30),
}


def _title_bucket(card_count: int) -> str:
    if card_count <= 3:
        return "1-3"
    if card_count == 4:
        return "4"
    if card_count <= 6:
        return "5-6"
    if card_count <= 8:
        return "7-8"
    return "9+"


def compute_title_config(
    card_count: int, overrides: Optional[Mapping[str, int]] = None
) -> TitleConfig:
    """
    Title autosize bounds for a card count.

    Args:
        card_count: Number of cards (any integer)
        overrides: Optional ``initial_font_size`` / ``min_font_size`` replacements

    Returns:
        TitleConfig for the matching bucket
    """
    base = DEFAULT_TITLE_CONFIGS[_title_bucket(card_count)]
    if not overrides:
        return base
    updates = {k: v for k, v in overrides.items() if v is not None}
    return TitleConfig.model_validate({**base.model_dump(), **updates})


def plan_from_tiers(card_count: int, tiers: Mapping[str, LayoutTier]) -> LayoutPlan:
    """Standard width/padding rules applied over an arbitrary tier table."""
    wrapper_padding_x: Optional[str] = None

    if card_count <= 2:
        tier = tiers["tier1"]
        card_width_class = "w-2/3" if card_count == 1 else "card-width-2col"
        wrapper_padding_x = "220px"
    elif card_count == 3:
        tier = tiers["tier1"]
        card_width_class = "card-width-3col"
    elif card_count <= 6:
        tier = tiers["tier2"]
        card_width_class = "card-width-2col" if card_count == 4 else "card-width-3col"
        if card_count == 4:
            wrapper_padding_x = "200px"
    elif card_count <= 8:
        tier = tiers["tier2_5"]
        card_width_class = "card-width-4col"
    else:
        tier = tiers["tier3"]
        card_width_class = "card-width-4col"

    return LayoutPlan(
        wrapper_gap=tier.wrapper_gap,
        wrapper_padding_x=wrapper_padding_x,
        container_gap=tier.container_gap,
        card_padding=tier.card_padding,
        card_width_class=card_width_class,
        icon_size=tier.icon_size,
        title_size_class=tier.title_size_class,
        desc_size_class=tier.desc_size_class,
        title_config=compute_title_config(card_count),
    )


@lru_cache(maxsize=32)
def compute_layout(card_count: int) -> LayoutPlan:
    """
    Compute the standard layout plan for a card count.

    Args:
        card_count: Number of cards (any integer; counts above 8 map to the densest tier)

    Returns:
        Immutable LayoutPlan
    """
    return plan_from_tiers(card_count, DEFAULT_LAYOUT_TIERS)


@lru_cache(maxsize=32)
def compute_terminal_layout(card_count: int) -> LayoutPlan:
    """Layout plan for the terminal theme, which uses its own compact table."""
    title_config = compute_title_config(card_count)
    if card_count <= 3:
        width = "w-2/3" if card_count == 1 else ("card-width-2col" if card_count == 2 else "card-width-3col")
        return LayoutPlan(
            wrapper_gap="48px", container_gap="16px", card_padding="24px",
            card_width_class=width, icon_size="40px",
            title_size_class="text-4xl", desc_size_class="text-xl",
            title_config=title_config,
        )
    if card_count <= 6:
        width = "card-width-2col" if card_count == 4 else "card-width-3col"
        return LayoutPlan(
            wrapper_gap="40px", container_gap="14px", card_padding="20px",
            card_width_class=width, icon_size="36px",
            title_size_class="text-3xl", desc_size_class="text-lg",
            title_config=title_config,
        )
    return LayoutPlan(
        wrapper_gap="36px", container_gap="12px", card_padding="16px",
        card_width_class="card-width-4col", icon_size="32px",
        title_size_class="text-2xl", desc_size_class="text-base",
        title_config=title_config,
    )


@lru_cache(maxsize=32)
def compute_news_card_layout(card_count: int) -> LayoutPlan:
    """Layout plan for the news card theme."""
    title_config = compute_title_config(card_count)
    if card_count <= 3:
        width = "w-3/4" if card_count == 1 else ("card-width-2col-wide" if card_count == 2 else "card-width-3col")
        return LayoutPlan(
            wrapper_gap="60px", container_gap="32px", card_padding="24px",
            wrapper_padding_x="140px" if card_count == 2 else None,
            card_width_class=width, icon_size="3.75rem",
            title_size_class="text-6xl", desc_size_class="text-5xl",
            title_config=title_config,
        )
    if card_count <= 6:
        width = "card-width-2col-wide" if card_count == 4 else "card-width-3col"
        return LayoutPlan(
            wrapper_gap="52px", container_gap="28px", card_padding="20px",
            wrapper_padding_x="140px" if card_count == 4 else None,
            card_width_class=width, icon_size="3rem",
            title_size_class="text-5xl", desc_size_class="text-4xl",
            title_config=title_config,
        )
    return LayoutPlan(
        wrapper_gap="44px", container_gap="24px", card_padding="16px",
        card_width_class="card-width-4col", icon_size="2.25rem",
        title_size_class="text-4xl", desc_size_class="text-3xl",
        title_config=title_config,
    )
