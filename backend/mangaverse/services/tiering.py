"""
tiering.py

Chooses the recommendation path for a request from how much rating history
the user has. Pure and network-free.
"""
from enum import Enum
from typing import Optional

from mangaverse.core.config import settings


class Tier(str, Enum):
    NO_HISTORY = "no-history"
    EARLY_STAGE = "early-stage"
    ESTABLISHED = "established"
    # Explicit type filter / pagination: direct catalog listing, no profiling.
    BROWSE = "browse"


def select_tier(
    qualifying_count: int,
    media_type: Optional[str] = None,
    page: Optional[int] = None,
    early_stage_max: int = settings.early_stage_max_qualifying,
) -> Tier:
    if media_type or page:
        return Tier.BROWSE
    if qualifying_count <= 0:
        return Tier.NO_HISTORY
    if qualifying_count <= early_stage_max:
        return Tier.EARLY_STAGE
    return Tier.ESTABLISHED
