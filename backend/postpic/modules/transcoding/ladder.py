"""Resolution ladder planning.

Picks which tiers of the quality table a source video can be rendered at
without upscaling, and the aspect-preserving size for each.
"""

from typing import Optional, Sequence

from postpic.modules.transcoding.models import DEFAULT_TIERS, PlannedTier, Tier


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def fit_resolution(
    source_width: int,
    source_height: int,
    max_width: int,
    max_height: int,
) -> tuple[float, int, int]:
    """Scale a source size to fit inside a box, keeping aspect ratio.

    Args:
        source_width: Source width in pixels
        source_height: Source height in pixels
        max_width: Box width
        max_height: Box height

    Returns:
        Tuple of (ratio, fitted_width, fitted_height)
    """
    ratio = min(max_width / source_width, max_height / source_height)
    return (
        ratio,
        _round_half_up(source_width * ratio),
        _round_half_up(source_height * ratio),
    )


def plan_ladder(
    source_width: int,
    source_height: int,
    tiers: Optional[Sequence[Tier]] = None,
) -> list[PlannedTier]:
    """Plan the rendition ladder for a source video.

    A tier is accepted when its box is no larger than the source in the
    limiting dimension (ratio <= 1), so nothing is ever upscaled. Output keeps
    the table order, best quality first.

    Args:
        source_width: Source width in pixels, > 0
        source_height: Source height in pixels, > 0
        tiers: Tier table ordered best first (default: DEFAULT_TIERS)

    Returns:
        Accepted tiers with their fitted sizes

    Raises:
        ValueError: If either source dimension is not positive
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(
            f"Source dimensions must be positive, got {source_width}x{source_height}"
        )

    if tiers is None:
        tiers = DEFAULT_TIERS

    planned = []
    for rank, tier in enumerate(tiers):
        ratio, width, height = fit_resolution(
            source_width, source_height, tier.max_width, tier.max_height
        )
        if ratio > 1:
            continue
        # Rounding can nudge a dimension past the source
        if width > source_width or height > source_height:
            continue
        if width < 1 or height < 1:
            continue
        planned.append(
            PlannedTier(tier=tier, fitted_width=width, fitted_height=height, rank=rank)
        )

    return planned
