"""Advisory quality tiers derived from native resolution."""

from cuesync.models.playback import Quality

# (minimum native height, tier), highest first
_TIERS: list[tuple[int, Quality]] = [
    (1080, Quality.Q1080),
    (720, Quality.Q720),
    (540, Quality.Q540),
    (0, Quality.Q360),
]


def max_quality_for(height: int | None) -> Quality:
    """Return the highest tier a source of this height can offer."""
    native = height or 0
    for threshold, tier in _TIERS:
        if native >= threshold:
            return tier
    return Quality.Q360


def qualities_up_to(max_quality: Quality) -> list[Quality]:
    """Return every tier at or below ``max_quality``, highest first."""
    tiers = [tier for _, tier in _TIERS]
    return tiers[tiers.index(max_quality):]
