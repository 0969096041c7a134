"""Click-through-rate tables by SERP position and the missed-leads estimate built on them."""

from decimal import Decimal, ROUND_HALF_UP


# Organic CTR by rank (1-10)
ORGANIC_CTR = {
    1: 0.284,
    2: 0.152,
    3: 0.099,
    4: 0.067,
    5: 0.051,
    6: 0.041,
    7: 0.034,
    8: 0.028,
    9: 0.025,
    10: 0.022,
}

# Local map-pack CTR by position (1-3)
MAP_PACK_CTR = {
    1: 0.446,
    2: 0.156,
    3: 0.098,
}

BEST_CTR = MAP_PACK_CTR[1]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero.

    Float noise is trimmed first so 40.49999999999999 (i.e. 40.5) rounds up.

    >>> round_half_up(40.5)
    41
    >>> round_half_up(347.0)
    347
    """
    trimmed = Decimal(str(round(value, 6)))
    return int(trimmed.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def current_ctr(current_rank: int | None, map_pack_position: int | None) -> float:
    """CTR a business gets today. The map pack outranks any organic position."""
    if map_pack_position in MAP_PACK_CTR:
        return MAP_PACK_CTR[map_pack_position]
    if current_rank in ORGANIC_CTR:
        return ORGANIC_CTR[current_rank]
    return 0.0


def missed_leads(
    search_volume: int,
    current_rank: int | None,
    map_pack_position: int | None,
) -> int:
    """
    Estimated monthly clicks lost versus holding map-pack #1.

    >>> missed_leads(1000, 3, None)
    347
    >>> missed_leads(1000, None, 1)
    0
    """
    if search_volume <= 0:
        return 0
    potential = search_volume * BEST_CTR
    current = search_volume * current_ctr(current_rank, map_pack_position)
    return max(0, round_half_up(potential - current))
