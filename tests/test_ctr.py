"""CTR tables and the missed-leads estimate."""

from pipeline_score.ctr import MAP_PACK_CTR, ORGANIC_CTR, current_ctr, missed_leads, round_half_up


def test_rank_three_organic_misses_347_of_1000():
    assert missed_leads(1000, 3, None) == 347


def test_map_pack_first_is_best_case():
    assert missed_leads(1000, None, 1) == 0
    assert missed_leads(1000, 1, 1) == 0


def test_unranked_misses_full_potential():
    assert missed_leads(1000, None, None) == 446


def test_map_pack_beats_organic_rank():
    # Position 2 in the pack (0.156) counts even with organic #1 (0.284)
    assert missed_leads(1000, 1, 2) == 290


def test_out_of_range_positions_count_as_absent():
    assert current_ctr(11, None) == 0.0
    assert current_ctr(None, 4) == 0.0
    assert missed_leads(1000, 15, 5) == 446


def test_missed_leads_never_increase_as_organic_rank_improves():
    volume = 2400
    previous = missed_leads(volume, None, None)
    for rank in range(10, 0, -1):
        current = missed_leads(volume, rank, None)
        assert current <= previous
        previous = current


def test_missed_leads_never_increase_as_map_pack_position_improves():
    volume = 2400
    previous = missed_leads(volume, None, None)
    for pack in (3, 2, 1):
        current = missed_leads(volume, None, pack)
        assert current <= previous
        previous = current
    assert previous == 0


def test_map_pack_three_can_trail_organic_one():
    # 0.098 in the pack is worse than 0.284 at organic #1
    assert missed_leads(1000, None, 3) > missed_leads(1000, 1, None)


def test_zero_volume_misses_nothing():
    assert missed_leads(0, None, None) == 0


def test_tables_match_published_curves():
    assert ORGANIC_CTR[1] == 0.284
    assert ORGANIC_CTR[10] == 0.022
    assert MAP_PACK_CTR == {1: 0.446, 2: 0.156, 3: 0.098}


def test_round_half_up_ignores_float_noise():
    assert round_half_up(40.5) == 41
    assert round_half_up(40.49999999999999) == 41
    assert round_half_up(13.5) == 14
    assert round_half_up(2.4) == 2
