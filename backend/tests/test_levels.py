from services.levels import get_level, get_visited_level


def test_first_level_progress():
    lvl = get_level(3)
    assert lvl.title == "Latte Learner"
    assert lvl.level_number == 1
    assert lvl.next_threshold == 6
    assert lvl.progress == 40
    assert not lvl.is_max


def test_zero_falls_back_to_first_level():
    lvl = get_level(0)
    assert lvl.level_number == 1
    assert lvl.progress == 0


def test_middle_and_top_levels():
    assert get_level(21).title == "Earphone Explorer"
    top = get_level(250)
    assert top.title == "Ocean Pathfinder"
    assert top.is_max
    assert top.progress == 100
    assert top.next_threshold == 101


def test_visited_levels():
    lvl = get_visited_level(10)
    assert lvl.title == "Urban Voyager"
    assert lvl.level_number == 2
    # (10 - 6) / (21 - 6) * 100 = 26.67
    assert lvl.progress == 27
