import pytest

from scoreledger.ratings import FULL_MOON, PARTIAL_MOONS, average_stars, star_breakdown, star_display


@pytest.mark.parametrize(
    "ms,tips,expected",
    [
        (4, 8, 4.0),
        (5, None, 5.0),
        (None, 7, 3.5),
        ("3", "abc", 3.0),
        (0, 11, None),
        (None, None, None),
    ],
)
def test_average_stars(ms, tips, expected):
    assert average_stars(ms, tips) == expected


def test_star_display_whole_and_partial():
    assert star_display(4.0) == FULL_MOON * 4
    assert star_display(3.5) == FULL_MOON * 3 + PARTIAL_MOONS[2]
    assert star_display(3.1) == FULL_MOON * 3 + PARTIAL_MOONS[0]
    assert star_display(None) == ""


def test_nearly_full_star_rounds_up():
    parts = star_breakdown(3.9)

    assert parts == {"hundred": 78, "full": 3, "remainder": 18, "partial": 4}
    assert star_display(3.9) == FULL_MOON * 4


def test_display_never_exceeds_five():
    assert star_display(5.0) == FULL_MOON * 5
    assert star_breakdown(5.4)["hundred"] == 100
