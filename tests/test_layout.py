import math

import pytest

from inspection.layout import PageCursor


def test_place_advances_by_height_and_margin():
    cursor = PageCursor(top=60, bottom=760)
    first = cursor.place(180, 20)
    assert (first.page, first.y, first.page_break) == (1, 60, False)
    assert cursor.y == 260


def test_breaks_before_placing_a_block_that_would_overflow():
    cursor = PageCursor(top=60, bottom=760, y=600)
    placement = cursor.place(180, 20)
    assert placement.page_break
    assert (placement.page, placement.y) == (2, 60)
    assert cursor.y == 260


def test_block_that_exactly_fits_stays_on_page():
    cursor = PageCursor(top=60, bottom=760, y=580)
    placement = cursor.place(180)
    assert not placement.page_break
    assert placement.page == 1


@pytest.mark.parametrize("count", [1, 3, 4, 5, 9, 10])
def test_page_count_matches_formula(count):
    height, margin, top, bottom = 180, 20, 60, 760
    cursor = PageCursor(top=top, bottom=bottom)
    placements = [cursor.place(height, margin) for _ in range(count)]
    per_page = math.floor((bottom - top + margin) / (height + margin))
    assert cursor.page == math.ceil(count / per_page)
    for p in placements:
        assert top <= p.y and p.y + height <= bottom


def test_five_blocks_take_two_pages():
    cursor = PageCursor(top=60, bottom=760)
    pages = [cursor.place(180, 20).page for _ in range(5)]
    assert pages == [1, 1, 1, 2, 2]


def test_oversize_block_on_fresh_page_does_not_loop():
    cursor = PageCursor(top=60, bottom=760)
    placement = cursor.place(900)
    assert (placement.page, placement.page_break) == (1, False)
    following = cursor.place(10)
    assert following.page == 2


def test_invalid_bounds():
    with pytest.raises(ValueError):
        PageCursor(top=700, bottom=100)
