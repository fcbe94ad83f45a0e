from __future__ import annotations

import pytest

from aiomultiview.models.layout import EMPTY_AREA, PRIMARY_AREA, GridPlacement
from aiomultiview.models.slot import Slot
from aiomultiview.models.types import LayoutType
from aiomultiview.viewer.layout import assign_areas, layout

EXPECTED_PLACEHOLDERS = {0: 1, 1: 0, 2: 0, 3: 0, 4: 1, 5: 0, 6: 0, 7: 1, 8: 0, 9: 0}


@pytest.mark.parametrize("count", range(10))
def test_layout_distinct_areas_cover_streams_and_placeholders(count: int) -> None:
    placement = layout(count)
    assert placement.placeholder_count == EXPECTED_PLACEHOLDERS[count]
    assert len(placement.areas) == count + placement.placeholder_count
    assert len(placement.stream_areas) == count
    assert len(placement.placeholder_areas) == placement.placeholder_count
    if count:
        assert PRIMARY_AREA in placement.stream_areas


@pytest.mark.parametrize("count", range(10))
def test_layout_is_deterministic(count: int) -> None:
    assert layout(count) == layout(count)
    assert layout(count).to_json() == layout(count).to_json()


@pytest.mark.parametrize("count", [-1, 10, 42])
def test_layout_rejects_out_of_range(count: int) -> None:
    with pytest.raises(ValueError):
        layout(count)


def test_layout_empty_state() -> None:
    placement = layout(0)
    assert placement.area_template == ((EMPTY_AREA,),)
    assert placement.placeholder_areas == (EMPTY_AREA,)


def test_layout_two_streams_side_by_side() -> None:
    placement = layout(2)
    assert placement.area_template == (("primary", "secondary1"),)
    assert placement.css_columns() == "1fr 1fr"


def test_layout_four_streams_has_one_placeholder() -> None:
    placement = layout(4)
    assert placement.area_template == (
        ("primary", "primary", "secondary1"),
        ("primary", "primary", "secondary2"),
        ("secondary3", "placeholder1", "placeholder1"),
    )
    assert placement.placeholder_count == 1


def test_layout_five_streams_fills_the_grid() -> None:
    placement = layout(5)
    assert placement.placeholder_count == 0
    assert placement.area_template[-1] == ("secondary3", "secondary4", "secondary4")


def test_layout_primary_anchored_in_corner_up_to_eight() -> None:
    for count in range(3, 9):
        template = layout(count).area_template
        assert template[0][:2] == (PRIMARY_AREA, PRIMARY_AREA)
        assert template[1][:2] == (PRIMARY_AREA, PRIMARY_AREA)


def test_layout_nine_streams_centers_primary() -> None:
    placement = layout(9)
    assert placement.area_template[1][1] == PRIMARY_AREA
    assert sum(row.count(PRIMARY_AREA) for row in placement.area_template) == 1
    assert placement.css_rows() == "1fr 1fr 1fr"


def test_css_areas_rendering() -> None:
    assert layout(2).css_areas() == '"primary secondary1"'


def test_grid_placement_must_be_rectangular() -> None:
    with pytest.raises(ValueError):
        GridPlacement(
            area_template=(("primary", "secondary1"), ("primary",)),
            column_sizes=("1fr", "1fr"),
            row_sizes=("1fr", "1fr"),
            placeholder_count=0,
        )


def test_assign_areas_matches_layout() -> None:
    slots = [
        Slot(id="a", channel="alpha", embed_identity="e-a"),
        Slot(id="b", channel="bravo", embed_identity="e-b", is_primary=True, has_audio=True),
        Slot(id="c", channel="charlie", embed_identity="e-c"),
        Slot(id="d", channel="delta", embed_identity="e-d"),
    ]
    areas = assign_areas(slots)
    assert areas == {"a": "secondary1", "b": "primary", "c": "secondary2", "d": "secondary3"}
    assert set(areas.values()) == set(layout(len(slots)).stream_areas)


PRESETS = [LayoutType.GRID_EQUAL, LayoutType.SPOTLIGHT, LayoutType.SIDEBAR]


@pytest.mark.parametrize("layout_type", list(LayoutType))
@pytest.mark.parametrize("count", range(10))
def test_every_layout_type_covers_streams_and_placeholders(
    layout_type: LayoutType, count: int
) -> None:
    placement = layout(count, layout_type)
    assert len(placement.areas) == count + placement.placeholder_count
    assert len(placement.stream_areas) == count
    assert len(placement.placeholder_areas) == placement.placeholder_count
    if count:
        assert PRIMARY_AREA in placement.stream_areas


@pytest.mark.parametrize("count", range(10))
def test_default_and_custom_share_the_default_grid(count: int) -> None:
    assert layout(count, LayoutType.DEFAULT) is layout(count)
    assert layout(count, LayoutType.CUSTOM) == layout(count)


@pytest.mark.parametrize("layout_type", PRESETS)
def test_presets_keep_empty_and_single_states(layout_type: LayoutType) -> None:
    assert layout(0, layout_type) == layout(0)
    assert layout(1, layout_type) == layout(1)


@pytest.mark.parametrize("layout_type", PRESETS)
@pytest.mark.parametrize("count", range(1, 10))
def test_presets_accept_assigned_areas(layout_type: LayoutType, count: int) -> None:
    slots = [
        Slot(
            id=f"s{index}",
            channel=f"channel{index}",
            embed_identity=f"e{index}",
            is_primary=index == 0,
            has_audio=index == 0,
        )
        for index in range(count)
    ]
    assert set(assign_areas(slots).values()) == set(layout(count, layout_type).stream_areas)


def test_equal_grid_three_streams() -> None:
    placement = layout(3, LayoutType.GRID_EQUAL)
    assert placement.area_template == (
        ("primary", "secondary1"),
        ("secondary2", "placeholder1"),
    )
    assert placement.placeholder_count == 1
    assert placement.css_columns() == "1fr 1fr"


def test_equal_grid_two_streams_side_by_side() -> None:
    assert layout(2, LayoutType.GRID_EQUAL).area_template == (("primary", "secondary1"),)


def test_equal_grid_switches_to_three_columns_at_five() -> None:
    placement = layout(5, LayoutType.GRID_EQUAL)
    assert placement.area_template == (
        ("primary", "secondary1", "secondary2"),
        ("secondary3", "secondary4", "placeholder1"),
        ("placeholder2", "placeholder3", "placeholder4"),
    )
    assert placement.placeholder_count == 4
    assert layout(9, LayoutType.GRID_EQUAL).placeholder_count == 0


def test_spotlight_layout() -> None:
    placement = layout(4, LayoutType.SPOTLIGHT)
    assert placement.area_template == (
        ("primary", "primary", "secondary1"),
        ("primary", "primary", "secondary2"),
        ("secondary3", "placeholder1", "placeholder2"),
    )
    assert placement.css_columns() == "2fr 2fr 1fr"
    assert layout(6, LayoutType.SPOTLIGHT).placeholder_count == 0


def test_spotlight_grows_a_row_past_six_streams() -> None:
    placement = layout(9, LayoutType.SPOTLIGHT)
    assert placement.area_template[-1] == ("secondary6", "secondary7", "secondary8")
    assert placement.css_rows() == "1fr 1fr 1fr 1fr"
    assert placement.placeholder_count == 0


def test_sidebar_layout() -> None:
    placement = layout(3, LayoutType.SIDEBAR)
    assert placement.area_template == (
        ("primary", "secondary1"),
        ("primary", "secondary2"),
        ("primary", "placeholder1"),
        ("primary", "placeholder2"),
    )
    assert placement.css_columns() == "3fr 1fr"
    assert len(layout(9, LayoutType.SIDEBAR).area_template) == 8


@pytest.mark.parametrize("layout_type", PRESETS)
def test_presets_reject_out_of_range(layout_type: LayoutType) -> None:
    with pytest.raises(ValueError):
        layout(10, layout_type)
