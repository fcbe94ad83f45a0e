"""
Grid layout calculator.

Maps a stream count to a named-area grid template. Up to eight streams the
primary stream is a 2x2 block anchored in the top-left corner of a
three-column grid; at nine streams it moves to the center cell of a 3x3 grid.
The switch is driven by the count alone.

The premium presets (equal grid, spotlight and sidebar) use the same area
names, so `assign_areas` holds for every LayoutType. Cells they leave free
become distinct placeholder areas.

Everything here is pure and safe to call from any thread.
"""

from __future__ import annotations

from collections.abc import Sequence

from aiomultiview.models.config import MAX_GRID_STREAMS
from aiomultiview.models.layout import (
    EMPTY_AREA,
    PRIMARY_AREA,
    GridPlacement,
    placeholder_area,
    secondary_area,
)
from aiomultiview.models.slot import Slot
from aiomultiview.models.types import LayoutType

FRACTION = "1fr"
GRID_COLUMNS = 3
SIDEBAR_MIN_ROWS = 4
def _tracks(count: int) -> tuple[str, ...]:
    return (FRACTION,) * count


def _corner_anchored(slot_count: int) -> GridPlacement:
    """Primary as a 2x2 block in the top-left, secondaries in row-major order."""
    rows: list[tuple[str, ...]] = [
        (PRIMARY_AREA, PRIMARY_AREA, secondary_area(1)),
        (PRIMARY_AREA, PRIMARY_AREA, secondary_area(2)),
    ]
    placeholders = 0
    next_secondary = 3
    remaining = slot_count - 3
    while remaining > 0:
        take = min(GRID_COLUMNS, remaining)
        names = [secondary_area(next_secondary + i) for i in range(take)]
        if take == 1:
            # A lone stream keeps a single cell; the rest of the row is one placeholder
            placeholders += 1
            names.extend([placeholder_area(placeholders)] * (GRID_COLUMNS - 1))
        else:
            # The last stream stretches over the free cells
            names.extend([names[-1]] * (GRID_COLUMNS - take))
        rows.append(tuple(names))
        next_secondary += take
        remaining -= take
    return GridPlacement(
        area_template=tuple(rows),
        column_sizes=_tracks(GRID_COLUMNS),
        row_sizes=_tracks(len(rows)),
        placeholder_count=placeholders,
    )


def _centered() -> GridPlacement:
    """Primary in the center of a 3x3 grid, eight secondaries around it."""
    cells = [secondary_area(i) for i in range(1, 9)]
    cells.insert(4, PRIMARY_AREA)
    rows = tuple(
        tuple(cells[start : start + GRID_COLUMNS]) for start in range(0, 9, GRID_COLUMNS)
    )
    return GridPlacement(
        area_template=rows,
        column_sizes=_tracks(GRID_COLUMNS),
        row_sizes=_tracks(GRID_COLUMNS),
        placeholder_count=0,
    )


def _build(slot_count: int) -> GridPlacement:
    if slot_count == 0:
        # Single area rendering the "add a stream" call to action
        return GridPlacement(
            area_template=((EMPTY_AREA,),),
            column_sizes=_tracks(1),
            row_sizes=_tracks(1),
            placeholder_count=1,
        )
    if slot_count == 1:
        return GridPlacement(
            area_template=((PRIMARY_AREA,),),
            column_sizes=_tracks(1),
            row_sizes=_tracks(1),
            placeholder_count=0,
        )
    if slot_count == 2:
        # The only layout where primary and secondary are the same size
        return GridPlacement(
            area_template=((PRIMARY_AREA, secondary_area(1)),),
            column_sizes=_tracks(2),
            row_sizes=_tracks(1),
            placeholder_count=0,
        )
    if slot_count == MAX_GRID_STREAMS:
        return _centered()
    return _corner_anchored(slot_count)


def _pad(names: list[str], size: int, placeholders: int) -> tuple[list[str], int]:
    """Fill names up to size with fresh placeholder areas."""
    padded = list(names)
    while len(padded) < size:
        placeholders += 1
        padded.append(placeholder_area(placeholders))
    return padded, placeholders


def _chunk(cells: list[str], width: int) -> list[tuple[str, ...]]:
    return [tuple(cells[start : start + width]) for start in range(0, len(cells), width)]


def _secondaries(slot_count: int) -> list[str]:
    return [secondary_area(i) for i in range(1, slot_count)]


def _equal(slot_count: int) -> GridPlacement:
    """Same-size cells: two columns up to four streams, a 3x3 grid above."""
    columns = 2 if slot_count <= 4 else GRID_COLUMNS
    rows = 1 if slot_count == 2 else columns
    cells, placeholders = _pad([PRIMARY_AREA, *_secondaries(slot_count)], columns * rows, 0)
    return GridPlacement(
        area_template=tuple(_chunk(cells, columns)),
        column_sizes=_tracks(columns),
        row_sizes=_tracks(rows),
        placeholder_count=placeholders,
    )


def _spotlight(slot_count: int) -> GridPlacement:
    """Primary as a wide 2x2 block, two streams beside it, the rest in rows below."""
    secondaries = _secondaries(slot_count)
    side, placeholders = _pad(secondaries[:2], 2, 0)
    rest = secondaries[2:]
    # At least one row below the spotlight, more once it is full
    bottom_size = max(GRID_COLUMNS, -(-len(rest) // GRID_COLUMNS) * GRID_COLUMNS)
    bottom, placeholders = _pad(rest, bottom_size, placeholders)
    rows = [
        (PRIMARY_AREA, PRIMARY_AREA, side[0]),
        (PRIMARY_AREA, PRIMARY_AREA, side[1]),
        *_chunk(bottom, GRID_COLUMNS),
    ]
    return GridPlacement(
        area_template=tuple(rows),
        column_sizes=("2fr", "2fr", FRACTION),
        row_sizes=_tracks(len(rows)),
        placeholder_count=placeholders,
    )


def _sidebar(slot_count: int) -> GridPlacement:
    """Primary spans the main column, the other streams stack on the right."""
    secondaries = _secondaries(slot_count)
    side, placeholders = _pad(secondaries, max(SIDEBAR_MIN_ROWS, len(secondaries)), 0)
    return GridPlacement(
        area_template=tuple((PRIMARY_AREA, name) for name in side),
        column_sizes=("3fr", FRACTION),
        row_sizes=_tracks(len(side)),
        placeholder_count=placeholders,
    )


_PRESET_BUILDERS = {
    LayoutType.GRID_EQUAL: _equal,
    LayoutType.SPOTLIGHT: _spotlight,
    LayoutType.SIDEBAR: _sidebar,
}

_PLACEMENTS: tuple[GridPlacement, ...] = tuple(
    _build(count) for count in range(MAX_GRID_STREAMS + 1)
)

# Presets share the default empty and single-stream states
_PRESET_PLACEMENTS: dict[LayoutType, tuple[GridPlacement, ...]] = {
    layout_type: tuple(
        _PLACEMENTS[count] if count <= 1 else builder(count)
        for count in range(MAX_GRID_STREAMS + 1)
    )
    for layout_type, builder in _PRESET_BUILDERS.items()
}


def layout(slot_count: int, layout_type: LayoutType = LayoutType.DEFAULT) -> GridPlacement:
    """
    Return the grid placement for a number of streams.

    Args:
        slot_count: Number of live streams, 0-9.
        layout_type: Arrangement to use. DEFAULT and CUSTOM share the default grid.

    Raises:
        ValueError: If slot_count is outside 0-9.
    """
    if not 0 <= slot_count <= MAX_GRID_STREAMS:
        raise ValueError(f"slot_count must be in range 0-{MAX_GRID_STREAMS}, got {slot_count}")
    return _PRESET_PLACEMENTS.get(layout_type, _PLACEMENTS)[slot_count]


def assign_areas(slots: Sequence[Slot]) -> dict[str, str]:
    """
    Map slot ids to grid area names.

    The primary slot always gets the primary area. Every other slot gets
    secondary{k}, k being the 1-based count of non-primary slots up to and
    including it in session order.
    """
    areas: dict[str, str] = {}
    secondary_index = 0
    for slot in slots:
        if slot.is_primary:
            areas[slot.id] = PRIMARY_AREA
        else:
            secondary_index += 1
            areas[slot.id] = secondary_area(secondary_index)
    return areas
