"""Grid placement model produced by the layout calculator."""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro.mixins.orjson import DataClassORJSONMixin

PRIMARY_AREA = "primary"
EMPTY_AREA = "empty"
SECONDARY_AREA_PREFIX = "secondary"
PLACEHOLDER_AREA_PREFIX = "placeholder"


def secondary_area(index: int) -> str:
    """Return the name of the 1-based secondary area."""
    return f"{SECONDARY_AREA_PREFIX}{index}"


def placeholder_area(index: int) -> str:
    """Return the name of the 1-based placeholder area."""
    return f"{PLACEHOLDER_AREA_PREFIX}{index}"


@dataclass(frozen=True)
class GridPlacement(DataClassORJSONMixin):
    """Named-area grid template for a given number of streams."""

    area_template: tuple[tuple[str, ...], ...]
    """Rows of area names, one entry per grid cell."""
    column_sizes: tuple[str, ...]
    """Track sizes of the columns (e.g. '1fr')."""
    row_sizes: tuple[str, ...]
    """Track sizes of the rows."""
    placeholder_count: int
    """Number of areas that render a placeholder instead of a stream."""

    def __post_init__(self) -> None:
        """Validate that the template is rectangular and matches the track sizes."""
        if len(self.area_template) != len(self.row_sizes):
            raise ValueError(
                f"Template has {len(self.area_template)} rows but {len(self.row_sizes)} row sizes"
            )
        for row in self.area_template:
            if len(row) != len(self.column_sizes):
                raise ValueError(
                    f"Template row {row} does not match {len(self.column_sizes)} columns"
                )
        if self.placeholder_count < 0:
            raise ValueError(f"placeholder_count must be >= 0, got {self.placeholder_count}")

    @property
    def areas(self) -> tuple[str, ...]:
        """Distinct area names in row-major order of first appearance."""
        seen: dict[str, None] = {}
        for row in self.area_template:
            for name in row:
                seen.setdefault(name, None)
        return tuple(seen)

    @property
    def placeholder_areas(self) -> tuple[str, ...]:
        """Areas that hold no stream (placeholders and the empty-state area)."""
        return tuple(
            name
            for name in self.areas
            if name == EMPTY_AREA or name.startswith(PLACEHOLDER_AREA_PREFIX)
        )

    @property
    def stream_areas(self) -> tuple[str, ...]:
        """Areas that hold a stream."""
        placeholders = set(self.placeholder_areas)
        return tuple(name for name in self.areas if name not in placeholders)

    def css_areas(self) -> str:
        """Render the template as a CSS grid-template-areas value."""
        return "\n".join(f'"{" ".join(row)}"' for row in self.area_template)

    def css_columns(self) -> str:
        """Render the column sizes as a CSS grid-template-columns value."""
        return " ".join(self.column_sizes)

    def css_rows(self) -> str:
        """Render the row sizes as a CSS grid-template-rows value."""
        return " ".join(self.row_sizes)
