from __future__ import annotations

import asyncio
from collections.abc import Callable

from aiomultiview.viewer.embed import EmbedOptions


class FakeWidget:
    """In-memory player widget recording every command it receives."""

    def __init__(self, options: EmbedOptions) -> None:
        self.options = options
        self.muted = options.muted
        self.quality = options.quality.value
        self.destroyed = False
        self.mute_calls: list[bool] = []
        self.quality_calls: list[str] = []
        self.listeners: dict[str, list[Callable[..., None]]] = {}

    def set_muted(self, muted: bool) -> None:  # noqa: FBT001
        self.muted = muted
        self.mute_calls.append(muted)

    def set_quality(self, quality: str) -> None:
        self.quality = quality
        self.quality_calls.append(quality)

    def add_event_listener(self, event: str, callback: Callable[..., None]) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def destroy(self) -> None:
        self.destroyed = True

    def emit(self, event: str, *args: object) -> None:
        for callback in list(self.listeners.get(event, [])):
            callback(*args)


class FakeWidgetFactory:
    """
    Widget factory handing out FakeWidgets.

    With auto_ready the widget reports ready right after creation; otherwise
    the test drives it through emit(). Channels listed in fail_channels make
    the factory raise.
    """

    widget_class: type[FakeWidget] = FakeWidget

    def __init__(self, *, auto_ready: bool = True, fail_channels: set[str] | None = None) -> None:
        self.auto_ready = auto_ready
        self.fail_channels = fail_channels or set()
        self.widgets: list[FakeWidget] = []
        self.created = asyncio.Event()

    async def __call__(self, options: EmbedOptions) -> FakeWidget:
        await asyncio.sleep(0)
        if options.channel in self.fail_channels:
            raise RuntimeError(f"cannot load {options.channel}")
        widget = self.widget_class(options)
        self.widgets.append(widget)
        self.created.set()
        if self.auto_ready:
            asyncio.get_running_loop().call_soon(widget.emit, "ready")
        return widget

    def live(self) -> list[FakeWidget]:
        return [widget for widget in self.widgets if not widget.destroyed]

    def for_channel(self, channel: str) -> list[FakeWidget]:
        return [widget for widget in self.live() if widget.options.channel == channel]
