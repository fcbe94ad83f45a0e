"""Utility functions for aiomultiview."""

from __future__ import annotations

import uuid


def normalize_channel(channel: str) -> str:
    """Return the canonical form of a channel name (trimmed, lower-cased)."""
    return channel.strip().lower()


def new_slot_id() -> str:
    """Return a fresh slot identifier, stable for the lifetime of a slot."""
    return uuid.uuid4().hex


def new_identity() -> str:
    """Return a fresh embed identity token.

    A new token means the rendering surface bound to the slot has to be torn
    down and created again.
    """
    return f"embed-{uuid.uuid4().hex}"
