"""Data shapes exchanged with the Host Adapter.

Key naming follows the JSON the tools return to the model (snake_case),
so handlers can embed these dicts in results without renaming.
"""
from __future__ import annotations

from typing import Literal

from typing_extensions import NotRequired, TypedDict

TrackKind = Literal["instrument", "pattern", "sample", "automation", "other"]
"""Track type as reported by ``list_tracks``."""


class TrackInfo(TypedDict):
    index: int
    name: str
    type: TrackKind
    muted: bool
    solo: bool
    instrument: NotRequired[str]


class NoteDict(TypedDict):
    """A MIDI note inside a clip; positions and lengths are in ticks."""

    key: int
    position: int
    length: int
    volume: int


class ClipNotes(TypedDict):
    """One MIDI clip with its notes, as reported by ``list_notes``."""

    position: int
    length: int
    notes: list[NoteDict]
    note_count: int


class SampleCategory(TypedDict):
    name: str
    path: str
    file_count: int


class SampleInfo(TypedDict):
    name: str
    path: str
    category: NotRequired[str]


class TimeSignature(TypedDict):
    numerator: int
    denominator: int


class ProjectInfo(TypedDict):
    tempo: int
    master_volume: int
    master_pitch: int
    is_playing: bool
    is_paused: bool
    track_count: int
    length_bars: int
    time_signature: TimeSignature
    file_name: NotRequired[str]
