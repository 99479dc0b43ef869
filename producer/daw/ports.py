"""Host adapter protocol: the only DAW interface the producer core may depend on.

Concrete adapters (e.g. ``producer.daw.memory_host.InMemoryHost``) implement
this protocol.  Tool handlers receive a ``HostAdapter`` at construction and
never reach into host data structures through any other path.

All methods are called on the main thread and must return promptly; the
conversation loop blocks while a tool handler runs.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from producer.contracts.host_types import (
    ClipNotes,
    NoteDict,
    ProjectInfo,
    SampleCategory,
    SampleInfo,
    TrackInfo,
    TrackKind,
)


class ClipHandle(Protocol):
    """Opaque reference to a MIDI clip returned by ``get_or_create_midi_clip``."""


@runtime_checkable
class HostAdapter(Protocol):
    """Port that every DAW integration must satisfy.

    Track indices are 0-based positions in ``list_tracks()``.  Methods that
    take an index may assume it was range-checked by the caller; adapters
    raise ``IndexError`` otherwise.
    """

    def has_project(self) -> bool:
        """Return True when a project is loaded and tools may touch it."""
        ...

    # -- tempo ----------------------------------------------------------------

    def get_tempo(self) -> int:
        ...

    def set_tempo(self, bpm: int) -> None:
        ...

    # -- tracks ---------------------------------------------------------------

    def list_tracks(self) -> list[TrackInfo]:
        ...

    def create_track(self, kind: TrackKind) -> int:
        """Append a new track of ``kind`` and return its index."""
        ...

    def load_instrument(self, index: int, plugin: str) -> None:
        """Load an instrument plugin into an instrument track."""
        ...

    def rename(self, index: int, name: str) -> None:
        ...

    def set_muted(self, index: int, muted: bool) -> None:
        ...

    def remove(self, index: int) -> None:
        ...

    # -- notes ----------------------------------------------------------------

    def get_or_create_midi_clip(self, track_index: int, position_ticks: int) -> ClipHandle:
        """Return the clip starting exactly at ``position_ticks``, creating it if absent."""
        ...

    def add_note(self, clip: ClipHandle, note: NoteDict) -> None:
        ...

    def list_notes(self, track_index: int) -> list[ClipNotes]:
        ...

    def clear_notes(self, track_index: int) -> int:
        """Remove every note from the track's clips; return how many were removed."""
        ...

    # -- samples --------------------------------------------------------------

    def list_sample_categories(self) -> list[SampleCategory]:
        ...

    def list_samples(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int,
    ) -> list[SampleInfo]:
        ...

    # -- project / transport --------------------------------------------------

    def project_info(self) -> ProjectInfo:
        ...

    def is_playing(self) -> bool:
        ...

    def play(self) -> None:
        ...

    def stop(self) -> None:
        ...
