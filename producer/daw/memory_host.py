"""
In-memory reference host for the producer assistant.

Implements ``HostAdapter`` over a plain Python project model so the
assistant can run without a DAW attached (CLI sessions, tests).

Model:
    Project
        └── Track (instrument | pattern | sample | automation)
                └── MidiClip (instrument tracks only)
                        └── Note

Positions and lengths are in ticks (48 per beat, 192 per 4/4 bar).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from producer.config import TICKS_PER_BAR, settings
from producer.contracts.host_types import (
    ClipNotes,
    NoteDict,
    ProjectInfo,
    SampleCategory,
    SampleInfo,
    TrackInfo,
    TrackKind,
)
from producer.daw.samples import SampleLibrary

logger = logging.getLogger(__name__)

DEFAULT_TEMPO: int = 140
DEFAULT_INSTRUMENT: str = "tripleoscillator"


@dataclass
class Note:
    key: int
    position: int
    length: int
    volume: int = 100
    panning: int = 0

    def to_dict(self) -> NoteDict:
        return NoteDict(key=self.key, position=self.position, length=self.length, volume=self.volume)


@dataclass
class MidiClip:
    """A MIDI clip; ``position`` is the clip start on the song timeline."""
    position: int
    notes: list[Note] = field(default_factory=list)

    @property
    def length(self) -> int:
        """End of the last note rounded up to a whole bar (minimum one bar)."""
        end = max((n.position + n.length for n in self.notes), default=0)
        bars = max(1, math.ceil(end / TICKS_PER_BAR))
        return bars * TICKS_PER_BAR


@dataclass
class Track:
    name: str
    kind: TrackKind
    muted: bool = False
    solo: bool = False
    instrument: Optional[str] = None
    clips: list[MidiClip] = field(default_factory=list)


@dataclass
class Project:
    tempo: int = DEFAULT_TEMPO
    master_volume: int = 100
    master_pitch: int = 0
    time_signature: tuple[int, int] = (4, 4)
    tracks: list[Track] = field(default_factory=list)
    is_playing: bool = False
    is_paused: bool = False
    file_name: Optional[str] = None

    @property
    def length_bars(self) -> int:
        end = max(
            (clip.position + clip.length for t in self.tracks for clip in t.clips),
            default=0,
        )
        return math.ceil(end / TICKS_PER_BAR)


class InMemoryHost:
    """
    ``HostAdapter`` backed by an in-memory ``Project``.

    Usage:
        host = InMemoryHost(Project(tempo=120))
        index = host.create_track("instrument")
        clip = host.get_or_create_midi_clip(index, 0)
        host.add_note(clip, {"key": 60, "position": 0, "length": 48, "volume": 100})
    """

    def __init__(
        self,
        project: Optional[Project] = None,
        *,
        samples: Optional[SampleLibrary] = None,
    ) -> None:
        self.project: Optional[Project] = project if project is not None else Project()
        self.samples = samples or SampleLibrary(
            [settings.factory_samples_dir, settings.user_samples_dir]
        )

    def _require_project(self) -> Project:
        if self.project is None:
            raise RuntimeError("No project loaded")
        return self.project

    def _track(self, index: int) -> Track:
        tracks = self._require_project().tracks
        if index < 0 or index >= len(tracks):
            raise IndexError(f"Invalid track index: {index}")
        return tracks[index]

    def has_project(self) -> bool:
        return self.project is not None

    # =========================================================================
    # Tempo
    # =========================================================================

    def get_tempo(self) -> int:
        return self._require_project().tempo

    def set_tempo(self, bpm: int) -> None:
        self._require_project().tempo = bpm
        logger.debug(f"🎚️ Tempo -> {bpm} BPM")

    # =========================================================================
    # Tracks
    # =========================================================================

    def list_tracks(self) -> list[TrackInfo]:
        out: list[TrackInfo] = []
        for i, track in enumerate(self._require_project().tracks):
            info = TrackInfo(
                index=i,
                name=track.name,
                type=track.kind,
                muted=track.muted,
                solo=track.solo,
            )
            if track.kind == "instrument" and track.instrument:
                info["instrument"] = track.instrument
            out.append(info)
        return out

    def create_track(self, kind: TrackKind) -> int:
        project = self._require_project()
        same_kind = sum(1 for t in project.tracks if t.kind == kind)
        track = Track(name=f"{kind.capitalize()} Track {same_kind + 1}", kind=kind)
        if kind == "instrument":
            track.instrument = DEFAULT_INSTRUMENT
        project.tracks.append(track)
        logger.debug(f"➕ Created {kind} track '{track.name}'")
        return len(project.tracks) - 1

    def load_instrument(self, index: int, plugin: str) -> None:
        track = self._track(index)
        if track.kind != "instrument":
            raise ValueError(f"Track '{track.name}' is not an instrument track")
        track.instrument = plugin

    def rename(self, index: int, name: str) -> None:
        self._track(index).name = name

    def set_muted(self, index: int, muted: bool) -> None:
        self._track(index).muted = muted

    def remove(self, index: int) -> None:
        self._track(index)
        removed = self._require_project().tracks.pop(index)
        logger.debug(f"🗑️ Removed track '{removed.name}'")

    # =========================================================================
    # Notes
    # =========================================================================

    def get_or_create_midi_clip(self, track_index: int, position_ticks: int) -> MidiClip:
        track = self._track(track_index)
        for clip in track.clips:
            if clip.position == position_ticks:
                return clip
        clip = MidiClip(position=position_ticks)
        track.clips.append(clip)
        track.clips.sort(key=lambda c: c.position)
        return clip

    def add_note(self, clip: MidiClip, note: NoteDict) -> None:
        clip.notes.append(
            Note(
                key=note["key"],
                position=note["position"],
                length=note["length"],
                volume=note["volume"],
            )
        )

    def list_notes(self, track_index: int) -> list[ClipNotes]:
        out: list[ClipNotes] = []
        for clip in self._track(track_index).clips:
            notes = [n.to_dict() for n in clip.notes]
            out.append(
                ClipNotes(
                    position=clip.position,
                    length=clip.length,
                    notes=notes,
                    note_count=len(notes),
                )
            )
        return out

    def clear_notes(self, track_index: int) -> int:
        cleared = 0
        for clip in self._track(track_index).clips:
            cleared += len(clip.notes)
            clip.notes.clear()
        return cleared

    # =========================================================================
    # Samples
    # =========================================================================

    def list_sample_categories(self) -> list[SampleCategory]:
        return self.samples.categories()

    def list_samples(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int,
    ) -> list[SampleInfo]:
        return self.samples.samples(category=category, search=search, limit=limit)

    # =========================================================================
    # Project / transport
    # =========================================================================

    def project_info(self) -> ProjectInfo:
        project = self._require_project()
        numerator, denominator = project.time_signature
        info = ProjectInfo(
            tempo=project.tempo,
            master_volume=project.master_volume,
            master_pitch=project.master_pitch,
            is_playing=project.is_playing,
            is_paused=project.is_paused,
            track_count=len(project.tracks),
            length_bars=project.length_bars,
            time_signature={"numerator": numerator, "denominator": denominator},
        )
        if project.file_name:
            info["file_name"] = project.file_name
        return info

    def is_playing(self) -> bool:
        return self._require_project().is_playing

    def play(self) -> None:
        project = self._require_project()
        project.is_playing = True
        project.is_paused = False

    def stop(self) -> None:
        project = self._require_project()
        project.is_playing = False
        project.is_paused = False

