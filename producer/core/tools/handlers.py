"""Tool handlers bound to a ``HostAdapter``.

Each handler takes the parsed argument object, validates presence and range
of every field it uses, and returns a JSON object with a human-readable
``message``.  Validation failures raise ``ToolRejected`` so the registry
reports the text to the model verbatim.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from producer.config import (
    DEFAULT_NOTE_VOLUME,
    DEFAULT_SAMPLE_LIMIT,
    MAX_MIDI_KEY,
    MAX_NOTE_VOLUME,
    MAX_TEMPO,
    MIN_MIDI_KEY,
    MIN_NOTE_VOLUME,
    MIN_TEMPO,
)
from producer.contracts.host_types import NoteDict, TrackInfo, TrackKind
from producer.contracts.json_types import JSONObject, JSONValue, jint
from producer.core.tools.definitions import ALL_TOOLS
from producer.core.tools.registry import ToolHandler, ToolRegistry
from producer.daw.ports import HostAdapter
from producer.errors import ToolRejected

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _require(args: JSONObject, *names: str) -> None:
    missing = [n for n in names if n not in args or args[n] is None]
    if len(missing) == 1:
        raise ToolRejected(f"Missing required parameter: {missing[0]}")
    if missing:
        raise ToolRejected(f"Missing required parameters: {', '.join(missing)}")


def _int_arg(args: JSONObject, name: str, default: int | None = None) -> int:
    """Integer argument; ``default`` applies only when the key is absent."""
    if name not in args or args[name] is None:
        if default is None:
            raise ToolRejected(f"Missing required parameter: {name}")
        return default
    value = jint(args[name])
    if value is None:
        raise ToolRejected(f"Parameter '{name}' must be an integer")
    return value


def _str_arg(args: JSONObject, name: str) -> str:
    """Optional string argument; non-strings and blanks read as empty."""
    value = args.get(name)
    return value.strip() if isinstance(value, str) else ""


class HostTools:
    """The initial tool set, one method per tool name."""

    def __init__(self, host: HostAdapter) -> None:
        self.host = host

    # -- shared checks ----------------------------------------------------------

    def _require_project(self) -> None:
        if not self.host.has_project():
            raise ToolRejected("No project loaded")

    def _track(self, index: int) -> TrackInfo:
        tracks = self.host.list_tracks()
        if index < 0 or index >= len(tracks):
            raise ToolRejected(f"Invalid track index: {index}")
        return tracks[index]

    def _instrument_track(self, index: int) -> TrackInfo:
        track = self._track(index)
        if track["type"] != "instrument":
            raise ToolRejected("Track is not an instrument track")
        return track

    # -- tempo ------------------------------------------------------------------

    def get_tempo(self, args: JSONObject) -> JSONObject:
        self._require_project()
        bpm = self.host.get_tempo()
        return {"bpm": bpm, "message": f"Current tempo is {bpm} BPM"}

    def set_tempo(self, args: JSONObject) -> JSONObject:
        self._require_project()
        bpm = _int_arg(args, "bpm")
        if bpm < MIN_TEMPO or bpm > MAX_TEMPO:
            raise ToolRejected(f"BPM must be between {MIN_TEMPO} and {MAX_TEMPO}, got {bpm}")
        self.host.set_tempo(bpm)
        return {"success": True, "bpm": bpm, "message": f"Tempo set to {bpm} BPM"}

    # -- tracks -----------------------------------------------------------------

    def list_tracks(self, args: JSONObject) -> JSONObject:
        self._require_project()
        tracks: list[JSONValue] = [dict(t) for t in self.host.list_tracks()]
        return {"tracks": tracks, "count": len(tracks)}

    def _create(self, kind: TrackKind, args: JSONObject) -> tuple[int, str]:
        index = self.host.create_track(kind)
        name = _str_arg(args, "name")
        if name:
            self.host.rename(index, name)
        return index, self._track(index)["name"]

    def add_instrument_track(self, args: JSONObject) -> JSONObject:
        self._require_project()
        index, name = self._create("instrument", args)
        instrument = _str_arg(args, "instrument")
        if instrument:
            self.host.load_instrument(index, instrument)
        return {
            "success": True,
            "track_index": index,
            "name": name,
            "message": f"Created instrument track: {name}",
        }

    def add_sample_track(self, args: JSONObject) -> JSONObject:
        self._require_project()
        index, name = self._create("sample", args)
        return {
            "success": True,
            "track_index": index,
            "name": name,
            "message": f"Created sample track: {name}",
        }

    def set_track_name(self, args: JSONObject) -> JSONObject:
        self._require_project()
        _require(args, "track_index", "name")
        index = _int_arg(args, "track_index")
        name = args["name"]
        if not isinstance(name, str):
            raise ToolRejected("Parameter 'name' must be a string")
        old_name = self._track(index)["name"]
        self.host.rename(index, name)
        return {
            "success": True,
            "old_name": old_name,
            "new_name": name,
            "message": f"Renamed track from '{old_name}' to '{name}'",
        }

    def set_track_muted(self, args: JSONObject) -> JSONObject:
        self._require_project()
        _require(args, "track_index", "muted")
        index = _int_arg(args, "track_index")
        muted = args["muted"]
        if not isinstance(muted, bool):
            raise ToolRejected("Parameter 'muted' must be a boolean")
        track = self._track(index)
        self.host.set_muted(index, muted)
        state = "muted" if muted else "unmuted"
        return {
            "success": True,
            "track_index": index,
            "muted": muted,
            "message": f"Track '{track['name']}' is now {state}",
        }

    def remove_track(self, args: JSONObject) -> JSONObject:
        self._require_project()
        index = _int_arg(args, "track_index")
        name = self._track(index)["name"]
        self.host.remove(index)
        return {"success": True, "message": f"Removed track: {name}"}

    # -- samples ----------------------------------------------------------------

    def list_samples(self, args: JSONObject) -> JSONObject:
        limit = _int_arg(args, "limit", DEFAULT_SAMPLE_LIMIT)
        if limit < 1:
            raise ToolRejected(f"Parameter 'limit' must be positive, got {limit}")
        samples = self.host.list_samples(
            category=_str_arg(args, "category") or None,
            search=_str_arg(args, "search") or None,
            limit=limit,
        )
        result: JSONObject = {"samples": [dict(s) for s in samples], "count": len(samples)}
        if len(samples) >= limit:
            result["note"] = f"Results limited to {limit}. Use filters to narrow down."
        return result

    def get_sample_categories(self, args: JSONObject) -> JSONObject:
        categories: list[JSONValue] = [dict(c) for c in self.host.list_sample_categories()]
        return {"categories": categories, "count": len(categories)}

    # -- notes ------------------------------------------------------------------

    def add_notes_to_track(self, args: JSONObject) -> JSONObject:
        self._require_project()
        _require(args, "track_index", "notes")
        index = _int_arg(args, "track_index")
        clip_position = _int_arg(args, "clip_position", 0)
        notes = args["notes"]
        if not isinstance(notes, list):
            raise ToolRejected("Parameter 'notes' must be an array")
        if clip_position < 0:
            raise ToolRejected(f"Parameter 'clip_position' must not be negative, got {clip_position}")
        track = self._instrument_track(index)

        clip = self.host.get_or_create_midi_clip(index, clip_position)
        added = 0
        skipped = 0
        for raw in notes:
            note = _parse_note(raw)
            if note is None:
                skipped += 1
                continue
            self.host.add_note(clip, note)
            added += 1

        if skipped:
            logger.info(f"🎹 Skipped {skipped} invalid note(s) for track '{track['name']}'")
        result: JSONObject = {
            "success": True,
            "notes_added": added,
            "track": track["name"],
            "message": f"Added {added} notes to track '{track['name']}'",
        }
        if skipped:
            result["notes_skipped"] = skipped
        return result

    def get_track_notes(self, args: JSONObject) -> JSONObject:
        self._require_project()
        index = _int_arg(args, "track_index")
        track = self._instrument_track(index)
        clips: list[JSONValue] = []
        for clip in self.host.list_notes(index):
            clips.append(
                {
                    "position": clip["position"],
                    "length": clip["length"],
                    "notes": [dict(n) for n in clip["notes"]],
                    "note_count": clip["note_count"],
                }
            )
        return {"track": track["name"], "clips": clips, "clip_count": len(clips)}

    def clear_track_notes(self, args: JSONObject) -> JSONObject:
        self._require_project()
        index = _int_arg(args, "track_index")
        track = self._instrument_track(index)
        cleared = self.host.clear_notes(index)
        return {
            "success": True,
            "notes_cleared": cleared,
            "track": track["name"],
            "message": f"Cleared {cleared} notes from track '{track['name']}'",
        }

    # -- project / transport ----------------------------------------------------

    def get_project_info(self, args: JSONObject) -> JSONObject:
        self._require_project()
        info = self.host.project_info()
        result: JSONObject = {k: v for k, v in info.items() if k != "time_signature"}
        sig = info["time_signature"]
        result["time_signature"] = {"numerator": sig["numerator"], "denominator": sig["denominator"]}
        result["message"] = (
            f"{info['track_count']} tracks at {info['tempo']} BPM, "
            f"{sig['numerator']}/{sig['denominator']}"
        )
        return result

    def play_project(self, args: JSONObject) -> JSONObject:
        self._require_project()
        if self.host.is_playing():
            return {"status": "already_playing", "message": "Project is already playing"}
        self.host.play()
        return {"status": "playing", "message": "Project playback started"}

    def stop_project(self, args: JSONObject) -> JSONObject:
        self._require_project()
        self.host.stop()
        return {"status": "stopped", "message": "Project playback stopped"}

    def handlers(self) -> dict[str, ToolHandler]:
        """Map every tool name in ``ALL_TOOLS`` to its bound method."""
        out: dict[str, ToolHandler] = {}
        for schema in ALL_TOOLS:
            name = schema["function"]["name"]
            method: Callable[[JSONObject], JSONObject] = getattr(self, name)
            out[name] = method
        return out


def _parse_note(raw: JSONValue) -> NoteDict | None:
    """Validate one note object; None when it must be skipped."""
    if not isinstance(raw, dict):
        return None
    key = jint(raw.get("key"))
    position = jint(raw.get("position"))
    length = jint(raw.get("length"))
    volume = jint(raw["volume"]) if "volume" in raw else DEFAULT_NOTE_VOLUME
    if key is None or position is None or length is None or volume is None:
        return None
    if key < MIN_MIDI_KEY or key > MAX_MIDI_KEY:
        return None
    if volume < MIN_NOTE_VOLUME or volume > MAX_NOTE_VOLUME:
        return None
    if position < 0 or length <= 0:
        return None
    return NoteDict(key=key, position=position, length=length, volume=volume)


def build_registry(host: HostAdapter) -> ToolRegistry:
    """Registry with the initial tool set bound to ``host``."""
    registry = ToolRegistry()
    handlers = HostTools(host).handlers()
    for schema in ALL_TOOLS:
        fn = schema["function"]
        registry.register(fn["name"], fn["description"], fn["parameters"], handlers[fn["name"]])
    logger.debug(f"🧰 Registered {len(registry)} tools")
    return registry
