"""
Tool definitions in OpenAI tool schema format.

Tools are grouped by the part of the project they touch:
  * Tempo     : read / set the project BPM
  * Tracks    : list, create, rename, mute, remove
  * Samples   : browse the sample library
  * Notes     : add / list / clear MIDI notes on instrument tracks
  * Project   : metadata and transport (play / stop)

Handlers live in ``producer.core.tools.handlers``; every schema here must
have exactly one handler there.
"""

from __future__ import annotations

from producer.contracts.llm_types import ToolParametersDict, ToolSchemaDict


def _no_params() -> ToolParametersDict:
    return {"type": "object", "properties": {}, "required": []}


def _track_index_only(description: str = "Index of the track (0-based)") -> ToolParametersDict:
    return {
        "type": "object",
        "properties": {"track_index": {"type": "integer", "description": description}},
        "required": ["track_index"],
    }


# ---- Tempo -------------------------------------------------------------------
TEMPO_TOOLS: list[ToolSchemaDict] = [
    {
        "type": "function",
        "function": {
            "name": "get_tempo",
            "description": "Get the current tempo (BPM) of the project",
            "parameters": _no_params(),
        },
    },
    {
        "type": "function",
        "function": {
            "name": "set_tempo",
            "description": "Set the tempo (BPM) of the project. Valid range is 10-999 BPM.",
            "parameters": {
                "type": "object",
                "properties": {
                    "bpm": {
                        "type": "integer",
                        "description": "The tempo in beats per minute (10-999)",
                        "minimum": 10,
                        "maximum": 999,
                    },
                },
                "required": ["bpm"],
            },
        },
    },
]


# ---- Tracks ------------------------------------------------------------------
TRACK_TOOLS: list[ToolSchemaDict] = [
    {
        "type": "function",
        "function": {
            "name": "list_tracks",
            "description": "List all tracks in the current project with their type, name, and status",
            "parameters": _no_params(),
        },
    },
    {
        "type": "function",
        "function": {
            "name": "add_instrument_track",
            "description": "Add a new instrument track to the project",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Name for the new track (optional)"},
                    "instrument": {
                        "type": "string",
                        "description": "Instrument plugin to load (e.g., 'tripleoscillator', 'sf2player'). Optional.",
                    },
                },
                "required": [],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "add_sample_track",
            "description": "Add a new sample track to the project for audio samples",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Name for the new track (optional)"},
                },
                "required": [],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "set_track_name",
            "description": "Set the name of a track",
            "parameters": {
                "type": "object",
                "properties": {
                    "track_index": {"type": "integer", "description": "Index of the track (0-based)"},
                    "name": {"type": "string", "description": "New name for the track"},
                },
                "required": ["track_index", "name"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "set_track_muted",
            "description": "Mute or unmute a track",
            "parameters": {
                "type": "object",
                "properties": {
                    "track_index": {"type": "integer", "description": "Index of the track (0-based)"},
                    "muted": {"type": "boolean", "description": "True to mute, false to unmute"},
                },
                "required": ["track_index", "muted"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "remove_track",
            "description": "Remove a track from the project",
            "parameters": _track_index_only(),
        },
    },
]


# ---- Samples -----------------------------------------------------------------
SAMPLE_TOOLS: list[ToolSchemaDict] = [
    {
        "type": "function",
        "function": {
            "name": "list_samples",
            "description": "List available audio samples, optionally filtered by category or search term",
            "parameters": {
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "description": "Category to filter by (e.g., 'drums', 'bass', 'percussion')",
                    },
                    "search": {"type": "string", "description": "Search term to filter sample names"},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of samples to return (default 20)",
                    },
                },
                "required": [],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_sample_categories",
            "description": "Get a list of available sample categories/folders",
            "parameters": _no_params(),
        },
    },
]


# ---- Notes -------------------------------------------------------------------
NOTE_TOOLS: list[ToolSchemaDict] = [
    {
        "type": "function",
        "function": {
            "name": "add_notes_to_track",
            "description": "Add MIDI notes to an instrument track. Creates a clip if needed.",
            "parameters": {
                "type": "object",
                "properties": {
                    "track_index": {
                        "type": "integer",
                        "description": "Index of the instrument track (0-based)",
                    },
                    "notes": {
                        "type": "array",
                        "description": "Array of notes to add",
                        "items": {
                            "type": "object",
                            "properties": {
                                "key": {
                                    "type": "integer",
                                    "description": "MIDI key number (0-127, where 60 is middle C)",
                                },
                                "position": {
                                    "type": "integer",
                                    "description": "Position in ticks from start of clip (48 ticks = 1 beat at default)",
                                },
                                "length": {
                                    "type": "integer",
                                    "description": "Note length in ticks (48 = quarter note, 24 = eighth note, etc.)",
                                },
                                "volume": {
                                    "type": "integer",
                                    "description": "Note volume (0-100, default 100)",
                                },
                            },
                            "required": ["key", "position", "length"],
                        },
                    },
                    "clip_position": {
                        "type": "integer",
                        "description": "Position of the clip in ticks (default 0)",
                    },
                },
                "required": ["track_index", "notes"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_track_notes",
            "description": "Get all notes from a track's clips",
            "parameters": _track_index_only(),
        },
    },
    {
        "type": "function",
        "function": {
            "name": "clear_track_notes",
            "description": "Clear all notes from a track",
            "parameters": _track_index_only(),
        },
    },
]


# ---- Project / transport -----------------------------------------------------
PROJECT_TOOLS: list[ToolSchemaDict] = [
    {
        "type": "function",
        "function": {
            "name": "get_project_info",
            "description": "Get information about the current project",
            "parameters": _no_params(),
        },
    },
    {
        "type": "function",
        "function": {
            "name": "play_project",
            "description": "Start playing the project",
            "parameters": _no_params(),
        },
    },
    {
        "type": "function",
        "function": {
            "name": "stop_project",
            "description": "Stop playing the project",
            "parameters": _no_params(),
        },
    },
]


ALL_TOOLS: list[ToolSchemaDict] = TEMPO_TOOLS + TRACK_TOOLS + SAMPLE_TOOLS + NOTE_TOOLS + PROJECT_TOOLS
