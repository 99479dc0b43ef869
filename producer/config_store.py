"""Persisted agent settings.

Reads and writes the user's ``config.toml``: the only two settings the
settings dialog exposes:

- ``[agent] apikey``: OpenRouter API key (NEVER logged).
- ``[agent] model``: selected model id, e.g. ``anthropic/claude-4-5-sonnet``.

Security note: the file holds a secret; it is written with user-only
permissions where the platform supports it.
"""
from __future__ import annotations

import logging
import pathlib
import tomllib

from producer.config import settings

logger = logging.getLogger(__name__)

_AGENT_SECTION = "agent"
_APIKEY_KEY = "apikey"
_MODEL_KEY = "model"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_config(config_path: pathlib.Path) -> dict[str, object]:
    """Load and parse config.toml; return empty dict if absent or unreadable."""
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as fh:
            return tomllib.load(fh)
    except Exception as exc:  # noqa: BLE001
        logger.warning("⚠️ Failed to parse %s: %s", config_path, exc)
        return {}


def _dump_toml(data: dict[str, object]) -> str:
    """Serialize a one-level TOML dict (tables of scalar values) to text.

    The ``[agent]`` section is always written first so the file is stable.
    Values other than strings are written with ``repr`` (ints, floats).
    """
    lines: list[str] = []

    def _write_table(heading: str, mapping: dict[str, object]) -> None:
        lines.append(f"[{heading}]")
        for key, val in mapping.items():
            if isinstance(val, str):
                escaped = val.replace("\\", "\\\\").replace('"', '\\"')
                lines.append(f'{key} = "{escaped}"')
            elif isinstance(val, bool):
                lines.append(f"{key} = {'true' if val else 'false'}")
            else:
                lines.append(f"{key} = {val!r}")
        lines.append("")

    if _AGENT_SECTION in data and isinstance(data[_AGENT_SECTION], dict):
        _write_table(_AGENT_SECTION, data[_AGENT_SECTION])

    for key, val in data.items():
        if key == _AGENT_SECTION:
            continue
        if isinstance(val, dict):
            _write_table(key, val)

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class AgentConfig:
    """Section/key store over ``config.toml`` with typed agent accessors.

    Every write goes straight to disk so that a crash never loses a saved
    key. All access happens on the main thread; no locking is done.
    """

    def __init__(self, path: pathlib.Path | None = None, *, default_model: str | None = None) -> None:
        self.path = path or settings.config_path
        self._default_model = default_model or settings.default_model

    def value(self, section: str, key: str, default: str = "") -> str:
        """Return ``[section] key`` as a string, or ``default`` when unset."""
        data = _load_config(self.path)
        table = data.get(section, {})
        raw: object = table.get(key, default) if isinstance(table, dict) else default
        return raw if isinstance(raw, str) else default

    def set_value(self, section: str, key: str, value: str) -> None:
        """Write ``[section] key = value``, creating the file if needed."""
        data = _load_config(self.path)
        table = data.get(section)
        if not isinstance(table, dict):
            table = {}
            data[section] = table
        table[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(_dump_toml(data), encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", self.path)

    # -- agent.apikey ---------------------------------------------------------

    @property
    def api_key(self) -> str:
        return self.value(_AGENT_SECTION, _APIKEY_KEY).strip()

    def set_api_key(self, api_key: str) -> None:
        self.set_value(_AGENT_SECTION, _APIKEY_KEY, api_key.strip())
        logger.info("✅ API key saved to %s (Bearer ***)", self.path)

    # -- agent.model ----------------------------------------------------------

    @property
    def model(self) -> str:
        return self.value(_AGENT_SECTION, _MODEL_KEY, self._default_model) or self._default_model

    def set_model(self, model: str) -> None:
        self.set_value(_AGENT_SECTION, _MODEL_KEY, model.strip())
        logger.info("✅ Model set to %s", model)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)
