# src/niceranking/ranking_grid/ranking_layout_config.py
"""
Ranking layout persistence (platformdirs + JSON).

Persisted items (schema v1):
- layouts: named provider dumps (rankings, selection, aggregations)
- active: name of the layout shown last

Behavior:
- If config file missing or unreadable -> defaults are used
- If schema_version mismatches:
  - default: reset to defaults
  - optional: keep loaded but update version
- Unknown keys in loaded JSON are ignored with warnings

Design:
- RankingLayoutConfigData dataclass holds JSON-friendly data
- RankingLayoutConfig manager provides explicit API for load/save
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

from niceranking.provider.local_data_provider import LocalDataProvider
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

# Increment when you make a breaking change to the on-disk JSON schema.
SCHEMA_VERSION: int = 1


@dataclass
class RankingLayoutConfigData:
    """
    JSON-serializable config payload.

    Schema v1:
    - layouts: Dict[str, Dict[str, Any]] - layout name -> LocalDataProvider.dump()
    - active: Optional[str] - last applied layout name
    """
    schema_version: int = SCHEMA_VERSION
    layouts: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    active: Optional[str] = None

    def to_json_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "schema_version": self.schema_version,
            "layouts": self.layouts,
            "active": self.active,
        }

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "RankingLayoutConfigData":
        """
        Tolerant loader:
        - ignores unknown keys
        - drops layouts that are not dicts
        - clears ``active`` when it names no stored layout
        """
        schema_version = int(d.get("schema_version", -1))

        layouts: Dict[str, Dict[str, Any]] = {}
        layouts_raw = d.get("layouts", {})
        if isinstance(layouts_raw, dict):
            for name, dump in layouts_raw.items():
                if isinstance(dump, dict):
                    layouts[str(name)] = dump
                else:
                    logger.warning(f"Layout '{name}' is not a dict, ignoring")
        else:
            logger.warning("layouts is not a dict, using empty dict")

        active = d.get("active")
        if active is not None and str(active) not in layouts:
            logger.warning(f"Active layout '{active}' not found, clearing")
            active = None

        known_keys = {"schema_version", "layouts", "active"}
        for key in d.keys():
            if key not in known_keys:
                logger.warning(f"Unknown key '{key}' in ranking layout config, ignoring")

        return cls(
            schema_version=schema_version,
            layouts=layouts,
            active=str(active) if active is not None else None,
        )


class RankingLayoutConfig:
    """
    Manager for loading/saving RankingLayoutConfigData to disk.
    """

    def __init__(self, *, path: Path, data: Optional[RankingLayoutConfigData] = None):
        self.path = path
        self.data = data if data is not None else RankingLayoutConfigData()

    # -----------------------------
    # Construction / persistence
    # -----------------------------
    @staticmethod
    def default_config_path(
        app_name: str = "niceranking",
        filename: str = "ranking_layouts.json",
        app_author: str | None = None,
    ) -> Path:
        """
        Determine OS-appropriate per-user config path.

        macOS:   ~/Library/Application Support/niceranking/ranking_layouts.json
        Linux:   ~/.config/niceranking/ranking_layouts.json
        Windows: %APPDATA%\\niceranking\\ranking_layouts.json
        """
        d = Path(user_config_dir(app_name, app_author))
        d.mkdir(parents=True, exist_ok=True)
        return d / filename

    @classmethod
    def load(
        cls,
        *,
        config_path: Optional[Path] = None,
        app_name: str = "niceranking",
        filename: str = "ranking_layouts.json",
        app_author: str | None = None,
        schema_version: int = SCHEMA_VERSION,
        reset_on_version_mismatch: bool = True,
        create_if_missing: bool = False,
    ) -> "RankingLayoutConfig":
        """
        Load config from disk.

        If file doesn't exist or is unreadable -> defaults.
        If schema mismatch:
          - reset_on_version_mismatch=True -> defaults
          - else -> keep loaded but overwrite schema_version

        If create_if_missing=True and file is missing -> immediately write defaults.
        """
        path = config_path or cls.default_config_path(app_name=app_name, filename=filename, app_author=app_author)
        default_data = RankingLayoutConfigData(schema_version=schema_version)

        try:
            raw = path.read_text(encoding="utf-8")
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                logger.warning(f"Ranking layout config file at {path} does not contain a dict, using defaults")
                return cls(path=path, data=default_data)

            loaded = RankingLayoutConfigData.from_json_dict(parsed)

            if int(loaded.schema_version) != int(schema_version):
                if reset_on_version_mismatch:
                    logger.warning(
                        f"Ranking layout config schema version mismatch: loaded={loaded.schema_version}, "
                        f"expected={schema_version}, resetting to defaults"
                    )
                    cfg = cls(path=path, data=default_data)
                    if create_if_missing:
                        cfg.save()
                    return cfg
                loaded.schema_version = int(schema_version)

            return cls(path=path, data=loaded)
        except FileNotFoundError:
            logger.debug(f"Ranking layout config file not found at {path}, using defaults")
            cfg = cls(path=path, data=default_data)
            if create_if_missing:
                cfg.save()
            return cfg
        except json.JSONDecodeError as e:
            logger.warning(f"Ranking layout config file at {path} is not valid JSON: {e}, using defaults")
            return cls(path=path, data=default_data)
        except Exception as e:
            logger.warning(f"Error loading ranking layout config from {path}: {e}, using defaults")
            return cls(path=path, data=default_data)

    def save(self) -> None:
        """Write config to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            json_str = json.dumps(self.data.to_json_dict(), indent=2)
            self.path.write_text(json_str, encoding="utf-8")
            logger.info(f"Saved ranking layout config to {self.path}")
        except Exception as e:
            logger.error(f"Error saving ranking layout config to {self.path}: {e}")
            raise

    def layout_names(self) -> list[str]:
        return sorted(self.data.layouts)

    def get_active(self) -> Optional[str]:
        return self.data.active

    def store(self, name: str, provider: LocalDataProvider) -> None:
        """Capture the provider's rankings under ``name`` and make it active."""
        self.data.layouts[name] = provider.dump()
        self.data.active = name

    def apply(self, name: str, provider: LocalDataProvider) -> bool:
        """Restore a stored layout into ``provider``; False if ``name`` is unknown."""
        dump = self.data.layouts.get(name)
        if dump is None:
            logger.warning(f"No ranking layout named '{name}'")
            return False
        provider.restore(dump)
        self.data.active = name
        return True

    def delete(self, name: str) -> bool:
        if self.data.layouts.pop(name, None) is None:
            return False
        if self.data.active == name:
            self.data.active = None
        return True
