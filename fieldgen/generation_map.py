# File: fieldgen/generation_map.py
"""
fieldgen - Generation Map
==========================
Persisted record of previously generated artifacts::

    {
      "fields": {
        "customfield_10010": {
          "fingerprint": "sha256:…",
          "path": "acme/fields/customfield_10010.py",
          "template": "select"
        }
      },
      "version": 1
    }

Serialization is canonical (sorted keys, 2-space indent, trailing newline)
so re-serializing an unchanged map is byte-identical and version-control
diffs only show real changes.

Loading is tolerant of a missing file (first run) and strict about a
corrupt one: a map that cannot be parsed raises ``MapFileError`` and is
never overwritten.  Entries are never removed automatically.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from fieldgen.errors import MapFileError, WriteError
from fieldgen.models import GenerationMapEntry
from fieldgen.utils import atomic_write, read_bytes_if_exists

logger: logging.Logger = logging.getLogger("fieldgen.generation_map")

MAP_FORMAT_VERSION: int = 1


class GenerationMap:
    """
    In-memory Generation Map, ordered by field id on serialization.

    ``put`` is the only mutator.  The map tracks whether it changed since it
    was loaded or last flushed.
    """

    def __init__(self, entries: Optional[Dict[str, GenerationMapEntry]] = None) -> None:
        self._entries: Dict[str, GenerationMapEntry] = dict(entries or {})
        self._dirty: bool = False

    # -----------------------------------------------------------------
    # Load
    # -----------------------------------------------------------------

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GenerationMap":
        """
        Load the map at *path*.

        Raises:
            MapFileError: If the file exists but is not a valid map.
        """
        map_path: Path = Path(path)
        raw: Optional[bytes] = read_bytes_if_exists(map_path)
        if raw is None:
            if map_path.exists():
                raise MapFileError(str(map_path), "path exists but is not a file")
            logger.info("No generation map at %s; starting empty.", map_path)
            return cls()

        try:
            data: Any = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MapFileError(str(map_path), str(exc)) from exc

        if not isinstance(data, dict) or not isinstance(data.get("fields"), dict):
            raise MapFileError(str(map_path), "expected an object with a 'fields' mapping")

        version: Any = data.get("version", MAP_FORMAT_VERSION)
        if version != MAP_FORMAT_VERSION:
            raise MapFileError(str(map_path), f"unsupported format version {version!r}")

        entries: Dict[str, GenerationMapEntry] = {}
        for field_id, item in data["fields"].items():
            if not isinstance(item, dict):
                raise MapFileError(str(map_path), f"entry {field_id} is not an object")
            if "field_id" in item and item["field_id"] != field_id:
                raise MapFileError(
                    str(map_path),
                    f"entry {field_id} names a different field {item['field_id']!r}",
                )
            try:
                entries[field_id] = GenerationMapEntry.model_validate(
                    {"field_id": field_id, **item}
                )
            except PydanticValidationError as exc:
                raise MapFileError(
                    str(map_path), f"entry {field_id} is invalid: {exc.errors()[0]['msg']}"
                ) from exc

        logger.info("Loaded generation map %s (%d entries).", map_path, len(entries))
        return cls(entries)

    # -----------------------------------------------------------------
    # Access
    # -----------------------------------------------------------------

    def get(self, field_id: str) -> Optional[GenerationMapEntry]:
        return self._entries.get(field_id)

    def put(self, entry: GenerationMapEntry) -> None:
        if self._entries.get(entry.field_id) == entry:
            return
        self._entries[entry.field_id] = entry
        self._dirty = True
        logger.debug("Map entry updated: %s → %s", entry.field_id, entry.path)

    def entries(self) -> List[GenerationMapEntry]:
        return [self._entries[k] for k in sorted(self._entries)]

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    # -----------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": MAP_FORMAT_VERSION,
            "fields": {
                entry.field_id: {
                    "path": entry.path,
                    "template": entry.template,
                    "fingerprint": entry.fingerprint,
                }
                for entry in self.entries()
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    def flush(self, path: Union[str, Path]) -> bool:
        """
        Write the map to *path* atomically.

        Returns True if the file was written, False if its bytes were already
        identical.

        Raises:
            WriteError: If the map cannot be written.
        """
        map_path: Path = Path(path)
        encoded: bytes = self.to_json().encode("utf-8")

        if read_bytes_if_exists(map_path) == encoded:
            self._dirty = False
            logger.debug("Generation map %s already up to date.", map_path)
            return False

        try:
            atomic_write(map_path, encoded)
        except OSError as exc:
            raise WriteError(str(map_path), str(exc)) from exc

        self._dirty = False
        logger.info("Flushed generation map %s (%d entries).", map_path, len(self))
        return True

    def __repr__(self) -> str:
        return f"<GenerationMap {len(self)} entries{' (dirty)' if self._dirty else ''}>"


__all__: List[str] = ["GenerationMap", "MAP_FORMAT_VERSION"]
