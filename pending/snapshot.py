"""Checksummed save payloads, string export and on-disk save slots."""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pending.types import SaveError

if TYPE_CHECKING:
    from pending.game import Game

logger = logging.getLogger(__name__)

SAVE_VERSION = 1
CHECKSUM_KEY = "checksum"


def canonical_json(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def checksum(data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of *data*."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def seal(data: dict[str, Any]) -> dict[str, Any]:
    payload = {k: v for k, v in data.items() if k != CHECKSUM_KEY}
    return {**payload, CHECKSUM_KEY: checksum(payload)}


def verify(data: Any) -> dict[str, Any]:
    """Return the payload of a sealed save. Raises SaveError on any mismatch."""
    if not isinstance(data, dict):
        raise SaveError("save data must be a JSON object")
    expected = data.get(CHECKSUM_KEY)
    if not isinstance(expected, str):
        raise SaveError("save data has no checksum")
    payload = {k: v for k, v in data.items() if k != CHECKSUM_KEY}
    try:
        actual = checksum(payload)
    except (TypeError, ValueError) as exc:
        raise SaveError(f"save data is not serializable: {exc}") from exc
    if actual != expected:
        logger.error("save checksum mismatch: expected %s, got %s", expected, actual)
        raise SaveError("save data corrupted (checksum mismatch)")
    version = payload.get("version")
    if version != SAVE_VERSION:
        raise SaveError(f"unsupported save version {version!r}, expected {SAVE_VERSION}")
    return payload


def encode(data: dict[str, Any]) -> str:
    """Seal *data* and return it as base64 text for export."""
    return base64.b64encode(canonical_json(seal(data)).encode("utf-8")).decode("ascii")


def decode(text: str) -> dict[str, Any]:
    """Inverse of ``encode``. Returns the sealed dict after verifying it."""
    try:
        data = json.loads(base64.b64decode(text, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("cannot decode exported save: %s", exc)
        raise SaveError(f"malformed save string: {exc}") from exc
    verify(data)
    return data


def serialize_rng_state(state: tuple[int, tuple[int, ...], float | None]) -> list[Any]:
    """Convert Random.getstate() to a JSON-compatible list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def deserialize_rng_state(data: list[Any]) -> tuple[int, tuple[int, ...], float | None]:
    version, internalstate, gauss_next = data
    return (version, tuple(internalstate), gauss_next)


class SaveSlots:
    """Numbered save files in one directory. I/O errors propagate to the host."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def path(self, slot: int) -> Path:
        if slot < 0:
            raise ValueError("slot must be non-negative")
        return self._dir / f"slot-{slot}.json"

    def save(self, slot: int, game: Game) -> Path:
        path = self.path(slot)
        self._dir.mkdir(parents=True, exist_ok=True)
        path.write_text(canonical_json(game.snapshot()), encoding="utf-8")
        return path

    def load(self, slot: int, game: Game) -> None:
        """Restore *game* from *slot*. Raises FileNotFoundError or SaveError."""
        text = self.path(slot).read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("save slot %d is not valid JSON: %s", slot, exc)
            raise SaveError(f"save slot {slot} is corrupted") from exc
        game.restore(data)

    def delete(self, slot: int) -> bool:
        path = self.path(slot)
        if not path.exists():
            return False
        path.unlink()
        return True

    def has(self, slot: int) -> bool:
        return self.path(slot).exists()

    def slots(self) -> list[int]:
        if not self._dir.is_dir():
            return []
        found = []
        for path in self._dir.glob("slot-*.json"):
            suffix = path.stem.removeprefix("slot-")
            if suffix.isdigit():
                found.append(int(suffix))
        return sorted(found)
