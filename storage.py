"""State persistence: serialization, merge-with-defaults loading, and stores."""

import base64
import json
import logging
import zlib
from collections.abc import Iterator, MutableMapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from gacha import GlobalState, get_initial_state

logger = logging.getLogger(__name__)


class StorageConfig(BaseModel):
    """Where and how the state is stored."""

    key: str = Field(
        default="endfield-gacha-state", description="Key the state is saved under"
    )
    directory: str = Field(
        default=".gacha_state", description="Directory used by FileStore"
    )
    compress: bool = Field(
        default=True, description="Whether to zlib-compress saved payloads"
    )


def encode_payload(payload: dict, compress: bool = True) -> str:
    """Encode a JSON-compatible dict to a compressed base64 string."""
    raw = json.dumps(payload, ensure_ascii=False).encode()
    if compress:
        raw = zlib.compress(raw, level=9)
    return base64.urlsafe_b64encode(raw).decode()


def decode_payload(encoded: str) -> dict:
    """Decode a payload written by :func:`encode_payload`."""
    compressed = base64.urlsafe_b64decode(encoded.encode())
    try:
        json_str = zlib.decompress(compressed).decode()
    except zlib.error:
        # Uncompressed payload
        json_str = compressed.decode()
    return json.loads(json_str)


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def serialize_state(state: GlobalState, compress: bool = True) -> str:
    return encode_payload(state.model_dump(mode="json"), compress=compress)


def deserialize_state(encoded: str) -> GlobalState:
    """Rebuild a state, filling anything the payload lacks from a fresh state.

    Older payloads may miss banners or counters added later; those take
    their initial values.
    """
    saved = decode_payload(encoded)
    if not isinstance(saved, dict):
        raise ValueError(f"Saved state must be a JSON object, got {type(saved).__name__}")
    defaults = get_initial_state().model_dump(mode="json")
    return GlobalState.model_validate(_deep_merge(defaults, saved))


def load_state(
    store: MutableMapping[str, str], config: Optional[StorageConfig] = None
) -> GlobalState:
    """Load the saved state, or a fresh one if nothing usable is stored."""
    config = config or StorageConfig()
    encoded = store.get(config.key)
    if not encoded:
        return get_initial_state()
    try:
        return deserialize_state(encoded)
    except Exception:
        logger.exception("Failed to load state from %r, starting fresh", config.key)
        return get_initial_state()


def save_state(
    store: MutableMapping[str, str],
    state: GlobalState,
    config: Optional[StorageConfig] = None,
) -> None:
    config = config or StorageConfig()
    store[config.key] = serialize_state(state, compress=config.compress)


def clear_state(
    store: MutableMapping[str, str], config: Optional[StorageConfig] = None
) -> None:
    config = config or StorageConfig()
    store.pop(config.key, None)


class FileStore(MutableMapping):
    """A string key-value store keeping one file per key in a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / key

    def __getitem__(self, key: str) -> str:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        return path.read_text(encoding="utf-8")

    def __setitem__(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def __delitem__(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        path.unlink()

    def __iter__(self) -> Iterator[str]:
        if not self.directory.is_dir():
            return iter(())
        return iter(sorted(p.name for p in self.directory.iterdir() if p.is_file()))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @classmethod
    def from_config(cls, config: StorageConfig) -> "FileStore":
        return cls(config.directory)
