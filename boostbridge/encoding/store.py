# boostbridge/encoding/store.py
from __future__ import annotations

import json
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from boostbridge import logs
from boostbridge.encoding.descriptor import CategoricalEncodingDescriptor
from boostbridge.utils.errors import MissingEncodingDescriptor


class DescriptorStore:
    """
    Keyed store for published encoding descriptors.

    A key always names the same descriptor; new training data means a new key.
    """

    def __init__(self):
        self._items: Dict[str, CategoricalEncodingDescriptor] = {}
        self._lock = threading.Lock()

    def put(
            self,
            descriptor: CategoricalEncodingDescriptor,
            key: Optional[str] = None,
    ) -> str:
        key = key or f"encoding_{uuid.uuid4().hex}"
        with self._lock:
            if key in self._items:
                raise ValueError(f"[DescriptorStore] key already published: {key}")
            self._items[key] = descriptor
        logs.info(f"[DescriptorStore] put {key}")
        return key

    def get(self, key: Optional[str]) -> CategoricalEncodingDescriptor:
        with self._lock:
            descriptor = self._items.get(key) if key is not None else None
        if descriptor is None:
            raise MissingEncodingDescriptor(
                f"no encoding descriptor stored under {key!r}; the model cannot score"
            )
        return descriptor

    def remove(self, key: str) -> None:
        with self._lock:
            removed = self._items.pop(key, None)
        if removed is not None:
            logs.info(f"[DescriptorStore] removed {key}")

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # --------------------------------------------------
    # disk
    # --------------------------------------------------
    def save(self, key: str, path: Path) -> Path:
        descriptor = self.get(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps({"key": key, "descriptor": descriptor.to_dict()}, indent=2),
            encoding="utf-8",
        )
        return path

    def load(self, path: Path) -> str:
        if not path.exists():
            raise MissingEncodingDescriptor(f"descriptor file not found: {path}")
        raw = json.loads(path.read_text(encoding="utf-8"))
        descriptor = CategoricalEncodingDescriptor.from_dict(raw["descriptor"])
        return self.put(descriptor, key=raw["key"])
