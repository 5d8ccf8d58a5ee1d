"""
movsim — Program Storage Port + Adapters

The core only needs four operations from storage:

    save(name, image)      store a 100-cell memory image
    load(name) -> image    None when nothing is stored under name
    list_names()           saved names, sorted
    delete(name)           no-op for unknown names

name=None means the default slot (config.DEFAULT_SLOT), the image the
session autosaves after every change.

Persisted scope: the FULL 100-cell image (registers, RAM and ROM).

JsonFileStorage writes one <name>.json per image:

    {
      "format": 1,
      "saved_at": "2026-01-19T10:22:31",
      "cells": [0, 50, 42, ...]            # 100 ints, 0-9999
    }

Older ROM-only documents carry "rom": [50 ints] instead of "cells"; they
load on top of the demo register seed (A=42, B=10, C=1, PC=50).
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .config import DEFAULT_SLOT, IMAGE_FORMAT_VERSION
from .cpu.regs import HALT, MEM_SIZE, PC, ROM_START
from .errors import InvalidValue, StorageError
from .mem.memory import DEMO_SEED, MemorySnapshot, check_cell, initial_memory

log = logging.getLogger(__name__)

_NAME_RE = re.compile(r'^[A-Za-z0-9_.\-]+$')


def check_name(name: Optional[str]) -> str:
    """Resolve None to the default slot and reject unsafe names."""
    if name is None:
        return DEFAULT_SLOT
    if not isinstance(name, str) or not _NAME_RE.match(name) or name.startswith('.'):
        raise StorageError(f"Invalid program name: {name!r} (use letters, digits, '_', '-', '.')")
    return name


def _validated_image(image: Sequence[int]) -> List[int]:
    try:
        cells = MemorySnapshot(image).to_list()
        check_cell(HALT, cells[HALT])
        check_cell(PC, cells[PC])
        return cells
    except (InvalidValue, TypeError) as e:
        raise StorageError(f"Invalid memory image: {e}") from e


class Storage(ABC):
    """Key/value store for memory images."""

    @abstractmethod
    def save(self, name: Optional[str], image: Sequence[int]):
        """Store a 100-cell image under name."""
        pass

    @abstractmethod
    def load(self, name: Optional[str] = None) -> Optional[List[int]]:
        """Return the image stored under name, or None."""
        pass

    @abstractmethod
    def list_names(self) -> List[str]:
        """Sorted names of all stored images."""
        pass

    @abstractmethod
    def delete(self, name: str):
        """Remove name; unknown names are ignored."""
        pass


class InMemoryStorage(Storage):
    """Dict-backed storage for tests and embedding."""

    def __init__(self):
        self._images: Dict[str, List[int]] = {}

    def save(self, name: Optional[str], image: Sequence[int]):
        self._images[check_name(name)] = _validated_image(image)

    def load(self, name: Optional[str] = None) -> Optional[List[int]]:
        image = self._images.get(check_name(name))
        return list(image) if image is not None else None

    def list_names(self) -> List[str]:
        return sorted(self._images)

    def delete(self, name: str):
        self._images.pop(check_name(name), None)


class JsonFileStorage(Storage):
    """One JSON document per program in a directory."""

    SUFFIX = '.json'

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    def path_for(self, name: Optional[str]) -> Path:
        return self.directory / (check_name(name) + self.SUFFIX)

    def save(self, name: Optional[str], image: Sequence[int]):
        cells = _validated_image(image)
        path = self.path_for(name)

        doc = {
            'format': IMAGE_FORMAT_VERSION,
            'saved_at': datetime.now().isoformat(timespec='seconds'),
            'cells': cells,
        }
        # Write-then-rename so a reader never sees a half-written file
        tmp = path.with_name(path.name + '.tmp')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e
        log.info("saved program '%s' -> %s", path.stem, path)

    def load(self, name: Optional[str] = None) -> Optional[List[int]]:
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                doc = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

        if not isinstance(doc, dict):
            raise StorageError(f"{path}: expected a JSON object")
        if 'cells' in doc:
            image = _validated_image(doc['cells'])
        elif 'rom' in doc:
            image = self._from_rom(doc['rom'], path)
        else:
            raise StorageError(f"{path}: no 'cells' or 'rom' entry")
        log.info("loaded program '%s' <- %s", path.stem, path)
        return image

    def list_names(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob('*' + self.SUFFIX))

    def delete(self, name: str):
        path = self.path_for(name)
        if path.exists():
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Cannot delete {path}: {e}") from e
            log.info("deleted program '%s'", path.stem)

    @staticmethod
    def _from_rom(rom, path: Path) -> List[int]:
        if not isinstance(rom, list) or len(rom) != MEM_SIZE - ROM_START:
            raise StorageError(f"{path}: 'rom' must hold {MEM_SIZE - ROM_START} cells")
        cells = initial_memory(seed=DEMO_SEED, sample=False).to_list()
        cells[ROM_START:] = rom
        return _validated_image(cells)
