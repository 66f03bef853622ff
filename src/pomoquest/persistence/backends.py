# src/pomoquest/persistence/backends.py

"""
External file backends.

Both classes implement core.ports.FileBackend:
- PathFileBackend: plain filesystem paths; a remembered path can be reopened
  in a later session (supports_reconnect = True).
- HandleFileBackend: access goes through FileHandle objects granted by the
  picker; handles do not survive the session (supports_reconnect = False).

Blocking work (picker prompts, disk I/O) runs in a worker thread so the event
loop is never blocked. Failures surface as FileAccessError.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..core.ports import Picker
from ..errors import FileAccessError

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "pomoquest-data.json"


def _read_text(path: Path) -> str:
    return path.read_text("utf-8")


def _write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, "utf-8")
    os.replace(tmp, path)


def _clean_answer(answer: str | None) -> str | None:
    if answer is None:
        return None
    answer = answer.strip().strip('"').strip("'")
    return answer or None


class PathFileBackend:
    supports_reconnect = True

    def __init__(self, picker: Picker) -> None:
        self._picker = picker

    async def pick_open_target(self) -> Path | None:
        answer = _clean_answer(await asyncio.to_thread(self._picker, "Open JSON file: "))
        return Path(answer).expanduser() if answer else None

    async def pick_save_target(self) -> Path | None:
        answer = _clean_answer(await asyncio.to_thread(self._picker, f"Save JSON file as [{DEFAULT_FILE_NAME}]: "))
        if answer is None:
            return None
        path = Path(answer).expanduser()
        if path.is_dir():
            path = path / DEFAULT_FILE_NAME
        return path

    async def read_file(self, target: Path) -> str:
        try:
            return await asyncio.to_thread(_read_text, Path(target))
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(f"cannot read {target}: {e}") from e

    async def write_file(self, target: Path, text: str) -> None:
        try:
            await asyncio.to_thread(_write_text_atomic, Path(target), text)
        except OSError as e:
            raise FileAccessError(f"cannot write {target}: {e}") from e

    async def exists(self, target: Path) -> bool:
        return await asyncio.to_thread(Path(target).is_file)

    def describe(self, target: Path) -> str:
        return str(Path(target).resolve())

    def target_from_record(self, record: str) -> Path | None:
        return Path(record) if record else None


@dataclass(frozen=True, slots=True)
class FileHandle:
    """Capability for one file, granted by the picker for this session only."""

    name: str
    path: Path
    writable: bool


class HandleFileBackend:
    supports_reconnect = False

    def __init__(self, picker: Picker) -> None:
        self._picker = picker

    async def pick_open_target(self) -> FileHandle | None:
        answer = _clean_answer(await asyncio.to_thread(self._picker, "Open JSON file: "))
        if answer is None:
            return None
        path = Path(answer).expanduser()
        # Same as a browser picker: the handle is read/write once granted.
        return FileHandle(name=path.name, path=path, writable=True)

    async def pick_save_target(self) -> FileHandle | None:
        answer = _clean_answer(await asyncio.to_thread(self._picker, f"Save JSON file as [{DEFAULT_FILE_NAME}]: "))
        if answer is None:
            return None
        path = Path(answer).expanduser()
        if path.is_dir():
            path = path / DEFAULT_FILE_NAME
        return FileHandle(name=path.name, path=path, writable=True)

    async def read_file(self, target: FileHandle) -> str:
        try:
            return await asyncio.to_thread(_read_text, target.path)
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(f"cannot read {target.name}: {e}") from e

    async def write_file(self, target: FileHandle, text: str) -> None:
        if not target.writable:
            raise FileAccessError(f"no write permission for {target.name}")
        try:
            await asyncio.to_thread(_write_text_atomic, target.path, text)
        except OSError as e:
            raise FileAccessError(f"cannot write {target.name}: {e}") from e

    async def exists(self, target: FileHandle) -> bool:
        return await asyncio.to_thread(target.path.is_file)

    def describe(self, target: FileHandle) -> str:
        return target.name

    def target_from_record(self, record: str) -> FileHandle | None:
        # Handles cannot be recreated from a name in a new session.
        return None


def create_backend(kind: str, picker: Picker) -> PathFileBackend | HandleFileBackend:
    if kind == "handle":
        return HandleFileBackend(picker)
    return PathFileBackend(picker)
