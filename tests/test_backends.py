# tests/test_backends.py

from __future__ import annotations

from pathlib import Path

import pytest

from pomoquest.errors import FileAccessError
from pomoquest.persistence.backends import (
    DEFAULT_FILE_NAME,
    FileHandle,
    HandleFileBackend,
    PathFileBackend,
    create_backend,
)

from .fakes import FakePicker


@pytest.mark.asyncio
async def test_path_backend_round_trip(tmp_path: Path) -> None:
    target = tmp_path / "sub" / "data.json"
    backend = PathFileBackend(FakePicker([f'"{target}"', str(target)]))

    save_to = await backend.pick_save_target()
    assert save_to == target
    await backend.write_file(save_to, '{"version": 1}\n')
    assert not (tmp_path / "sub" / "data.json.tmp").exists()

    open_from = await backend.pick_open_target()
    assert await backend.exists(open_from)
    assert await backend.read_file(open_from) == '{"version": 1}\n'

    record = backend.describe(open_from)
    assert record == str(target.resolve())
    assert backend.target_from_record(record) == Path(record)
    assert backend.supports_reconnect is True


@pytest.mark.asyncio
async def test_path_backend_cancel_and_errors(tmp_path: Path) -> None:
    picker = FakePicker(["", None, str(tmp_path)])
    backend = PathFileBackend(picker)

    assert await backend.pick_open_target() is None
    assert await backend.pick_save_target() is None
    # A directory answer means "default file name inside it".
    assert await backend.pick_save_target() == tmp_path / DEFAULT_FILE_NAME
    assert len(picker.prompts) == 3

    missing = tmp_path / "missing.json"
    assert await backend.exists(missing) is False
    with pytest.raises(FileAccessError):
        await backend.read_file(missing)


@pytest.mark.asyncio
async def test_handle_backend(tmp_path: Path) -> None:
    path = tmp_path / "data.json"
    backend = HandleFileBackend(FakePicker([str(path)]))

    handle = await backend.pick_save_target()
    assert isinstance(handle, FileHandle)
    await backend.write_file(handle, "{}")
    assert await backend.read_file(handle) == "{}"
    assert backend.describe(handle) == "data.json"

    assert backend.supports_reconnect is False
    assert backend.target_from_record("data.json") is None

    read_only = FileHandle(name="data.json", path=path, writable=False)
    with pytest.raises(FileAccessError):
        await backend.write_file(read_only, "{}")


def test_create_backend_by_kind() -> None:
    picker = FakePicker()
    assert isinstance(create_backend("handle", picker), HandleFileBackend)
    assert isinstance(create_backend("path", picker), PathFileBackend)
