# tests/test_console.py

from __future__ import annotations

import asyncio
import contextlib

import pytest

from pomoquest.connectors.console_connector import ConsolePicker, run_console_loop, run_timer_ticker


@pytest.mark.asyncio
async def test_console_loop_runs_commands_until_exit(state, monkeypatch, capsys) -> None:
    lines = iter(["/add Buy milk #Personal", "", "Call mom", "/list", "/exit", "/add never"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))

    await run_console_loop(state)

    assert [t.text for t in state.task_store.tasks] == ["Buy milk", "Call mom"]
    out = capsys.readouterr().out
    assert "Added" in out
    assert "Buy milk #Personal" in out
    await state.reconciler.drain()


@pytest.mark.asyncio
async def test_console_loop_stops_on_eof(state, monkeypatch) -> None:
    def _eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    await run_console_loop(state)
    assert state.task_store.tasks == []


def test_console_picker_treats_empty_answer_as_cancel(monkeypatch) -> None:
    answers = iter(["  ", " /tmp/data.json "])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    picker = ConsolePicker()

    assert picker("Open: ") is None
    assert picker("Open: ") == "/tmp/data.json"


@pytest.mark.asyncio
async def test_timer_ticker_finishes_running_interval(state, clock, capsys) -> None:
    state.task_store.start_session("short_break")
    clock.advance(seconds=5 * 60)

    ticker = asyncio.create_task(run_timer_ticker(state, interval_seconds=0))
    for _ in range(100):
        if state.task_store.running is None:
            break
        await asyncio.sleep(0)
    ticker.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await ticker

    assert state.task_store.running is None
    assert "Short break is over" in capsys.readouterr().out
