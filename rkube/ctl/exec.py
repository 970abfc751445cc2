"""The exec command: an interactive session in a pod container."""

from __future__ import annotations

import asyncio
import os
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from typing import IO, Any
from urllib.parse import urlsplit, urlunsplit

import websockets

try:
    import termios
    import tty
except ImportError:  # not a POSIX terminal
    termios = None
    tty = None

_QUERY_UNSAFE = frozenset(b" \"#<>'")
_CTRL_D = b"\x04"


def _encode_query(text: str) -> str:
    return "".join(
        chr(b) if 0x21 <= b <= 0x7E and b not in _QUERY_UNSAFE else f"%{b:02X}"
        for b in text.encode()
    )


def exec_url(base_url: str, pod_name: str, container_name: str, command: str) -> str:
    """WebSocket URL of an exec session."""
    parts = urlsplit(base_url)
    base = urlunsplit(("ws", parts.netloc, parts.path or "/", "", ""))
    return (
        f"{base}api/v1/pods/{pod_name}/containers/{container_name}/exec"
        f"?command={_encode_query(command)}"
    )


@contextmanager
def _raw_terminal(stream: IO[Any]) -> Iterator[None]:
    if termios is None or not stream.isatty():
        yield
        return
    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    tty.setraw(fd)
    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


async def _pump_stdin(ws: Any) -> None:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[bytes] = asyncio.Queue()
    fd = sys.stdin.fileno()

    def reader() -> None:
        while True:
            try:
                data = os.read(fd, 1)
            except OSError:
                data = b""
            try:
                loop.call_soon_threadsafe(queue.put_nowait, data)
            except RuntimeError:
                return
            if not data or data == _CTRL_D:
                return

    threading.Thread(target=reader, daemon=True).start()
    while True:
        data = await queue.get()
        if not data:
            return
        with suppress(websockets.ConnectionClosed):
            await ws.send(data)
        if data == _CTRL_D:
            with suppress(websockets.ConnectionClosed):
                await ws.close()
            return


async def run_exec(base_url: str, pod_name: str, container_name: str, command: str) -> None:
    """Pipe the terminal to a command running in a container until it closes."""
    async with websockets.connect(exec_url(base_url, pod_name, container_name, command)) as ws:
        pump = asyncio.create_task(_pump_stdin(ws))
        try:
            with _raw_terminal(sys.stdout):
                out = sys.stdout.buffer
                try:
                    async for message in ws:
                        if isinstance(message, bytes):
                            out.write(message)
                            out.flush()
                except websockets.ConnectionClosed:
                    pass
        finally:
            pump.cancel()
            with suppress(asyncio.CancelledError):
                await pump