"""Shared helpers for talking to the container engine from asyncio.

The docker SDK is blocking; these helpers move its calls onto the default
thread pool executor and turn its byte streams into lines.
"""

import asyncio
import functools
from typing import AsyncIterator, Iterator, Optional
from urllib.parse import urlparse

_SENTINEL = object()


async def run_in_executor(func, *args, **kwargs):
    """
    Run a blocking function in the default thread pool executor.

    Args:
        func: Blocking function to run
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        Result of the function
    """
    loop = asyncio.get_running_loop()
    if kwargs:
        func = functools.partial(func, **kwargs)
    return await loop.run_in_executor(None, func, *args)


async def iterate_in_executor(iterator: Iterator) -> AsyncIterator:
    """Pull items from a blocking iterator one executor call at a time."""
    while True:
        item = await run_in_executor(next, iterator, _SENTINEL)
        if item is _SENTINEL:
            return
        yield item


def decode_chunk(chunk) -> str:
    if isinstance(chunk, bytes):
        return chunk.decode("utf-8", errors="replace")
    return str(chunk)


def split_lines(buffer: str, chunk: str):
    """Append ``chunk`` to ``buffer`` and split off complete lines.

    Returns:
        Tuple of (complete_lines, remaining_buffer)
    """
    buffer += chunk
    *lines, rest = buffer.split("\n")
    return [line.rstrip("\r") for line in lines], rest


async def aiter_lines(chunks: AsyncIterator) -> AsyncIterator[str]:
    """Split an async stream of byte chunks into lines without the newline.

    Only the current partial line is held between chunks.
    """
    buffer = ""
    async for chunk in chunks:
        lines, buffer = split_lines(buffer, decode_chunk(chunk))
        for line in lines:
            yield line
    if buffer:
        yield buffer


def host_from_engine_url(base_url: Optional[str]) -> str:
    """
    Derive the address published ports are reachable on.

    Args:
        base_url: Engine URL such as ``unix:///var/run/docker.sock``,
            ``http+docker://localhost`` or ``tcp://10.0.0.5:2376``

    Returns:
        Hostname of a remote engine, ``localhost`` for local sockets
    """
    if not base_url:
        return "localhost"
    parsed = urlparse(base_url)
    if parsed.scheme in ("unix", "npipe", "http+unix", "http+docker"):
        return "localhost"
    if parsed.scheme in ("tcp", "http", "https", "ssh") and parsed.hostname:
        return parsed.hostname
    return "localhost"
