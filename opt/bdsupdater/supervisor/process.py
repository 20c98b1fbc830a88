"""
Dedicated server process supervisor.

This module runs the server binary as a child process, reads its console
output line by line and dispatches pattern matches and exit notifications
to registered handlers. Handlers run on the event loop and must return
quickly.
"""

import os
import re
import json
import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)
console_logger = logging.getLogger('bdsupdater.console')

STOP_COMMAND = 'stop'


class ServerProcess:
    """Owns the server process lifecycle and its console I/O."""

    def __init__(self, bin_path: str, args: Sequence[str] = (), cwd: Optional[str] = None):
        self.bin_path = bin_path
        self.args = list(args)
        self.cwd = cwd or os.path.dirname(os.path.abspath(bin_path))
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._match_handlers: List[Tuple[re.Pattern, Callable]] = []
        self._exit_handlers: List[Callable] = []

    def register_match_handler(self, pattern, callback: Callable) -> None:
        """
        Call callback(match) for every console line matching pattern.

        Args:
            pattern: Regex string or compiled pattern, applied with search()
            callback: Called with the re.Match object
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        self._match_handlers.append((pattern, callback))

    def register_exit_handler(self, callback: Callable) -> None:
        """Call callback() each time the server process exits."""
        self._exit_handlers.append(callback)

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    async def start(self) -> None:
        """Start the server process and begin reading its console."""
        if self.is_running:
            logger.warning("Server is already running")
            return

        self._process = await asyncio.create_subprocess_exec(
            self.bin_path, *self.args,
            cwd=self.cwd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        logger.info(f"Started server {self.bin_path} (PID: {self._process.pid})")
        self._reader_task = asyncio.create_task(self._read_console(self._process))

    async def send_input(self, line: str) -> None:
        """Write one command line to the server console."""
        if not self.is_running:
            raise RuntimeError("Server is not running")
        self._process.stdin.write((line + '\n').encode('utf-8'))
        await self._process.stdin.drain()

    async def broadcast(self, message: str) -> None:
        """Show a chat message to every connected player."""
        if not self.is_running:
            logger.debug(f"Server not running, broadcast skipped: {message}")
            return
        payload = json.dumps({'rawtext': [{'text': message}]})
        await self.send_input(f"tellraw @a {payload}")

    async def wait_for_exit(self, timeout: Optional[float] = None) -> int:
        """
        Wait for the server process to exit.

        Exit handlers have run by the time this returns.

        Raises:
            asyncio.TimeoutError: If the process is still running after timeout
        """
        if self._process is None:
            return 0
        returncode = await asyncio.wait_for(self._process.wait(), timeout=timeout)
        if self._reader_task is not None:
            await asyncio.wait_for(asyncio.shield(self._reader_task), timeout=timeout)
        return returncode

    async def close(self) -> None:
        """Release the pipes of an exited process."""
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._reader_task = None
        if self._process is not None and self._process.stdin is not None:
            self._process.stdin.close()

    async def shutdown(self, timeout: float = 60) -> None:
        """Stop the server gracefully, killing it if it does not exit in time."""
        if self.is_running:
            logger.info("Stopping server...")
            try:
                await self.send_input(STOP_COMMAND)
                await self.wait_for_exit(timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Server did not stop within {timeout} seconds, killing it")
                self._process.kill()
                await self._process.wait()
            except (ConnectionError, RuntimeError) as e:
                logger.warning(f"Could not send stop command: {e}")
                await self._process.wait()
        await self.close()

    async def _read_console(self, process: asyncio.subprocess.Process) -> None:
        try:
            while True:
                try:
                    raw = await process.stdout.readline()
                except (ValueError, asyncio.LimitOverrunError) as e:
                    # readline() drops the oversized chunk, the next call resumes after it
                    logger.warning(f"Skipped oversized console output: {e}")
                    continue
                if not raw:
                    break
                line = raw.decode('utf-8', errors='replace').rstrip('\r\n')
                console_logger.info(line)
                self._dispatch_line(line)
        finally:
            await process.wait()
            logger.info(f"Server process exited with code {process.returncode}")
            self._dispatch_exit()

    def _dispatch_line(self, line: str) -> None:
        for pattern, callback in self._match_handlers:
            match = pattern.search(line)
            if match is None:
                continue
            try:
                callback(match)
            except Exception as e:
                logger.error(f"Console handler for {pattern.pattern!r} failed: {e}")

    def _dispatch_exit(self) -> None:
        for callback in self._exit_handlers:
            try:
                callback()
            except Exception as e:
                logger.error(f"Exit handler failed: {e}")
