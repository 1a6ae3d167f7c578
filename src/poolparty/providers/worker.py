"""Worker-process slots: one child process per slot."""

from typing import List, Optional, Sequence
import asyncio
import sys

from ..pool.handle import ResourceProvider


DEFAULT_WORKER_ARGV = [sys.executable, "-c", "import sys; sys.stdin.read()"]


class WorkerProvider(ResourceProvider):
    """Hold slots as idle child processes.

    The process cap comes from the environment (``RLIMIT_NPROC``, a
    container pids limit); spawning past it raises and fails the
    creation. The default worker blocks on stdin and exits when it is
    closed.
    """

    kind = "worker"
    tracks_liveness = True

    def __init__(self, argv: Optional[Sequence[str]] = None, terminate_timeout: float = 1.0):
        self.argv: List[str] = list(argv or DEFAULT_WORKER_ARGV)
        self.terminate_timeout = terminate_timeout

    async def create(self) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(
            *self.argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )

    async def destroy(self, handle: asyncio.subprocess.Process) -> None:
        if handle.returncode is not None:
            return
        if handle.stdin is not None:
            handle.stdin.close()
        try:
            await asyncio.wait_for(handle.wait(), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            handle.kill()
            await handle.wait()

    def is_live(self, handle: asyncio.subprocess.Process) -> bool:
        return handle.returncode is None
