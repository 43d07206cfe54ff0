"""
One-shot shutdown signal shared by the directory monitor and every tracker.
"""
import asyncio


class ShutdownSignal:
    """
    Broadcast cancellation that can only ever go from active to fired.

    Every coroutine blocked in ``wait()`` wakes up when the signal fires,
    so stopping the watcher costs the same no matter how many files are
    being tracked. Firing more than once has no additional effect.
    """

    def __init__(self) -> None:
        self._fired = asyncio.Event()

    def fire(self) -> None:
        self._fired.set()

    @property
    def is_fired(self) -> bool:
        return self._fired.is_set()

    async def wait(self) -> None:
        await self._fired.wait()
