"""Run a :class:`CameraDirector` on its own thread behind a bounded buffer."""
from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Deque, Optional

from loguru import logger

from .director import CameraDirector
from .models import CameraCommand, FrameInput


class DirectorWorker:
    """Single-consumer worker; frames are dropped oldest-first when it falls behind.

    Only the worker thread touches the director, so pipeline state needs no
    locking. A reset request is applied between two frames.
    """

    def __init__(
        self,
        director: CameraDirector,
        queue_size: Optional[int] = None,
        on_command: Optional[Callable[[CameraCommand], None]] = None,
    ) -> None:
        self.director = director
        size = queue_size if queue_size is not None else director.config.worker.queue_size
        self._frames: Deque[FrameInput] = deque(maxlen=max(1, size))
        self._cond = threading.Condition()
        self._reset_requested = False
        self._stopping = False
        self._on_command = on_command
        self._thread: Optional[threading.Thread] = None
        self.dropped_frames = 0
        self.processed_frames = 0
        self.latest: Optional[CameraCommand] = None

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._frames)

    def start(self) -> "DirectorWorker":
        if self._thread is not None and self._thread.is_alive():
            return self
        with self._cond:
            self._stopping = False
        self._thread = threading.Thread(target=self._run, name="camera-director", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Process what is queued, then stop the thread."""

        if self._thread is None:
            return
        with self._cond:
            self._stopping = True
            self._cond.notify()
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Director worker did not stop within {}s", timeout)
        self._thread = None

    def submit(self, item: FrameInput) -> None:
        """Queue a frame without blocking."""

        with self._cond:
            if len(self._frames) == self._frames.maxlen:
                dropped = self._frames[0]
                self.dropped_frames += 1
                logger.warning("Worker behind; dropped frame at t={:.3f}", dropped.timestamp)
            self._frames.append(item)
            self._cond.notify()

    def reset(self) -> None:
        """Ask the worker thread to reset tracking state."""

        with self._cond:
            self._reset_requested = True
            self._cond.notify()

    def _next(self) -> Optional[FrameInput]:
        with self._cond:
            while not self._frames and not self._reset_requested and not self._stopping:
                self._cond.wait()
            if self._reset_requested:
                self._reset_requested = False
                reset = True
            else:
                reset = False
            item = self._frames.popleft() if self._frames else None
        if reset:
            self.director.reset_tracking_state()
        return item

    def _run(self) -> None:
        while True:
            item = self._next()
            if item is None:
                with self._cond:
                    if self._stopping and not self._frames:
                        return
                continue
            command = self.director.submit(item)
            self.processed_frames += 1
            self.latest = command
            if self._on_command is not None:
                try:
                    self._on_command(command)
                except Exception:
                    logger.exception("Command callback failed at t={:.3f}", command.timestamp)

    def __enter__(self) -> "DirectorWorker":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
