# display.py
"""OpenCV window that lives on the main thread, plus the dispatcher that gets
calls there from the capture thread."""
from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, TypeVar

import cv2
import numpy as np

from color_tracking.config import DisplayConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MainThreadDispatcher:
    """
    Single-consumer task queue bound to one thread.

    ``call()`` from any other thread enqueues the function and blocks until
    the owner thread has run it; called on the owner thread it runs inline.
    The owner drains the queue inside :meth:`run` (or via :meth:`pump`).
    """

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._tasks: "queue.Queue[tuple[Callable[[], Any], Future]]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def on_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner

    def submit(self, fn: Callable[[], T]) -> "Future[T]":
        fut: "Future[T]" = Future()
        if self._closed.is_set():
            fut.set_exception(RuntimeError("dispatcher is closed"))
            return fut
        self._tasks.put((fn, fut))
        if self._closed.is_set():
            # close() may have drained the queue before the put landed
            self._fail_pending()
        return fut

    def call(self, fn: Callable[[], T], timeout: Optional[float] = None) -> T:
        if self.on_owner_thread:
            return fn()
        return self.submit(fn).result(timeout)

    def pump(self, timeout: Optional[float] = 0.0) -> int:
        """Run queued tasks on the owner thread; returns how many ran."""
        if not self.on_owner_thread:
            raise RuntimeError("pump() must be called on the dispatcher's thread")
        ran = 0
        block = timeout is None or timeout > 0
        while True:
            try:
                fn, fut = self._tasks.get(block=block and ran == 0, timeout=timeout or None)
            except queue.Empty:
                return ran
            if fut.set_running_or_notify_cancel():
                try:
                    fut.set_result(fn())
                except BaseException as exc:  # noqa: BLE001
                    fut.set_exception(exc)
            ran += 1

    def run(self, work: Callable[[], Any], poll_s: float = 0.01) -> Any:
        """
        Start ``work`` on a worker thread and service the queue here until it
        returns. Exceptions raised by ``work`` propagate to the caller.
        """
        result: "Future[Any]" = Future()

        def _worker() -> None:
            try:
                result.set_result(work())
            except BaseException as exc:  # noqa: BLE001
                result.set_exception(exc)

        worker = threading.Thread(target=_worker, name="control-loop", daemon=True)
        worker.start()
        try:
            while not result.done():
                self.pump(timeout=poll_s)
            self.pump()
        finally:
            self.close()
        return result.result()

    def close(self) -> None:
        self._closed.set()
        self._fail_pending()

    def _fail_pending(self) -> None:
        while True:
            try:
                _, fut = self._tasks.get_nowait()
            except queue.Empty:
                break
            if fut.set_running_or_notify_cancel():
                fut.set_exception(RuntimeError("dispatcher is closed"))


class Display:
    """Debug window. Every OpenCV GUI call goes through the dispatcher."""

    def __init__(self, config: DisplayConfig, dispatcher: MainThreadDispatcher):
        self.config = config
        self.dispatcher = dispatcher
        self._created = False
        self.frames_shown = 0

    def _ensure_window(self, frame: np.ndarray) -> None:
        if self._created:
            return
        cv2.namedWindow(self.config.window_name, cv2.WINDOW_NORMAL)
        h, w = frame.shape[:2]
        cv2.resizeWindow(
            self.config.window_name,
            max(1, int(w * self.config.scale)),
            max(1, int(h * self.config.scale)),
        )
        self._created = True
        logger.info("Display window %r created", self.config.window_name)

    def show(self, frame: np.ndarray) -> None:
        """Present ``frame`` and pump window events (blocks until done)."""
        def _show() -> None:
            self._ensure_window(frame)
            cv2.imshow(self.config.window_name, frame)
            cv2.waitKey(1)

        self.dispatcher.call(_show)
        self.frames_shown += 1

    def pump(self) -> int:
        return self.dispatcher.call(lambda: cv2.waitKey(1) & 0xFF)

    def window_closed(self) -> bool:
        """True once the user has closed the window."""
        if not self._created:
            return False
        return self.dispatcher.call(
            lambda: cv2.getWindowProperty(self.config.window_name, cv2.WND_PROP_VISIBLE) < 1
        )

    def close(self) -> None:
        if not self._created:
            return
        try:
            self.dispatcher.call(cv2.destroyAllWindows)
        except RuntimeError as exc:
            logger.debug("Display close skipped: %s", exc)
        self._created = False
