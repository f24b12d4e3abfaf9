"""Progress reporting for the conversion pipeline."""

import queue
from typing import Optional

from tqdm import tqdm

from epub2speech.models import ProgressEvent


class ProgressChannel:
    """Unbounded, best-effort event stream from workers to the caller.

    ``send`` never blocks and silently drops events once the channel is
    closed. Consumers poll; they may skip intermediate events but always
    see the terminal one if they keep polling until ``done``.
    """

    def __init__(self):
        self._queue: queue.SimpleQueue[ProgressEvent] = queue.SimpleQueue()
        self._closed = False

    def send(self, event: ProgressEvent) -> None:
        if not self._closed:
            self._queue.put(event)

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def poll(self) -> list[ProgressEvent]:
        """Return every pending event without waiting."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def latest(self) -> Optional[ProgressEvent]:
        """Return the newest pending event, discarding older ones."""
        events = self.poll()
        return events[-1] if events else None

    def get(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


class ProgressReporter:
    """Wraps tqdm for chapter-level progress reporting."""

    def __init__(self, total_chapters: int = 0):
        self._bar = tqdm(
            total=total_chapters or None,
            desc="Converting",
            unit="ch",
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} chapters [{elapsed}<{remaining}]",
        )

    def update(self, event: ProgressEvent) -> None:
        """Move the bar to the state described by ``event``."""
        if event.chapters_total and self._bar.total != event.chapters_total:
            self._bar.total = event.chapters_total
        self._bar.set_postfix_str(event.error or event.stage, refresh=False)
        self._bar.update(event.chapters_completed - self._bar.n)

    def follow(self, channel: ProgressChannel, poll_interval: float = 0.2) -> ProgressEvent:
        """Consume ``channel`` until the terminal event and return it."""
        while True:
            event = channel.get(timeout=poll_interval)
            if event is None:
                continue
            self.update(event)
            if event.done:
                return event

    def close(self) -> None:
        self._bar.close()
