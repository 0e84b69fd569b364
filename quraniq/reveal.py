"""
Progressive reveal of a finished answer, one word at a time.
Purely cosmetic: the full answer is already stored before the reveal begins.
"""

import random
import re
import threading
import time
from typing import Callable, Iterator, List, Optional

MIN_DELAY = 0.03
MAX_DELAY = 0.06


def split_increments(text: str) -> List[str]:
    """
    Split text into one increment per whitespace-delimited word.

    Each increment carries the whitespace before its word; trailing
    whitespace rides on the last increment, so "".join(result) == text.
    Whitespace-only text is a single increment; empty text yields none.
    """
    increments = re.findall(r"\s*\S+", text)
    if not increments:
        return [text] if text else []
    increments[-1] += text[len("".join(increments)):]
    return increments


class Reveal:
    """
    Lazy, cancelable sequence of partial strings ending in the final text.

    Iterating yields the cumulative text after each word. Calling cancel()
    from any thread stops further increments.
    """

    def __init__(
        self,
        final_text: str,
        min_delay: float = MIN_DELAY,
        max_delay: float = MAX_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")
        self.final_text = final_text
        self.increments = split_increments(final_text)
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._cancelled = threading.Event()
        self._shown = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        return self._shown == len(self.increments)

    @property
    def shown(self) -> str:
        """Text revealed so far."""
        return "".join(self.increments[: self._shown])

    @property
    def word_count(self) -> int:
        return len(self.increments)

    def cancel(self) -> None:
        self._cancelled.set()

    def deltas(self) -> Iterator[str]:
        """Yield the increments themselves, pausing before each one."""
        while self._shown < len(self.increments):
            if self.cancelled:
                return
            self._sleep(self._rng.uniform(self.min_delay, self.max_delay))
            # Cancelled while sleeping: the view is gone, drop the word.
            if self.cancelled:
                return
            piece = self.increments[self._shown]
            self._shown += 1
            yield piece

    def __iter__(self) -> Iterator[str]:
        text = self.shown
        for piece in self.deltas():
            text += piece
            yield text
