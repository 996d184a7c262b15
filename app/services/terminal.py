# services/terminal.py
import curses
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from services.job_registry import RegistrySnapshot


class Key(str, Enum):
    UP = "up"
    DOWN = "down"
    SELECT = "select"
    QUIT = "quit"


class Terminal(ABC):
    """Rendering and input surface for the interactive front."""

    @abstractmethod
    def render(self, snapshot: RegistrySnapshot, header: str) -> None:
        ...

    @abstractmethod
    def read_key(self, timeout: float) -> Optional[Key]:
        """Wait up to timeout seconds for a key; None if nothing mapped was pressed."""


_KEYMAP = {
    curses.KEY_UP: Key.UP,
    ord("k"): Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    ord("j"): Key.DOWN,
    curses.KEY_ENTER: Key.SELECT,
    10: Key.SELECT,
    13: Key.SELECT,
    ord(" "): Key.SELECT,
    ord("q"): Key.QUIT,
    27: Key.QUIT,
}


class CursesTerminal(Terminal):
    """Full-screen job list. Use inside curses.wrapper()."""

    def __init__(self, screen):
        self.screen = screen
        try:
            curses.curs_set(0)
        except curses.error:
            pass  # terminal cannot hide the cursor
        self.screen.keypad(True)

    def _put(self, y: int, text: str, attr: int = curses.A_NORMAL) -> None:
        height, width = self.screen.getmaxyx()
        if y >= height or width < 2:
            return
        try:
            self.screen.addnstr(y, 0, text, width - 1, attr)
        except curses.error:
            pass  # window shrank between getmaxyx and the write

    def render(self, snapshot: RegistrySnapshot, header: str) -> None:
        self.screen.erase()
        height, _ = self.screen.getmaxyx()

        self._put(0, header, curses.A_BOLD)
        self._put(1, "up/down or j/k: move   enter: launch   q: quit", curses.A_DIM)

        if not snapshot.jobs:
            self._put(3, "Waiting for uploads...")

        # keep the selected row on screen
        visible = max(height - 4, 1)
        first = 0
        if snapshot.selected is not None and snapshot.selected >= visible:
            first = snapshot.selected - visible + 1

        for row, job in enumerate(snapshot.jobs[first:first + visible]):
            index = first + row
            marker = ">" if index == snapshot.selected else " "
            attr = curses.A_REVERSE if index == snapshot.selected else curses.A_NORMAL
            self._put(3 + row, f"{marker} {job.job_id}  {job.bucket}/{job.key}", attr)

        self.screen.refresh()

    def read_key(self, timeout: float) -> Optional[Key]:
        self.screen.timeout(max(int(timeout * 1000), 0))
        code = self.screen.getch()
        if code == -1:
            return None
        return _KEYMAP.get(code)
