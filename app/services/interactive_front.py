# services/interactive_front.py
from typing import Optional

from core.logger import logger
from services.dispatcher import Dispatcher
from services.terminal import Key, Terminal


class InteractiveFront:
    """
    Operator loop: snapshot, render, wait briefly for a key, handle it.

    Selecting a job hands it to the dispatcher, which launches it on its own
    thread, so the loop keeps rendering while the backend call is in flight.
    The tick is independent of the poller's long-poll interval.
    """

    def __init__(self, dispatcher: Dispatcher, terminal: Terminal, tick_seconds: float = 0.05):
        self.dispatcher = dispatcher
        self.registry = dispatcher.registry
        self.terminal = terminal
        self.tick_seconds = tick_seconds
        self.launched = 0

    def header(self, pending: int) -> str:
        return (
            f"Pending uploads: {pending}   "
            f"Backend: {self.dispatcher.launcher.name}   "
            f"Launched this session: {self.launched}"
        )

    def tick(self) -> bool:
        """One render/input cycle. Returns False once the operator quits."""
        snapshot = self.registry.snapshot()
        self.terminal.render(snapshot, self.header(len(snapshot.jobs)))
        key = self.terminal.read_key(self.tick_seconds)
        return self.handle_key(key)

    def handle_key(self, key: Optional[Key]) -> bool:
        if key is None:
            return True
        if key == Key.QUIT:
            return False
        if key == Key.DOWN:
            self.registry.select_next()
        elif key == Key.UP:
            self.registry.select_previous()
        elif key == Key.SELECT:
            if self.dispatcher.launch_selected() is not None:
                self.launched += 1
            else:
                logger.debug("Select pressed with no pending jobs")
        return True

    def run(self) -> None:
        while self.tick():
            pass
        logger.info("Operator quit the job selector")
