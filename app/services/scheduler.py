import logging
import time
from datetime import datetime
from threading import Thread, Event
from typing import Callable, Any

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Calls a function repeatedly on a background thread, waiting `delay` seconds
    between calls, and keeps a bounded log of the runs.
    """

    def __init__(
        self, function: Callable[..., Any], delay: int, max_logs_entries: int
    ) -> None:
        self.__function = function
        self.__delay = delay
        self.__max_logs_entries = max_logs_entries
        self.__thread: Thread | None = None
        self.__stop_event = Event()
        self.__runner_id = 1
        self.__runner_logs: list[dict[str, Any]] = []

    def is_running(self) -> bool:
        return self.__thread is not None

    def start(self) -> None:
        if self.__thread is not None:
            return

        self.__stop_event.clear()
        self.__thread = Thread(target=self.__run, name="inbox-scheduler", daemon=True)
        self.__thread.start()

    def stop(self) -> None:
        if self.__thread is not None:
            self.__stop_event.set()
            self.__thread.join()
            self.__thread = None

    def __run(self) -> None:
        while not self.__stop_event.is_set():
            start_time = time.time()
            error = None
            try:
                self.__function()
            except Exception as e:
                logger.exception("Scheduled run failed")
                error = str(e)
            end_time = time.time()
            self.update_runner(start_time, end_time, error)
            self.__stop_event.wait(self.__delay)

    def update_runner(
        self, start_time: float, end_time: float, error: str | None = None
    ) -> None:
        data: dict[str, Any] = {
            "runner_id": self.__runner_id,
            "started_at": datetime.fromtimestamp(start_time).isoformat(),
            "finished_at": datetime.fromtimestamp(end_time).isoformat(),
            "time_delta": end_time - start_time,
            "error": error,
        }
        if self.__thread is not None:
            data["thread_name"] = self.__thread.name

        self.__runner_logs.append(data)
        self.__runner_id += 1

        if len(self.__runner_logs) > self.__max_logs_entries:
            self.__runner_logs.pop(0)

    def get_runner_history(self) -> list[dict[str, Any]]:
        return list(self.__runner_logs)
