from collections import deque
from collections.abc import Iterable

from rich import progress


class ProgressBar:
    def __enter__(self):
        return self._track

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass

    def _track(
        self,
        jobs_iter: Iterable,
        *,
        description: str,
        jobs_count: int | None = None,
    ):
        deque(
            progress.track(
                jobs_iter,
                total=jobs_count,
                description=description,
                transient=False,
                show_speed=False,
            ),
            maxlen=0,
        )
