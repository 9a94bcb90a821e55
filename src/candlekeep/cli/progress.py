"""Rich-based progress display driven by upload progress events.

The storage transport reports ``{"status": "uploading", ...}`` dicts
while it streams the payload and ``{"status": "finished"}`` once the
storage endpoint accepted it.  :class:`RichUploadProgress` is the
callable that turns those events into a Rich progress bar.

* Shutdown-safe: events arriving while the bar is stopped are ignored.
* The byte count is display-only; it carries no correctness meaning.
"""

from __future__ import annotations

from typing import Any

from candlekeep.cli.console import get_rich_console
from candlekeep.exceptions import EnvironmentError


class RichUploadProgress:
    """Callable progress adapter for Rich.

    Usage::

        with RichUploadProgress("report.pdf") as progress:
            await service.upload(request, data, progress_callback=progress)
    """

    def __init__(self, description: str = "Uploading") -> None:
        try:
            from rich.progress import (
                BarColumn,
                DownloadColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
                TimeRemainingColumn,
                TransferSpeedColumn,
            )
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._description = _shorten(description)
        self._progress: Any = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=get_rich_console(stderr=True),
            transient=False,
        )
        self._task_id: Any = None
        self._started: bool = False
        self._completed: int = 0

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RichUploadProgress:
        self.start()
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the Rich progress display."""
        if not self._started:
            self._progress.start()
            self._started = True

    def stop(self) -> None:
        """Stop the Rich progress display (idempotent)."""
        if self._started:
            self._progress.stop()
            self._started = False

    # ------------------------------------------------------------------
    # Event callback
    # ------------------------------------------------------------------

    def __call__(self, event: dict[str, Any]) -> None:
        """Handle one progress event; unknown statuses are ignored."""
        if not self._started:
            return

        status = event.get("status", "")
        if status == "uploading":
            self._handle_uploading(event)
        elif status == "finished":
            self._handle_finished(event)

    @property
    def completed(self) -> int:
        """Highest byte count shown so far."""
        return self._completed

    # ------------------------------------------------------------------
    # Internal handlers
    # ------------------------------------------------------------------

    def _ensure_task(self, total: int | None) -> Any:
        if self._task_id is None:
            self._task_id = self._progress.add_task(self._description, total=total)
        return self._task_id

    def _handle_uploading(self, event: dict[str, Any]) -> None:
        total = _safe_int(event.get("total_bytes"))
        uploaded = _safe_int(event.get("uploaded_bytes")) or 0
        task_id = self._ensure_task(total)
        # Never move the bar backwards.
        self._completed = max(self._completed, uploaded)
        if total is not None:
            self._progress.update(task_id, total=total, completed=self._completed)
        else:
            self._progress.update(task_id, completed=self._completed)

    def _handle_finished(self, event: dict[str, Any]) -> None:
        total = _safe_int(event.get("total_bytes"))
        task_id = self._ensure_task(total)
        task = next(t for t in self._progress.tasks if t.id == task_id)
        final = total if total is not None else task.total
        if final is not None:
            self._completed = max(self._completed, final)
            self._progress.update(task_id, total=final, completed=self._completed)


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def _shorten(name: str, limit: int = 50) -> str:
    return name if len(name) <= limit else name[: limit - 3] + "..."


def _safe_int(value: object) -> int | None:
    """Convert *value* to ``int`` or return ``None``."""
    if value is None:
        return None
    try:
        if isinstance(value, (bool, int, float, str)):
            return int(value)
        return None
    except (TypeError, ValueError):
        return None
