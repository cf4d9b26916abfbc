"""
AuditScheduler -- in-process polling scheduler for periodic client audits.

Contract:
    Polls the client schedules on a configurable interval, evaluates
    ``should_fire()`` (pure), and runs the full audit for each due client.

Invariants enforced:
    - All timestamps from the injected Clock.
    - Schedule evaluation is pure (should_fire / compute_next_run).
    - Graceful shutdown: the stop signal is honoured between clients, the
      client currently being audited finishes first.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Sequence
from typing import Any

from audit_batch.schedule import ClientSchedule, compute_next_run, is_periodic, should_fire
from audit_config.schema import AuditFrequency
from audit_kernel.domain.clock import Clock, SystemClock
from audit_kernel.logging_config import get_logger

logger = get_logger("batch.scheduler")


class AuditScheduler:
    """Runs ``run_audit(client_id)`` for each client on its frequency.

    Contract:
        - ``tick()`` evaluates all schedules, fires due ones.
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler (no leader election).
        - Does NOT persist schedules; they live for the process lifetime.
    """

    def __init__(
        self,
        run_audit: Callable[[str], Any],
        client_ids: Sequence[str],
        frequency: AuditFrequency,
        clock: Clock | None = None,
        tick_interval_seconds: int = 60,
    ):
        if not is_periodic(frequency):
            raise ValueError(f"Frequency {frequency.value!r} cannot be scheduled")
        self._run_audit = run_audit
        self._clock = clock or SystemClock()
        self._tick_interval = tick_interval_seconds
        self._schedules: list[ClientSchedule] = [
            ClientSchedule(client_id=client_id, frequency=frequency)
            for client_id in client_ids
        ]
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def schedules(self) -> tuple[ClientSchedule, ...]:
        return tuple(self._schedules)

    def tick(self) -> int:
        """Evaluate and fire due schedules (public for testing).

        Returns the number of client audits that were run.
        """
        now = self._clock.now()
        fired = 0

        for index, schedule in enumerate(self._schedules):
            if self._stop_event.is_set():
                break

            if not should_fire(schedule, now):
                continue

            succeeded = True
            try:
                self._run_audit(schedule.client_id)
            except Exception:
                succeeded = False
                logger.exception(
                    "scheduled_audit_failed",
                    extra={"client_id": schedule.client_id},
                )

            next_run = compute_next_run(schedule.frequency, now)
            self._schedules[index] = dataclasses.replace(
                schedule,
                last_run_at=now,
                last_run_succeeded=succeeded,
                next_run_at=next_run,
            )
            fired += 1

            logger.info(
                "scheduled_audit_fired",
                extra={
                    "client_id": schedule.client_id,
                    "succeeded": succeeded,
                    "next_run_at": str(next_run) if next_run else None,
                },
            )

        return fired

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="audit-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "client_count": len(self._schedules),
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background polling loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)
