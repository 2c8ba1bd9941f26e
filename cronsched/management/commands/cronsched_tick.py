from __future__ import annotations

from dataclasses import asdict
import json
import signal
import time

from django.core.management.base import BaseCommand

from cronsched.conf import reload_scheduler_settings_cache
from cronsched.manager import ScheduleManager


class Command(BaseCommand):
    help = "Run one scheduler tick (generate, skip piled-up, clean history, log run), or loop."

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            default=False,
            help="Keep ticking until interrupted",
        )
        parser.add_argument(
            "--interval-seconds",
            type=float,
            default=60.0,
            help="Loop interval (seconds)",
        )
        parser.add_argument(
            "--run-seconds",
            type=int,
            default=0,
            help="If >0, stop looping after N seconds (useful for local tests)",
        )

    def _tick(self) -> None:
        # Settings may have been changed through SchedulerSetting rows.
        reload_scheduler_settings_cache()
        snapshot = ScheduleManager.from_settings().run_tick()
        self.stdout.write(json.dumps(asdict(snapshot), sort_keys=True))

    def handle(self, *args, **options):
        if not options["loop"]:
            self._tick()
            return

        stop_requested = False

        def _request_stop(*_args):
            nonlocal stop_requested
            stop_requested = True

        signal.signal(signal.SIGINT, _request_stop)
        signal.signal(signal.SIGTERM, _request_stop)

        interval_seconds = max(0.1, float(options["interval_seconds"]))
        run_seconds = int(options["run_seconds"])
        deadline = time.time() + run_seconds if run_seconds > 0 else None

        self.stdout.write(f"cronsched tick loop interval_seconds={interval_seconds}")
        next_tick_at = time.time()
        while not stop_requested:
            if deadline is not None and time.time() >= deadline:
                break
            now = time.time()
            if now >= next_tick_at:
                self._tick()
                next_tick_at = now + interval_seconds
            time.sleep(min(1.0, max(0.0, next_tick_at - time.time())))

        self.stdout.write("cronsched tick loop stopped")
