import logging
import time
from typing import Any, Callable, Optional

from subathon.services.events.pipeline import EventPipeline
from subathon.services.timer.engine import TimerEngine
from subathon.services.timer.persistence import JsonSnapshotStore, SnapshotWriter, restore_state
from subathon.services.timer.scheduler import Ticker

logger = logging.getLogger(__name__)


class TimerRuntime:
    """One live timer: engine, ingestion, persistence and the background tasks.

    Built once per Flask app by ``create_app`` and kept in
    ``app.extensions['subathon']``.
    """

    def __init__(self, config: Any, scheduler, clock: Callable[[], float] = time.time):
        self.config = config
        self.scheduler = scheduler
        self.store = JsonSnapshotStore(config['STATE_FILE'])
        state = restore_state(
            self.store.load(),
            now_ms=int(clock() * 1000),
            seconds_per_sub=config.get('DEFAULT_SECONDS_PER_SUB', 300),
        )
        self.engine = TimerEngine(state, clock=clock)
        self.writer = SnapshotWriter(
            self.store,
            self.engine.snapshot,
            scheduler,
            debounce=config.get('PERSIST_DEBOUNCE_MS', 120) / 1000.0,
        )
        self.engine.add_listener(self.writer.request)
        self.pipeline = EventPipeline(self.engine, clock=clock, account=config.get('STREAMLABS_ACCOUNT'))
        self.ticker = Ticker(self.engine, scheduler, interval=config.get('TICK_INTERVAL_SEC', 1.0))
        self.streamlabs = None
        self._stopped = False

    def start(self) -> None:
        self.ticker.start()
        token = self.config.get('STREAMLABS_TOKEN')
        if not token:
            logger.warning("[streamlabs] STREAMLABS_TOKEN not set; provider events only via /api/events")
            return
        from subathon.streamlabs import StreamlabsListener
        self.streamlabs = StreamlabsListener(
            self.pipeline,
            token,
            url=self.config.get('STREAMLABS_URL', 'https://sockets.streamlabs.com'),
        )
        self.scheduler.spawn(self.streamlabs.connect)

    def shutdown(self) -> Optional[bool]:
        """Stop background work and write the final state; safe to call twice."""
        if self._stopped:
            return None
        self._stopped = True
        self.ticker.stop()
        if self.streamlabs is not None:
            self.streamlabs.disconnect()
        ok = self.writer.flush()
        logger.info(f"[shutdown] final flush ok={ok} version={self.engine.state.state_version}")
        return ok
