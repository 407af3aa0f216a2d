"""
Background task: poll the panel with the configured account every poll_interval_seconds.
"""
from poolmon.core.task import BaseTask
from poolmon.plugins.omnilogic.collector import Credentials, DataCollector
from poolmon.plugins.omnilogic.registry import SessionRegistry

POLL_SESSION_KEY = "poller"


class PollTask(BaseTask):
    def __init__(
        self,
        collector: DataCollector,
        registry: SessionRegistry,
        credentials: Credentials,
        interval_seconds: int = 300,
        session_key: str = POLL_SESSION_KEY,
    ):
        super().__init__("omnilogic_poll", max(30, int(interval_seconds)))
        self.collector = collector
        self.registry = registry
        self.credentials = credentials
        self.session_key = session_key

    def run(self) -> None:
        session = self.registry.get(self.session_key)
        snapshot = self.collector.collect_once(session, self.credentials)
        if snapshot.errors:
            self.logger.warning(f"Poll finished with failed subsystems: {', '.join(sorted(snapshot.errors))}")
        else:
            self.logger.info(f"Poll finished at {snapshot.timestamp.isoformat()}")
