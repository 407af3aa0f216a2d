from .collector import Credentials, DataCollector
from .registry import SessionRegistry
from .session import AuthenticatedSession, AuthResult
from .snapshot import TelemetrySnapshot

__all__ = ["AuthenticatedSession", "AuthResult", "Credentials", "DataCollector", "SessionRegistry", "TelemetrySnapshot"]
