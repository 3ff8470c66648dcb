from doubt_mentor.memory.quota import QuotaTracker
from doubt_mentor.memory.session_manager import SessionManager
from doubt_mentor.memory.store import MemoryStore

__all__ = [
    "MemoryStore",
    "QuotaTracker",
    "SessionManager",
]
