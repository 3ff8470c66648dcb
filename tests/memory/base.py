import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from doubt_mentor.memory import MemoryStore, QuotaTracker, SessionManager


PROJECT_ROOT = Path(__file__).resolve().parents[2]


class MemoryStoreTestCase(unittest.TestCase):
    daily_limit = 50

    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"{self.__class__.__name__.lower()}-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        self._store = MemoryStore(str(self._tmp_dir / "doubts.db"))
        self._sessions = SessionManager(self._store)
        self._quota = QuotaTracker(self._store, daily_limit=self.daily_limit)

    def tearDown(self) -> None:
        self._store.close()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)
