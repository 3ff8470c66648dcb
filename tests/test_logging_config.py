import logging
import shutil
import sys
import unittest
from pathlib import Path
from uuid import uuid4

from loguru import logger

from doubt_mentor.logging_config import STDLIB_LOGGERS, InterceptHandler, setup_logging

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"logging-{uuid4().hex}"
        self._saved = {}
        for name in STDLIB_LOGGERS:
            std_logger = logging.getLogger(name)
            self._saved[name] = (std_logger.handlers[:], std_logger.propagate)

    def tearDown(self) -> None:
        logger.remove()
        logger.configure(extra={})
        logger.add(sys.stderr)
        for name, (handlers, propagate) in self._saved.items():
            logging.getLogger(name).handlers = handlers
            logging.getLogger(name).propagate = propagate
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_describes_each_registered_consumer(self) -> None:
        log_path = str(self._tmp_dir / "service.log")
        descriptions = setup_logging(
            "INFO",
            [{"type": "console"}, {"type": "file", "path": log_path, "level": "DEBUG"}, {"type": "syslog"}],
        )
        self.assertEqual(["console (stderr, INFO)", f"file ({log_path}, DEBUG)"], descriptions)

    def test_file_lines_carry_request_context(self) -> None:
        log_path = self._tmp_dir / "service.log"
        setup_logging("INFO", [{"type": "file", "path": str(log_path)}])

        logger.info("startup")
        with logger.contextualize(user_id="student-1", session_id="s-1"):
            logger.info("answered")
        logger.remove()

        lines = log_path.read_text(encoding="utf-8").splitlines()
        self.assertIn("user=- session=-", lines[0])
        self.assertIn("user=student-1 session=s-1", lines[1])
        self.assertTrue(lines[1].endswith("answered"))

    def test_uvicorn_loggers_are_routed_into_loguru(self) -> None:
        setup_logging("INFO", [])
        records: list[dict] = []
        logger.add(lambda message: records.append(message.record), level="INFO")

        logging.getLogger("uvicorn.error").warning("Started server process")

        self.assertEqual(["Started server process"], [r["message"] for r in records])
        self.assertEqual("WARNING", records[0]["level"].name)
        self.assertIsInstance(logging.getLogger("uvicorn.access").handlers[0], InterceptHandler)


if __name__ == "__main__":
    unittest.main()
