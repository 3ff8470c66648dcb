from datetime import date

from fastapi.testclient import TestClient

from doubt_mentor.auth import StaticTokenIdentityProvider
from doubt_mentor.catalog import ResourceCatalog
from doubt_mentor.orchestrator import DoubtOrchestrator
from doubt_mentor.provider_chain import AnswerResolver, ProviderChain
from doubt_mentor.resource_matcher import ResourceMatcher
from doubt_mentor.server import create_app
from tests.fakes import FakeProvider, descriptor
from tests.memory.base import MemoryStoreTestCase

AUTH = {"Authorization": "Bearer token-1"}


class DoubtApiTests(MemoryStoreTestCase):
    daily_limit = 2

    def setUp(self) -> None:
        super().setUp()
        catalog = ResourceCatalog([descriptor(0, "Constraint Motion & Pulleys", ["pulley", "tension"])])
        orchestrator = DoubtOrchestrator(
            identity=StaticTokenIdentityProvider({"token-1": "student-1", "token-2": "student-2"}),
            quota=self._quota,
            sessions=self._sessions,
            resolver=AnswerResolver(ProviderChain("answer", [FakeProvider("p1", "Use the constraint equation.")])),
            matcher=ResourceMatcher(catalog, ProviderChain("selector", [FakeProvider("ai", '{"index": 0}')])),
            today=lambda: date(2026, 3, 14),
        )
        self._client = TestClient(create_app(orchestrator, self._sessions))

    def test_ask_returns_answer_session_and_resource(self) -> None:
        response = self._client.post("/doubts/ask", json={"message": "pulley tension?"}, headers=AUTH)

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("Use the constraint equation.", body["answer"])
        self.assertTrue(body["isFirstResponse"])
        self.assertFalse(body["isTopicSwitch"])
        self.assertEqual(
            {
                "title": "Constraint Motion & Pulleys",
                "subjectUnit": "Mechanics",
                "subject": "Physics",
                "url": "/lectures/r0",
            },
            body["matchedResource"],
        )
        self.assertTrue(body["sessionId"])

    def test_missing_credential_is_401(self) -> None:
        response = self._client.post("/doubts/ask", json={"message": "hi"})
        self.assertEqual(401, response.status_code)
        self.assertEqual("Unauthenticated", response.json()["errorKind"])

    def test_empty_message_is_400(self) -> None:
        response = self._client.post("/doubts/ask", json={"message": "  "}, headers=AUTH)
        self.assertEqual(400, response.status_code)
        self.assertEqual("InvalidInput", response.json()["errorKind"])

    def test_null_message_is_400_not_validation_error(self) -> None:
        response = self._client.post("/doubts/ask", json={"message": None}, headers=AUTH)
        self.assertEqual(400, response.status_code)
        self.assertEqual({"errorKind": "InvalidInput", "message": "Message required"}, response.json())

    def test_unknown_session_is_400_and_charges_no_quota(self) -> None:
        response = self._client.post("/doubts/ask", json={"message": "q", "sessionId": "missing"}, headers=AUTH)
        self.assertEqual(400, response.status_code)
        self.assertIsNone(self._quota.get_record("student-1"))

    def test_quota_exhaustion_is_429(self) -> None:
        for _ in range(self.daily_limit):
            self.assertEqual(200, self._client.post("/doubts/ask", json={"message": "q"}, headers=AUTH).status_code)
        response = self._client.post("/doubts/ask", json={"message": "q"}, headers=AUTH)
        self.assertEqual(429, response.status_code)
        self.assertEqual("QuotaExceeded", response.json()["errorKind"])
        self.assertEqual(0, response.json()["remaining"])

    def test_session_history_endpoints_are_owner_scoped(self) -> None:
        session_id = self._client.post("/doubts/ask", json={"message": "pulley?"}, headers=AUTH).json()["sessionId"]
        self._client.post(
            "/doubts/ask",
            json={"message": "and tension?", "sessionId": session_id, "skipContextCheck": True},
            headers=AUTH,
        )

        listing = self._client.get("/doubts/sessions", headers=AUTH).json()
        self.assertEqual([session_id], [s["id"] for s in listing["sessions"]])

        detail = self._client.get(f"/doubts/sessions/{session_id}", headers=AUTH).json()
        self.assertEqual(["user", "mentor", "user", "mentor"], [t["role"] for t in detail["turns"]])
        self.assertEqual("pulley?", detail["title"])

        foreign = self._client.get(f"/doubts/sessions/{session_id}", headers={"Authorization": "Bearer token-2"})
        self.assertEqual(400, foreign.status_code)

    def test_health(self) -> None:
        self.assertEqual({"status": "ok"}, self._client.get("/health").json())
