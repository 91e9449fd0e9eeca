"""Integration tests for quiz generation, answers and history."""

import json
import uuid

from fastapi.testclient import TestClient

from haskify.db.inmemory import InMemoryQuizRepository
from haskify.db.repositories import PersistenceError
from haskify.llm.client import ChatProviderError
from haskify.models.quiz import QuizRecord
from haskify.models.tutor import ChatTurn
from haskify.services import Services

CHAT_HISTORY = [
    {"question": "how do for loops work?", "response": "They visit each item in order."},
    {"question": "what does range(3) give?", "response": "0, 1 and 2."},
]


class RepeatingClient:
    """Always proposes the same quiz, optionally with the same id."""

    def __init__(self, quiz_id: str | None = None) -> None:
        self.quiz_id = quiz_id
        self.calls = 0
        self.temperatures: list[float] = []

    async def complete(self, system: str, turns: list[ChatTurn], *, temperature: float, purpose: str) -> str:
        self.calls += 1
        self.temperatures.append(temperature)
        return json.dumps(
            {
                "id": self.quiz_id or str(uuid.uuid4()),
                "question": "What does len([1, 2, 3]) return?",
                "choices": ["1", "2", "3", "4"],
                "correctIndex": 2,
                "topic": "lists",
            }
        )


class DownClient:
    async def complete(self, system: str, turns: list[ChatTurn], *, temperature: float, purpose: str) -> str:
        raise ChatProviderError("provider returned 503")


class FlakyQuizRepository(InMemoryQuizRepository):
    """Fails the first quiz write, then stores normally."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 1

    async def add_quiz(self, record: QuizRecord) -> None:
        if self.failures:
            self.failures -= 1
            raise PersistenceError("database unavailable")
        await super().add_quiz(record)


def _quiz(client: TestClient, headers: dict[str, str]):  # type: ignore[no-untyped-def]
    return client.post("/api/quiz", json={"chatHistory": CHAT_HISTORY}, headers=headers)


def test_quiz_uses_camel_case_fields(client: TestClient, session_headers: dict[str, str]) -> None:
    response = _quiz(client, session_headers)

    assert response.status_code == 200
    data = response.json()
    uuid.UUID(data["id"])
    assert data["question"]
    assert len(data["choices"]) == 4
    assert data["correctIndex"] in range(4)


def test_second_quiz_differs_from_first(client: TestClient, session_headers: dict[str, str]) -> None:
    first = _quiz(client, session_headers).json()
    second = _quiz(client, session_headers).json()

    assert second["question"] != first["question"]


def test_sessions_deduplicate_independently(client: TestClient, session_headers: dict[str, str]) -> None:
    mine = _quiz(client, session_headers).json()
    theirs = _quiz(client, {"X-Session-Id": "other"}).json()

    assert mine["question"] == theirs["question"]


def test_repeated_duplicates_exhaust_attempts(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    repeating = RepeatingClient()
    services.chat = repeating  # type: ignore[assignment]

    assert _quiz(client, session_headers).status_code == 200
    response = _quiz(client, session_headers)

    assert response.status_code == 503
    assert response.json()["detail"] == "Failed to generate quiz. Please try again later."
    # One accepted call, then the full attempt budget
    assert repeating.calls == 1 + services.settings.quiz_max_attempts
    assert repeating.temperatures[1:] == sorted(repeating.temperatures[1:])


def test_session_cleanup_resets_quiz_history(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    services.chat = RepeatingClient()  # type: ignore[assignment]
    assert _quiz(client, session_headers).status_code == 200

    client.delete("/api/session/materials", headers=session_headers)

    assert _quiz(client, session_headers).status_code == 200


def test_provider_error_returns_502(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    services.chat = DownClient()  # type: ignore[assignment]

    response = _quiz(client, session_headers)

    assert response.status_code == 502


def test_quiz_requires_session(client: TestClient) -> None:
    response = client.post("/api/quiz", json={"chatHistory": CHAT_HISTORY})

    assert response.status_code == 400


def test_same_model_id_in_two_sessions_gets_distinct_quizzes(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    fixed = str(uuid.uuid4())
    services.chat = RepeatingClient(quiz_id=fixed)  # type: ignore[assignment]

    mine = _quiz(client, session_headers)
    theirs = _quiz(client, {"X-Session-Id": "other"})

    assert mine.status_code == 200
    assert theirs.status_code == 200
    assert len({mine.json()["id"], theirs.json()["id"], fixed}) == 3
    answer = client.post(
        f"/api/quiz/{mine.json()['id']}/answer", json={"chosenIndex": 2}, headers=session_headers
    )
    assert answer.json() == {"correct": True, "correctIndex": 2}


def test_non_uuid_model_id_is_replaced(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    services.chat = RepeatingClient(quiz_id="q1")  # type: ignore[assignment]

    response = _quiz(client, session_headers)

    assert response.status_code == 200
    uuid.UUID(response.json()["id"])


def test_failed_quiz_write_can_be_retried(
    client: TestClient, services: Services, session_headers: dict[str, str]
) -> None:
    services.chat = RepeatingClient()  # type: ignore[assignment]
    services.quizzes = FlakyQuizRepository()

    failed = _quiz(client, session_headers)
    retried = _quiz(client, session_headers)

    assert failed.status_code == 500
    assert failed.json()["detail"] == "Failed to store quiz"
    assert retried.status_code == 200
    assert retried.json()["question"] == "What does len([1, 2, 3]) return?"


class TestAnswers:
    """Test POST /api/quiz/{id}/answer and GET /api/quiz/history."""

    def test_correct_answer(self, client: TestClient, session_headers: dict[str, str]) -> None:
        quiz = _quiz(client, session_headers).json()

        response = client.post(
            f"/api/quiz/{quiz['id']}/answer",
            json={"chosenIndex": quiz["correctIndex"]},
            headers=session_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"correct": True, "correctIndex": quiz["correctIndex"]}

    def test_wrong_answer_appears_in_history(self, client: TestClient, session_headers: dict[str, str]) -> None:
        quiz = _quiz(client, session_headers).json()
        wrong = (quiz["correctIndex"] + 1) % 4

        client.post(f"/api/quiz/{quiz['id']}/answer", json={"chosenIndex": wrong}, headers=session_headers)
        history = client.get("/api/quiz/history", headers=session_headers).json()["results"]

        assert len(history) == 1
        assert history[0]["quiz_id"] == quiz["id"]
        assert history[0]["chosen_index"] == wrong
        assert history[0]["correct"] is False

    def test_answer_to_unknown_quiz_returns_404(self, client: TestClient, session_headers: dict[str, str]) -> None:
        response = client.post(
            f"/api/quiz/{uuid.uuid4()}/answer", json={"chosenIndex": 0}, headers=session_headers
        )

        assert response.status_code == 404

    def test_answer_from_other_session_returns_404(
        self, client: TestClient, session_headers: dict[str, str]
    ) -> None:
        quiz = _quiz(client, session_headers).json()

        response = client.post(
            f"/api/quiz/{quiz['id']}/answer", json={"chosenIndex": 0}, headers={"X-Session-Id": "other"}
        )

        assert response.status_code == 404

    def test_out_of_range_choice_is_rejected(self, client: TestClient, session_headers: dict[str, str]) -> None:
        quiz = _quiz(client, session_headers).json()

        response = client.post(
            f"/api/quiz/{quiz['id']}/answer", json={"chosenIndex": 4}, headers=session_headers
        )

        assert response.status_code == 422

    def test_history_is_newest_first_and_limited(
        self, client: TestClient, session_headers: dict[str, str]
    ) -> None:
        ids = []
        for _ in range(3):
            quiz = _quiz(client, session_headers).json()
            ids.append(quiz["id"])
            client.post(f"/api/quiz/{quiz['id']}/answer", json={"chosenIndex": 0}, headers=session_headers)

        history = client.get("/api/quiz/history?limit=2", headers=session_headers).json()["results"]

        assert [h["quiz_id"] for h in history] == [ids[2], ids[1]]
