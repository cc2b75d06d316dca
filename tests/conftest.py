"""Shared fixtures: in-memory repository, API client, auth headers."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import main
from main import app, create_access_token, get_repo, hash_password

ENV_KEYS = [
    "OPENAI_API_KEY", "GROQ_API_KEY", "HUGGINGFACE_API_KEY",
    "AI_PROVIDER_ORDER", "AI_MODEL", "GROQ_MODEL", "HF_MODEL", "AI_DEMO_FALLBACK",
    "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS",
    "ALERT_THRESHOLD", "ALERT_TO_EMAIL", "ALERT_FROM_EMAIL",
]


class FakeRepository:
    """Same interface as db.Repository, backed by lists."""

    def __init__(self):
        self.users = []
        self.predictions = []
        self.alerts = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self):
        self._clock += timedelta(minutes=1)
        return self._clock

    def get_user_by_email(self, email):
        return next((dict(u) for u in self.users if u["email"] == email), None)

    def get_user(self, user_id):
        for u in self.users:
            if u["id"] == user_id:
                return {"id": u["id"], "name": u["name"], "email": u["email"]}
        return None

    def create_user(self, name, email, hashed_password):
        user = {"id": len(self.users) + 1, "name": name, "email": email, "hashed_password": hashed_password}
        self.users.append(user)
        return {"id": user["id"], "name": name, "email": email}

    def add_prediction(self, user_id, prompt, result, score, risk_level, source, provider):
        row = {
            "id": len(self.predictions) + 1,
            "user_id": user_id,
            "prompt": prompt,
            "result": result,
            "score": score,
            "risk_level": risk_level,
            "source": source,
            "provider": provider,
            "created_at": self._tick(),
        }
        self.predictions.append(row)
        return {k: v for k, v in row.items() if k != "user_id"}

    def list_predictions(self, user_id, limit=None):
        rows = [
            {k: v for k, v in p.items() if k != "user_id"}
            for p in reversed(self.predictions) if p["user_id"] == user_id
        ]
        return rows if limit is None else rows[:limit]

    def count_predictions(self, user_id):
        return sum(1 for p in self.predictions if p["user_id"] == user_id)

    def clear_predictions(self, user_id):
        before = len(self.predictions)
        self.predictions = [p for p in self.predictions if p["user_id"] != user_id]
        return before - len(self.predictions)

    def record_alert(self, user_id, risk_score, risk_level, recipient, sent, reason=None):
        self.alerts.append({
            "user_id": user_id, "risk_score": risk_score, "risk_level": risk_level,
            "recipient": recipient, "sent": sent, "reason": reason,
        })
        return len(self.alerts)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No real keys or SMTP servers leak into tests."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repo] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(repo):
    """A registered user whose password is 'secret123'."""
    return repo.create_user("Ana Manager", "ana@example.com", hash_password("secret123"))


@pytest.fixture
def auth_headers(user):
    token = create_access_token(user["id"], user["email"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ai_answer(monkeypatch):
    """Replace the AI chain inside main with a canned answer or error."""
    calls = []

    def install(text=None, provider="openai", error=None):
        def fake_ask_ai(message, system_prompt=None):
            calls.append({"message": message, "system_prompt": system_prompt})
            if error is not None:
                raise error
            return main.ai_service.AIResult(text=text, provider=provider)
        monkeypatch.setattr(main, "ask_ai", fake_ask_ai)
        return calls

    return install
