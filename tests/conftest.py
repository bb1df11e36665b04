import os
from types import SimpleNamespace

import anthropic
import httpx
import pytest
from fastapi.testclient import TestClient

# Must be set before eduassist.core.config builds its settings object
os.environ["LOG_TO_FILE"] = "false"
os.environ["ANTHROPIC_API_KEY"] = ""

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


class FakeMessages:
    """Stands in for AsyncAnthropic().messages."""

    def __init__(self):
        self.reply = ""
        self.error = None
        self.on_create = None
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.on_create:
            self.on_create()
        if self.error is not None:
            raise self.error
        content = [SimpleNamespace(type="text", text=self.reply)] if self.reply else []
        return SimpleNamespace(
            content=content,
            usage=SimpleNamespace(input_tokens=42, output_tokens=7),
        )


class FakeAnthropic:
    def __init__(self):
        self.messages = FakeMessages()


def make_status_error(status_code: int) -> anthropic.APIStatusError:
    request = httpx.Request("POST", ANTHROPIC_URL)
    response = httpx.Response(status_code, request=request)
    return anthropic.APIStatusError("upstream error", response=response, body=None)


def make_connection_error(timeout: bool = False) -> anthropic.APIConnectionError:
    request = httpx.Request("POST", ANTHROPIC_URL)
    if timeout:
        return anthropic.APITimeoutError(request=request)
    return anthropic.APIConnectionError(request=request)


@pytest.fixture(scope="session")
def app():
    import main as main_module
    return main_module.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    """Point uploads at a per-test directory that does not exist yet."""
    from eduassist.core.config import settings
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture()
def fake_anthropic():
    return FakeAnthropic()


@pytest.fixture()
def ai_service(fake_anthropic, monkeypatch):
    """A real AIService over a fake SDK client, wired into the study routes."""
    from eduassist.services.ai_service import AIService
    service = AIService(api_key="test-key", model="test-model", client=fake_anthropic)
    monkeypatch.setattr("eduassist.api.routes.study.get_ai_service", lambda: service)
    return service
