from __future__ import annotations

from fastapi.testclient import TestClient

from movie_wizard.api.app import create_app


def test_index_page_renders_single_page_ui() -> None:
    app = create_app()
    client = TestClient(app)

    resp = client.get("/")
    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]

    body = resp.text
    assert "<title>Movie-Wizard | AI Movie Recommendations</title>" in body
    assert 'id="prompt" maxlength="500"' in body
    assert 'id="generate"' in body
    assert 'id="history"' in body
    assert 'id="contact_form"' in body


def test_index_page_script_uses_history_key_and_retry_limits() -> None:
    client = TestClient(create_app())
    body = client.get("/").text

    assert "const HISTORY_KEY = 'movieWizardHistory';" in body
    assert "const MAX_HISTORY = 5;" in body
    assert "const MAX_RETRIES = 3;" in body
    assert "const RETRY_DELAY = 1000;" in body
    assert "Unable to connect to the server. Please try again later." in body
