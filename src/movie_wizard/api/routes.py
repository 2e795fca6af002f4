# ruff: noqa: E501

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse

from movie_wizard.core.generation import GenerationError
from movie_wizard.core.mail import MailDeliveryError
from movie_wizard.core.schemas import (
    ContactRequest,
    ContactResponse,
    GenerateRequest,
    GenerateResponse,
)
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/api/generate", response_model=GenerateResponse)
def generate(req: GenerateRequest, request: Request) -> GenerateResponse:
    generator = request.app.state.generator
    if generator is None:
        raise HTTPException(status_code=503, detail="Recommendation service is not configured")

    user_input = req.userInput.strip() or "random"
    logger.info("Generating recommendation (%d chars of input)", len(user_input))

    try:
        output = generator.generate(user_input)
    except GenerationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return GenerateResponse(output=output)


@router.post("/api/handle-contact", response_model=ContactResponse)
def handle_contact(req: ContactRequest, request: Request) -> ContactResponse:
    relay = request.app.state.mail_relay
    if relay is None:
        raise HTTPException(status_code=503, detail="Contact form is not configured")

    try:
        relay.send_contact_message(name=req.name, email=req.email, message=req.message)
    except MailDeliveryError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return ContactResponse()


@router.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    """Single-page UI: prompt, recommendation, local history and contact form."""

    html_doc = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <meta name="description" content="Get personalized movie recommendations using AI" />
  <title>Movie-Wizard | AI Movie Recommendations</title>
  <style>
    :root {
      --bg: #1a1a2e;
      --bg-alt: #16213e;
      --panel: rgba(255, 255, 255, 0.08);
      --text: #ffffff;
      --muted: #a0aec0;
      --line: rgba(255, 255, 255, 0.12);
      --accent: #4ecdc4;
      --warn: #ff6b6b;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      color: var(--text);
      background: linear-gradient(135deg, var(--bg) 0%, var(--bg-alt) 100%);
      font-family: ui-sans-serif, system-ui, sans-serif;
      min-height: 100vh;
    }
    main { max-width: 50rem; margin: 0 auto; padding: 1.5rem 1rem; }
    h1 { text-align: center; font-size: 2.6rem; margin: 1rem 0 .25rem 0; color: var(--accent); }
    .subtitle { text-align: center; color: var(--muted); margin-bottom: 1.5rem; }
    .card {
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 1rem;
      padding: 1rem 1.2rem;
      margin-bottom: 1.2rem;
    }
    textarea, input[type=text], input[type=email] {
      width: 100%;
      padding: .8rem;
      border-radius: .6rem;
      border: 1px solid var(--line);
      background: rgba(255, 255, 255, 0.05);
      color: inherit;
      font: inherit;
    }
    textarea { resize: vertical; min-height: 6rem; }
    .row { display: flex; justify-content: space-between; align-items: center; margin-top: .5rem; gap: .5rem; }
    .muted { color: var(--muted); font-size: .88rem; }
    button {
      font: inherit;
      color: inherit;
      padding: .6rem 1.1rem;
      border-radius: .6rem;
      border: 1px solid var(--accent);
      background: rgba(78, 205, 196, 0.18);
      cursor: pointer;
    }
    button:disabled { opacity: .5; cursor: not-allowed; }
    button.danger { border-color: var(--warn); background: rgba(255, 107, 107, 0.2); color: var(--warn); }
    .result { white-space: pre-wrap; line-height: 1.5; }
    .error { color: var(--warn); }
    .history-item { border-top: 1px solid var(--line); padding: .6rem 0; }
    .history-query { color: var(--accent); font-size: .9rem; margin-bottom: .25rem; }
    .hidden { display: none; }
    label { display: block; font-size: .88rem; color: var(--muted); margin: .5rem 0 .2rem 0; }
  </style>
</head>
<body>
  <main>
    <h1>Movie-Wizard</h1>
    <div class="subtitle">Discover Your Next Favorite Movie with AI</div>

    <section class="card">
      <h3 style="margin-top:0">How it works</h3>
      <div class="muted">
        Enter your preferences (theme, genre, actors, mood), or leave it blank for a surprise.
        Hit Generate or press Enter to get your pick.
      </div>
    </section>

    <section class="card">
      <textarea id="prompt" maxlength="500" rows="3"
        placeholder="E.g., 'a thought-provoking sci-fi movie with strong female leads'"></textarea>
      <div class="row">
        <span id="char_count" class="muted">0/500</span>
        <button id="generate">Generate</button>
      </div>
    </section>

    <section id="output" class="card hidden">
      <div id="loading" class="muted hidden"></div>
      <div id="error" class="error hidden"></div>
      <div id="result_card" class="hidden">
        <h3 style="margin-top:0">Your Perfect Movie Match</h3>
        <div id="result" class="result"></div>
      </div>
    </section>

    <section id="history_section" class="card hidden">
      <div class="row" style="margin-top:0">
        <h3 style="margin:0">Previous Recommendations</h3>
        <button id="clear_history" class="danger">Clear History</button>
      </div>
      <div id="history"></div>
    </section>

    <section class="card">
      <h3 style="margin-top:0">Contact</h3>
      <form id="contact_form">
        <label for="contact_name">Name</label>
        <input id="contact_name" type="text" required maxlength="200" />
        <label for="contact_email">Email</label>
        <input id="contact_email" type="email" required maxlength="320" />
        <label for="contact_message">Message</label>
        <textarea id="contact_message" required maxlength="5000"></textarea>
        <div class="row">
          <span id="contact_status" class="muted"></span>
          <button id="contact_send" type="submit">Send</button>
        </div>
      </form>
    </section>
  </main>

  <script>
    const $ = (id) => document.getElementById(id);

    const HISTORY_KEY = 'movieWizardHistory';
    const MAX_HISTORY = 5;
    const MAX_RETRIES = 3;
    const RETRY_DELAY = 1000; // ms
    const CONNECTION_ERROR = 'Unable to connect to the server. Please try again later.';

    let history = loadHistory();
    let chain = 0;
    let retryTimer = null;

    function isEntry(item) {
      return item !== null && typeof item === 'object'
        && typeof item.input === 'string'
        && typeof item.output === 'string'
        && Number.isInteger(item.timestamp);
    }

    function loadHistory() {
      const raw = localStorage.getItem(HISTORY_KEY);
      if (!raw) return [];
      try {
        const parsed = JSON.parse(raw);
        if (!Array.isArray(parsed)) return [];
        return parsed.filter(isEntry).slice(-MAX_HISTORY);
      } catch (err) {
        return [];
      }
    }

    function appendHistory(entry) {
      history = [...history, entry].slice(-MAX_HISTORY);
      localStorage.setItem(HISTORY_KEY, JSON.stringify(history));
      renderHistory();
    }

    function clearHistory() {
      history = [];
      localStorage.removeItem(HISTORY_KEY);
      renderHistory();
    }

    function escapeText(text) {
      const el = document.createElement('div');
      el.textContent = text;
      return el.innerHTML;
    }

    function renderHistory() {
      $('history_section').classList.toggle('hidden', history.length === 0);
      $('history').innerHTML = history.map((item) => `
        <div class="history-item">
          <div class="history-query">${escapeText(item.input || 'Random recommendation')}</div>
          <div class="result">${escapeText(item.output)}</div>
        </div>
      `).join('');
    }

    function setBusy(busy, retryCount) {
      $('generate').disabled = busy;
      $('generate').textContent = busy ? 'Generating...' : 'Generate';
      $('loading').classList.toggle('hidden', !busy);
      $('loading').textContent = retryCount
        ? `Conjuring your movie... (retry ${retryCount}/${MAX_RETRIES})`
        : 'Conjuring your movie...';
      if (busy) $('result_card').classList.add('hidden');
    }

    function showError(message) {
      $('error').textContent = message || '';
      $('error').classList.toggle('hidden', !message);
    }

    function showResult(text) {
      $('result').textContent = text;
      $('result_card').classList.remove('hidden');
    }

    async function attempt(token, trimmed, retryAttempt) {
      try {
        const resp = await fetch('/api/generate', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ userInput: trimmed || 'random' }),
        });
        if (!resp.ok) throw new Error(`Server responded with ${resp.status}`);
        const data = await resp.json();
        if (typeof data.output !== 'string') throw new Error('Missing output');
        if (token !== chain) return;

        setBusy(false, 0);
        showResult(data.output);
        appendHistory({ input: trimmed, output: data.output, timestamp: Date.now() });
      } catch (err) {
        console.error('API call error:', err);
        if (token !== chain) return;

        if (retryAttempt < MAX_RETRIES) {
          setBusy(true, retryAttempt + 1);
          retryTimer = setTimeout(() => attempt(token, trimmed, retryAttempt + 1), RETRY_DELAY);
        } else {
          setBusy(false, 0);
          showError(CONNECTION_ERROR);
        }
      }
    }

    function generate() {
      const trimmed = $('prompt').value.trim();
      if (!trimmed && !window.confirm('Generate a random movie recommendation?')) {
        return;
      }

      // A new request replaces any pending retry chain.
      if (retryTimer !== null) clearTimeout(retryTimer);
      chain += 1;

      $('output').classList.remove('hidden');
      showError(null);
      setBusy(true, 0);
      $('output').scrollIntoView({ behavior: 'smooth' });
      attempt(chain, trimmed, 0);
    }

    $('generate').addEventListener('click', () => generate());

    $('prompt').addEventListener('keydown', (ev) => {
      if (ev.key !== 'Enter' || ev.shiftKey) return;
      ev.preventDefault();
      if ($('generate').disabled) return;
      generate();
    });

    $('prompt').addEventListener('input', () => {
      $('char_count').textContent = `${$('prompt').value.length}/500`;
      showError(null);
    });

    $('clear_history').addEventListener('click', () => clearHistory());

    $('contact_form').addEventListener('submit', async (ev) => {
      ev.preventDefault();
      $('contact_send').disabled = true;
      $('contact_status').textContent = 'Sending...';
      try {
        const resp = await fetch('/api/handle-contact', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({
            name: $('contact_name').value.trim(),
            email: $('contact_email').value.trim(),
            message: $('contact_message').value.trim(),
          }),
        });
        if (!resp.ok) throw new Error(`Server responded with ${resp.status}`);
        $('contact_form').reset();
        $('contact_status').textContent = 'Thanks! Your message was sent.';
      } catch (err) {
        $('contact_status').textContent = 'Sorry, your message could not be sent.';
      } finally {
        $('contact_send').disabled = false;
      }
    });

    renderHistory();
  </script>
</body>
</html>"""

    return HTMLResponse(content=html_doc)
