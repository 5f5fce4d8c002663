from __future__ import annotations
import argparse
import logging
import threading
from flask import Flask, request, jsonify, Response

from clear_editor import config as CFG
from clear_editor.DB.api import KeyValueStore, make_store
from clear_editor.DB.storage import load_editor, save_editor
from clear_editor.inference import ChatCompletionClient, InferenceError, build_messages
from clear_editor.parse import parse_thought
from clear_editor.render import decorate
from clear_editor.surface import Surface

log = logging.getLogger(__name__)

app = Flask(__name__)
_client: ChatCompletionClient | None = None
_store: KeyValueStore | None = None
_busy = threading.Lock()   # one inference request at a time

# ---------- API ----------
@app.get("/api/health")
def api_health():
    return jsonify({"ok": True, "ready": bool(_client and _client.ready)})


@app.post("/api/thought")
def api_thought():
    data = request.get_json(silent=True) or {}
    text = data.get("text", "")
    if not isinstance(text, str):
        return jsonify({"error": "text must be a string"}), 400
    if len(text.strip()) < CFG.MIN_TEXT_LENGTH:
        return jsonify({"error": f"Write at least {CFG.MIN_TEXT_LENGTH} characters first."}), 400
    if _client is None or not _client.ready:
        return jsonify({"error": "Model is not loaded yet."}), 503
    if not _busy.acquire(blocking=False):
        return jsonify({"error": "Already thinking."}), 409
    try:
        raw = _client.complete(build_messages(text.strip()), temperature=CFG.TEMPERATURE, max_tokens=CFG.MAX_TOKENS)
    except InferenceError as exc:
        log.warning("thought request failed: %s", exc)
        return jsonify({"error": str(exc) or CFG.GENERIC_ERROR}), 502
    finally:
        _busy.release()

    thought = parse_thought(raw)
    question = thought.question or CFG.FALLBACK_QUESTION
    surface = Surface(text)
    plan = decorate(surface, thought.sentences)
    return jsonify({
        "question": question,
        "sentences": thought.sentences,
        "ranges": [[r.start, r.end] for r in surface.highlight_ranges()],
        "dropped": plan.dropped if plan else 0,
        "html": surface.to_html(),
    })


@app.get("/api/document")
def api_document_get():
    saved = load_editor(_store) if _store is not None else None
    if saved is None:
        return jsonify({"content": "", "cursor": 0})
    return jsonify({"content": saved.content, "cursor": saved.cursor})


@app.put("/api/document")
def api_document_put():
    if _store is None:
        return jsonify({"error": "No store configured."}), 503
    data = request.get_json(silent=True) or {}
    content = data.get("content", "")
    cursor = data.get("cursor", 0)
    if not isinstance(content, str) or not isinstance(cursor, int) or isinstance(cursor, bool):
        return jsonify({"error": "content must be a string and cursor an integer"}), 400
    save_editor(_store, content, cursor)
    return Response(status=204)

# ---------- UI ----------
@app.get("/")
def home():
    # Single page: contenteditable editor, sidebar, no external deps.
    html = r"""
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>Clear</title>
<style>
:root{
  --bg:#faf8f4; --ink:#2b2a28; --muted:#8a857c; --accent:#c99a3b;
  --mark-bg:rgba(233,196,106,.35); --danger:#b3473a;
}
*{box-sizing:border-box}
html,body{height:100%}
body{ margin:0; background:var(--bg); color:var(--ink);
  font:18px/1.7 Georgia,"Iowan Old Style","Times New Roman",serif; }
.layout{ display:grid; grid-template-columns:1fr minmax(0,680px) 1fr; gap:32px; padding:48px 24px; }
.editor{ min-height:70vh; outline:none; white-space:pre-wrap; }
.editor:empty:before{ content:attr(data-placeholder); color:var(--muted) }
.highlight{ background:var(--mark-bg); border-radius:3px }
.sidebar{ font-size:15px; color:var(--muted); padding-top:8px }
.thought-question{ color:var(--ink); font-style:italic }
.thought-sentence{ margin:8px 0; padding-left:10px; border-left:2px solid var(--accent) }
.loading{ position:fixed; bottom:20px; left:20px; color:var(--muted); font-size:14px }
.error{ position:fixed; bottom:20px; left:50%; transform:translateX(-50%); color:var(--danger); font-size:14px }
.genai-btn{ position:fixed; bottom:20px; right:20px; border:1px solid #e2ddd3; background:#fff;
  border-radius:50%; width:44px; height:44px; cursor:pointer; color:var(--accent) }
.genai-btn:disabled{ opacity:.4; cursor:default }
</style>
</head>
<body>
  <div class="layout">
    <div aria-hidden="true"></div>
    <main>
      <div id="editor" class="editor" contenteditable="true" spellcheck="true"
           role="textbox" aria-multiline="true" data-placeholder="Write your thoughts here..."></div>
    </main>
    <aside class="sidebar" aria-label="Thought">
      <div id="sidebar-content"></div>
      <div id="sidebar-quote"></div>
    </aside>
  </div>
  <div id="loading" class="loading" hidden aria-live="polite"><span id="loading-label">Loading...</span></div>
  <div id="error" class="error" hidden role="alert"></div>
  <button type="button" id="genai-btn" class="genai-btn" aria-label="Generate reflection">&#10022;</button>

<script>
const DEBOUNCE_MS = __DEBOUNCE_MS__, SAVE_DEBOUNCE_MS = __SAVE_DEBOUNCE_MS__, MIN_TEXT_LENGTH = __MIN_TEXT_LENGTH__;
const $ = (sel) => document.querySelector(sel);
const editor = $("#editor"), btn = $("#genai-btn");
let debounceTimer = null, saveTimer = null, isGenerating = false;

function setLoading(show, label){ $("#loading").hidden = !show; $("#loading-label").textContent = label || "Loading..."; }
function setError(msg){ $("#error").hidden = !msg; $("#error").textContent = msg || ""; }

function getCursorOffset(){
  const sel = window.getSelection();
  if(!sel || sel.rangeCount === 0) return 0;
  const range = sel.getRangeAt(0);
  if(!editor.contains(range.startContainer)) return 0;
  let offset = 0;
  const walker = document.createTreeWalker(editor, NodeFilter.SHOW_TEXT, null);
  for(let node = walker.nextNode(); node; node = walker.nextNode()){
    const len = (node.textContent || "").length;
    if(node === range.startContainer) return offset + Math.min(range.startOffset, len);
    offset += len;
  }
  return offset;
}
function setCursorOffset(target){
  const sel = window.getSelection();
  if(!sel) return;
  let offset = 0, last = null;
  const walker = document.createTreeWalker(editor, NodeFilter.SHOW_TEXT, null);
  for(let node = walker.nextNode(); node; node = walker.nextNode()){
    const len = (node.textContent || "").length;
    if(offset + len >= target){
      const range = document.createRange();
      range.setStart(node, Math.min(target - offset, len)); range.collapse(true);
      sel.removeAllRanges(); sel.addRange(range); return;
    }
    offset += len; last = node;
  }
  if(last){
    const range = document.createRange();
    range.setStart(last, (last.textContent || "").length); range.collapse(true);
    sel.removeAllRanges(); sel.addRange(range);
  }
}

// programmatic DOM changes keep the caret; they never fire "input", so every
// input event below is a user edit
function programmatic(fn){
  const caret = document.activeElement === editor ? getCursorOffset() : null;
  fn();
  if(caret !== null) setCursorOffset(caret);
}
function clearHighlights(){
  if(!editor.querySelector(".highlight")) return;
  programmatic(() => {
    editor.querySelectorAll(".highlight").forEach((el) => {
      el.replaceWith(document.createTextNode(el.textContent || ""));
    });
    editor.normalize();
  });
}
function renderThought(t){
  const content = $("#sidebar-content"), quote = $("#sidebar-quote");
  content.innerHTML = ""; quote.innerHTML = "";
  if(!t){ clearHighlights(); return; }
  const p = document.createElement("p");
  p.className = "thought-question"; p.textContent = t.question;
  content.appendChild(p);
  (t.sentences || []).forEach((s) => {
    const b = document.createElement("blockquote");
    b.className = "thought-sentence"; b.textContent = s; quote.appendChild(b);
  });
  if(t.html && t.ranges && t.ranges.length && editor.innerText === t.text){
    programmatic(() => { editor.innerHTML = t.html; });
  }
}

async function triggerThought(){
  const text = editor.innerText || "";
  if(text.trim().length < MIN_TEXT_LENGTH || isGenerating) return;
  if(debounceTimer){ clearTimeout(debounceTimer); debounceTimer = null; }
  isGenerating = true; setError(null); setLoading(true, "Thinking...");
  try{
    const resp = await fetch("/api/thought", {method:"POST", headers:{"Content-Type":"application/json"},
                                              body: JSON.stringify({text})});
    const data = await resp.json();
    if(!resp.ok) throw new Error(data.error || `HTTP ${resp.status}`);
    data.text = text;
    renderThought(data);
  }catch(e){
    setError(e.message || "Something went wrong. Try again.");
  }finally{
    isGenerating = false; setLoading(false);
  }
}

function scheduleSave(){
  clearTimeout(saveTimer);
  saveTimer = setTimeout(() => {
    const content = editor.innerText || "";
    fetch("/api/document", {method:"PUT", headers:{"Content-Type":"application/json"},
          body: JSON.stringify({content, cursor: Math.min(getCursorOffset(), content.length)})});
  }, SAVE_DEBOUNCE_MS);
}

editor.addEventListener("input", () => {
  scheduleSave();
  renderThought(null);
  clearTimeout(debounceTimer);
  debounceTimer = setTimeout(() => { debounceTimer = null; triggerThought(); }, DEBOUNCE_MS);
});
editor.addEventListener("keydown", () => { clearTimeout(debounceTimer); });
btn.addEventListener("click", () => { clearTimeout(debounceTimer); debounceTimer = null; triggerThought(); });

(async function init(){
  setLoading(true, "Loading model...");
  try{
    const doc = await (await fetch("/api/document")).json();
    if(doc.content){ editor.textContent = doc.content; editor.focus(); requestAnimationFrame(() => setCursorOffset(doc.cursor || 0)); }
    const health = await (await fetch("/api/health")).json();
    btn.disabled = !health.ready;
    if(!health.ready) setError("Model server is not available.");
  }catch(e){
    setError(e.message || "Failed to reach the server.");
  }finally{
    setLoading(false);
  }
})();
</script>
</body>
</html>
"""
    html = (html.replace("__DEBOUNCE_MS__", str(int(CFG.DEBOUNCE_SECONDS * 1000)))
                .replace("__SAVE_DEBOUNCE_MS__", str(int(CFG.SAVE_DEBOUNCE_SECONDS * 1000)))
                .replace("__MIN_TEXT_LENGTH__", str(CFG.MIN_TEXT_LENGTH)))
    return Response(html, mimetype="text/html")

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run the Clear editor web UI")
    ap.add_argument("--api-url", default=CFG.API_URL)
    ap.add_argument("--model", default=CFG.MODEL_ID)
    ap.add_argument("--api-key", default=CFG.API_KEY)
    ap.add_argument("--db", dest="db", default=CFG.DB_DSN)  # DSN: "sqlite:///path" or "memory://"
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    global _client, _store
    _store = make_store(args.db)
    _client = ChatCompletionClient(args.api_url, args.model, api_key=args.api_key)
    try:
        _client.load()
    except InferenceError as exc:
        # serve the editor anyway; /api/health reports ready=false
        log.error("%s", exc)

    try:
        app.run(host=args.host, port=args.port, debug=args.verbose)
    finally:
        _client.shutdown()
        _store.close()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
