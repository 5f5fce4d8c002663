from __future__ import annotations
import os

# /* ~~~ generation scheduling ~~~ */
DEBOUNCE_SECONDS: float = 2.5      # quiet period after the last keystroke
MIN_TEXT_LENGTH: int = 20          # trimmed characters required before generating
SAVE_DEBOUNCE_SECONDS: float = 0.4

# /* ~~~ inference service (OpenAI-compatible chat completions) ~~~ */
API_URL: str = os.environ.get("CLEAR_API_URL", "http://127.0.0.1:11434/v1")
API_KEY: str = os.environ.get("CLEAR_API_KEY", "")
MODEL_ID: str = os.environ.get("CLEAR_MODEL", "llama3.2:1b")
REQUEST_TIMEOUT: float = float(os.environ.get("CLEAR_TIMEOUT", "120"))
TEMPERATURE: float = 0.7
MAX_TOKENS: int = 256

# /* ~~~ persistence ~~~ */
STORAGE_KEY: str = "clear-editor-content"
DB_DSN: str = os.environ.get("CLEAR_DB", "memory://")   # "sqlite:///path" or "memory://"

# /* ~~~ sentence locating ~~~ */
MIN_PREFIX_WORDS: int = 1     # shortest word-prefix tried by the last locate tier
MIN_ANCHOR_WORD: int = 3      # shortest word usable as a fallback anchor

FALLBACK_QUESTION = "What stands out to you in what you wrote?"
GENERIC_ERROR = "Something went wrong. Try again."

SYSTEM_PROMPT = """You are a thoughtful psychologist reviewing a person's reflective notes. Your role is to occasionally ask one insightful question that invites deeper self-reflection, not to advise or interpret, but to gently probe.

Given the following text, identify 1-2 sentences that seem especially meaningful or ripe for reflection. Then ask ONE short, open-ended question (1-2 sentences) that could help the writer think more deeply about what they've written.

Respond ONLY with valid JSON in this exact format, no other text:
{"question": "Your question here", "sentences": ["first sentence", "second sentence if applicable"]}"""
