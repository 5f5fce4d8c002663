from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Tuple

from . import config as CFG
from .inference import ChatCompletionClient, InferenceError
from .models import Range, Thought
from .scheduler import LogDisplay
from .session import EditorSession


class _OneShotDisplay(LogDisplay):
    """Resolves ``done`` with the first thought (or error) of the session."""
    def __init__(self, done: "asyncio.Future[Thought]") -> None:
        self.done = done

    def set_error(self, message: Optional[str]) -> None:
        super().set_error(message)
        if message and not self.done.done():
            self.done.set_exception(InferenceError(message))

    def show_thought(self, thought: Optional[Thought]) -> None:
        if thought is not None and not self.done.done():
            self.done.set_result(thought)


async def analyze(text: str, client) -> Tuple[Thought, EditorSession]:
    """Run one generation for ``text`` through a real session on the running loop."""
    loop = asyncio.get_running_loop()
    done: "asyncio.Future[Thought]" = loop.create_future()
    session = EditorSession(loop, client, display=_OneShotDisplay(done))
    try:
        session.on_input(text, len(text))
        if not session.trigger():
            raise ValueError(f"text too short: need at least {CFG.MIN_TEXT_LENGTH} characters")
        thought = await done
        return thought, session
    finally:
        session.close()


def mark(text: str, ranges: List[Range]) -> str:
    out, pos = [], 0
    for r in ranges:
        out.append(text[pos:r.start])
        out.append(f"[[{text[r.start:r.end]}]]")
        pos = r.end
    out.append(text[pos:])
    return "".join(out)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Ask a reflective question about a piece of writing")
    p.add_argument("--file", default=None, help="Text file to read (default: stdin)")
    p.add_argument("--api-url", default=CFG.API_URL, help="OpenAI-compatible base URL")
    p.add_argument("--model", default=CFG.MODEL_ID)
    p.add_argument("--api-key", default=CFG.API_KEY)
    p.add_argument("--json", action="store_true", help="Emit JSON")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()
    else:
        text = sys.stdin.read()

    client = ChatCompletionClient(args.api_url, args.model, api_key=args.api_key)
    try:
        client.load()
        thought, session = asyncio.run(analyze(text, client))
    except (InferenceError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    finally:
        client.shutdown()

    ranges = session.surface.highlight_ranges()
    if args.json:
        plan = session.last_plan
        print(json.dumps({
            "question": thought.question,
            "sentences": thought.sentences,
            "ranges": [[r.start, r.end] for r in ranges],
            "dropped": plan.dropped if plan else 0,
        }, ensure_ascii=False, indent=2))
    else:
        print(thought.question)
        if ranges:
            print()
            print(mark(session.surface.plain_text(), ranges))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
