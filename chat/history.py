"""Stored chat history: capturing the streamed reply and grouping turns into sessions."""

import json
import logging
from datetime import timedelta

logger = logging.getLogger(__name__)

SESSION_GAP = timedelta(minutes=30)
TITLE_LENGTH = 50


class ReplyCollector:
    """Accumulates assistant text from OpenAI-style SSE chunks as they pass through.

    Lines may be split across chunks, so partial lines are buffered until
    their newline arrives.
    """

    def __init__(self):
        self._buffer = b""
        self._parts = []
        self.done = False

    @property
    def text(self):
        return "".join(self._parts)

    def feed(self, chunk):
        self._buffer += chunk
        while not self.done and b"\n" in self._buffer:
            line, self._buffer = self._buffer.split(b"\n", 1)
            self._line(line.decode("utf-8", errors="replace").rstrip("\r"))

    def _line(self, line):
        if not line.startswith("data: "):
            return
        payload = line[6:].strip()
        if payload == "[DONE]":
            self.done = True
            return
        try:
            event = json.loads(payload)
            content = event["choices"][0]["delta"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.debug("Skipping unparsable chat event %r", payload[:100])
            return
        if content:
            self._parts.append(content)


def group_sessions(messages):
    """Split time-ordered *messages* into sessions wherever the gap exceeds 30 minutes.

    Returns session dicts, newest session first.
    """
    sessions = []
    current = []
    last_time = None
    for message in messages:
        if last_time is not None and message.created_at - last_time > SESSION_GAP:
            sessions.append(_session(current))
            current = []
        current.append(message)
        last_time = message.created_at
    if current:
        sessions.append(_session(current))
    sessions.reverse()
    return sessions


def _session(messages):
    first_question = next((m for m in messages if m.role == "user"), None)
    return {
        "title": first_question.content[:TITLE_LENGTH] if first_question else "Chat",
        "started_at": messages[0].created_at,
        "messages": [
            {"role": m.role, "content": m.content, "created_at": m.created_at}
            for m in messages
        ],
    }
