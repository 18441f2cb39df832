import os
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from openai import OpenAI

from errors import ServiceError
from logging_bus import emit
from logic.conversation import ConversationWindow
from logic.prompt_builder import PromptContext, build_prompt
from state import Role
from utils import approx_tokens

DEFAULT_MODEL = "gpt-4o-mini"
WINDOW_SIZE = 10
FALLBACK_MESSAGE = "I'm having trouble connecting right now. Please try again."

SYSTEM_INSTRUCTION = """You are Tomatodo, a productivity assistant that pairs with a Pomodoro timer.

Help the user turn goals and projects into clear, actionable tasks.
Reply in the language the user writes in.

For every message:
1. Consider the context block (active task, task list, timer state) and the user's request.
2. Write a short, friendly reply in the "text" field.
3. When breaking work down would help, propose 3-5 tasks in "suggestedTasks".
   Each task has a "title" (string) and "estPomodoros" (integer count of
   25-minute focus sessions, estimated conservatively).
   When no task suggestions are useful, return an empty array.

Respond with one valid JSON object and nothing else. It must have exactly two
properties: "text" (string) and "suggestedTasks" (array of
{"title": string, "estPomodoros": number}).
"""


class OpenAIChatClient:
    """Completion client for the OpenAI Chat Completions API.

    The SDK client is created on first use so a missing API key surfaces as a
    failed request rather than a startup crash.
    """

    def __init__(self, model: str = DEFAULT_MODEL, api_key: Optional[str] = None,
                 temperature: Optional[float] = None):
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self._client = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key or os.getenv("OPENAI_API_KEY"))
        return self._client

    def complete(self, messages: List[dict]) -> str:
        kwargs = {}
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            **kwargs,
        )
        return response.choices[0].message.content or "{}"


@dataclass
class AssistantResult:
    text: str
    generation: int
    ok: bool = True


class AssistantSession:
    """Request/response cycle with the text-generation service.

    ``generation`` changes every time the window is reset so callers can tell
    whether a reply still belongs to the current conversation.
    """

    def __init__(self, client, window_size: int = WINDOW_SIZE,
                 instruction: str = SYSTEM_INSTRUCTION):
        self.client = client
        self.window = ConversationWindow(instruction, window_size)
        self.generation = 0
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self.window.reset()
            self.generation += 1
        emit("INFO", "CHAT", "Started new conversation", generation=self.generation)

    def send(self, user_text: str, context: Optional[PromptContext] = None) -> AssistantResult:
        message = build_prompt(user_text, context)
        with self._lock:
            generation = self.generation
            self.window.append(Role.USER, message)
            dropped = self.window.trim()
            payload = self.window.to_wire()
        if dropped:
            emit("INFO", "CHAT", "Window trimmed", dropped=dropped)
        emit("INFO", "NETWORK", "Sending request", entries=len(payload),
             est_tokens=sum(approx_tokens(m["content"]) for m in payload))
        start = time.time()
        try:
            raw = self._call(payload)
        except ServiceError as e:
            emit("ERROR", "NETWORK", "Request failed", error=str(e))
            return AssistantResult(FALLBACK_MESSAGE, generation, ok=False)
        emit("INFO", "NETWORK", "Request complete", latency_ms=int((time.time() - start) * 1000))
        with self._lock:
            if generation == self.generation:
                self.window.append(Role.ASSISTANT, raw)
        return AssistantResult(raw, generation)

    def _call(self, payload: List[dict]) -> str:
        try:
            raw = self.client.complete(payload)
        except Exception as e:
            raise ServiceError(str(e)) from e
        if not isinstance(raw, str):
            raise ServiceError(f"Unexpected response type {type(raw).__name__}")
        return raw


__all__ = [
    "DEFAULT_MODEL",
    "WINDOW_SIZE",
    "FALLBACK_MESSAGE",
    "SYSTEM_INSTRUCTION",
    "OpenAIChatClient",
    "AssistantResult",
    "AssistantSession",
]
