"""Displayed chat log and its persisted form.

Stored rows are ``{role, content}``. Assistant messages that carry
suggestions, or whose text would itself parse as a reply, are stored as the
JSON payload ``{text, suggestedTasks}`` so they reload unchanged.
"""
from __future__ import annotations

import json
from typing import Callable, List, Optional

from pydantic import TypeAdapter

from errors import NotFoundError, ParseError
from logging_bus import emit
from persistence import CHAT_KEY, KeyValueStore, load_record, save_record
from state import AssistantReply, ChatMessage, Role, StoredEntry
from utils import new_id
from .suggestions import decode_reply

GREETING = "Hello! I can help you break down your projects. Tell me what you want to achieve today."

STORED_LOG = TypeAdapter(List[StoredEntry])


def _reads_as_payload(text: str) -> bool:
    try:
        decode_reply(text)
    except ParseError:
        return False
    return True


def encode_message(message: ChatMessage) -> StoredEntry:
    # plain text that would itself decode as a payload gets wrapped too
    if message.role is Role.ASSISTANT and (message.suggestions or _reads_as_payload(message.text)):
        reply = AssistantReply(text=message.text, suggested_tasks=message.suggestions)
        return StoredEntry(role=message.role, content=json.dumps(reply.to_payload(), ensure_ascii=False))
    return StoredEntry(role=message.role, content=message.text)


def decode_entry(entry: StoredEntry, message_id: str) -> ChatMessage:
    if entry.role is Role.ASSISTANT:
        try:
            reply = decode_reply(entry.content)
        except ParseError:
            pass
        else:
            return ChatMessage(id=message_id, role=entry.role, text=reply.text,
                               suggestions=reply.suggested_tasks or None)
    return ChatMessage(id=message_id, role=entry.role, text=entry.content)


class ChatTranscript:
    def __init__(self, store: KeyValueStore, session=None, key: str = CHAT_KEY,
                 id_factory: Callable[[], str] = new_id):
        self.store = store
        self.session = session
        self.key = key
        self.id_factory = id_factory
        self.messages: List[ChatMessage] = []

    def __len__(self) -> int:
        return len(self.messages)

    def _greeting(self) -> ChatMessage:
        return ChatMessage(id=self.id_factory(), role=Role.ASSISTANT, text=GREETING)

    def load_history(self) -> List[ChatMessage]:
        saved = load_record(self.store, self.key, STORED_LOG)
        entries = [e for e in (saved or []) if e.role is not Role.SYSTEM]
        if entries:
            self.messages = [decode_entry(e, self.id_factory()) for e in entries]
            emit("INFO", "CHAT", "Restored transcript", count=len(self.messages))
        else:
            self.messages = [self._greeting()]
        return self.messages

    def persist(self) -> bool:
        return save_record(self.store, self.key, [encode_message(m) for m in self.messages], STORED_LOG)

    def append(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message)
        self.persist()
        return message

    def add_user(self, text: str) -> ChatMessage:
        return self.append(ChatMessage(id=self.id_factory(), role=Role.USER, text=text))

    def add_assistant(self, reply: AssistantReply) -> ChatMessage:
        return self.append(ChatMessage(
            id=self.id_factory(),
            role=Role.ASSISTANT,
            text=reply.text,
            suggestions=list(reply.suggested_tasks) or None,
        ))

    def find(self, message_id: str) -> ChatMessage:
        for message in self.messages:
            if message.id == message_id:
                return message
        raise NotFoundError(f"No message with id {message_id}")

    def last(self, role: Optional[Role] = None) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if role is None or message.role is role:
                return message
        return None

    def clear(self) -> None:
        self.messages = [self._greeting()]
        self.persist()
        if self.session is not None:
            self.session.reset()
        emit("INFO", "CHAT", "Transcript cleared")


__all__ = ["ChatTranscript", "GREETING", "encode_message", "decode_entry", "STORED_LOG"]
