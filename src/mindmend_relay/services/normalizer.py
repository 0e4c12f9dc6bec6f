"""Request normalization for the Gemini API.

Gemini has no system role and calls the assistant ``model``, so caller
conversations are reshaped before they are sent. The prompt templates for
personalized and single-message chat live here too.
"""

import re
from collections.abc import Sequence
from typing import Any

from mindmend_relay.entities import ChatMessage, Role, UserProfile

PERSONA_PROMPT = """You are Mira, an empathetic AI mental wellness coach specializing in Cognitive Behavioral Therapy (CBT) techniques.

User Context:
- Name: {name}
- {mood_summary}
- Progress: {completed} CBT exercises completed, {streak}-day streak
- Primary audience: Young adults in India dealing with academic and social pressure

Guidelines:
- Always be supportive, non-judgmental, and empathetic
- Use evidence-based CBT techniques and mindfulness practices
- Keep responses concise but meaningful (2-3 sentences)
- Never provide medical diagnosis or replace professional therapy
- If someone mentions self-harm or suicide, immediately suggest professional help
- Address the user by name when it feels natural"""

SIMPLE_PROMPT = (
    'You are Mira, an empathetic AI wellness coach specializing in CBT techniques for young '
    'adults in India. User says: "{message}". Their mood history: {moods}. Progress: '
    "{completed} exercises done, {streak} day streak. Respond with empathy and practical CBT "
    "guidance in 2-3 sentences. Use natural, conversational language without any markdown "
    "formatting, asterisks, or special symbols."
)

CHAT_GENERATION_CONFIG = {
    "temperature": 0.9,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 300,
    "candidateCount": 1,
}

SIMPLE_GENERATION_CONFIG = {
    "temperature": 0.85,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 220,
}

STREAM_GENERATION_CONFIG = {
    "temperature": 0.9,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 500,
}

_MARKDOWN_RULES = [
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"_(.*?)_"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"#{1,6}\s"), ""),
    (re.compile(r"\s+"), " "),
]


def _part(role: str, text: str) -> dict[str, Any]:
    return {"role": role, "parts": [{"text": text}]}


class RequestNormalizer:
    """Convert caller payloads into Gemini ``contents``."""

    def to_contents(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """Map a conversation onto Gemini roles.

        System messages are not sent on their own: the latest system text is
        merged into the first user turn that follows it. Assistant turns
        become ``model`` turns.
        """
        contents: list[dict[str, Any]] = []
        system_prompt = ""
        merged = False

        for message in messages:
            if message.role == Role.SYSTEM:
                system_prompt = message.content
            elif message.role == Role.USER:
                if system_prompt and not merged:
                    text = f"{system_prompt}\n\n---\n\nUser: {message.content}"
                    merged = True
                else:
                    text = message.content
                contents.append(_part("user", text))
            else:
                contents.append(_part("model", message.content))

        return contents

    def personalize(
        self, messages: Sequence[ChatMessage], profile: UserProfile | None
    ) -> list[ChatMessage]:
        """Prepend a persona system prompt built from the profile.

        Conversations that already carry a system message are left alone.
        """
        if profile is None or any(m.role == Role.SYSTEM for m in messages):
            return list(messages)
        system = ChatMessage(role=Role.SYSTEM, content=self.personalized_system_prompt(profile))
        return [system, *messages]

    @staticmethod
    def personalized_system_prompt(profile: UserProfile) -> str:
        recent = [m for m in profile.mood_history[-5:] if m]
        mood_summary = (
            f"Recent mood pattern: {' -> '.join(recent)}" if recent else "No recent mood data"
        )
        return PERSONA_PROMPT.format(
            name=profile.display_name,
            mood_summary=mood_summary,
            completed=profile.progress.get("completedExercises", 0) or 0,
            streak=profile.progress.get("streak", 0) or 0,
        )

    @staticmethod
    def simple_prompt(message: str, mood_history: Sequence[str], progress: dict[str, Any]) -> str:
        """Template a single message into a self-contained prompt."""
        moods = ", ".join(m for m in list(mood_history)[-5:] if m) or "none"
        return SIMPLE_PROMPT.format(
            message=message,
            moods=moods,
            completed=progress.get("completedExercises", 0) or 0,
            streak=progress.get("streak", 0) or 0,
        )

    def stream_contents(
        self, message: str, history: Sequence[ChatMessage]
    ) -> list[dict[str, Any]]:
        """History plus the new user message, for the streaming endpoint."""
        return self.to_contents([*history, ChatMessage(role=Role.USER, content=message)])

    @staticmethod
    def clean_reply(text: str) -> str:
        """Strip markdown decoration so the reply reads as plain speech."""
        for pattern, replacement in _MARKDOWN_RULES:
            text = pattern.sub(replacement, text)
        return text.strip()
