"""Canned, context-aware replies used when the model is unavailable.

Returning a supportive message with HTTP 200 (marked ``fallback: true``)
instead of an error is a product decision: people using a mental health
app should never be shown a raw failure.
"""

import re
from collections.abc import Sequence

from mindmend_relay.entities import ChatMessage, Role, UserProfile
from mindmend_relay.utils import CandidatePicker

MOOD_TEMPLATES = [
    "I'm here with you, {name}. I noticed you've been feeling {mood}. What would feel most "
    "supportive right now: talking through it, trying a grounding exercise, or taking a small "
    "action step?",
    "Thank you for checking in, {name}. Feeling {mood} is completely valid. Would it help to "
    "pause for a slow breath together before we talk about what's on your mind?",
    "{name}, I hear you. Since you've been feeling {mood} lately, let's take this one small "
    "step at a time. What's weighing on you most right now?",
]

KEYWORD_TEMPLATES = {
    "anxious": [
        "I understand you're feeling anxious, {name}. Try the 4-7-8 breathing technique: "
        "breathe in for 4, hold for 7, exhale for 8. You're not alone in this.",
        "Anxiety can feel overwhelming, {name}. Let's ground ourselves: name five things you "
        "can see around you right now.",
    ],
    "sad": [
        "It's okay to feel sad sometimes, {name}. Your feelings are valid. Would you like to "
        "try a gentle self-compassion exercise?",
        "I'm sorry you're feeling down, {name}. Be gentle with yourself today. What's one kind "
        "thing you could do for yourself right now?",
    ],
    "stressed": [
        "Stress can be overwhelming, {name}. Let's break things down into smaller, manageable "
        "steps. What's one small thing you can do right now?",
        "That sounds like a lot to carry, {name}. Let's pick just one thing to focus on first. "
        "What feels most urgent?",
    ],
}

KEYWORDS = {
    "anxious": ("anxious", "anxiety", "worried", "nervous", "panic"),
    "sad": ("sad", "down", "lonely", "depressed", "hopeless"),
    "stressed": ("stressed", "stress", "overwhelmed", "pressure"),
}

GENERIC_TEMPLATES = [
    "Thank you for reaching out, {name}. I'm here to support you. What's on your mind today?",
    "Thank you for sharing, {name}. I'm here to support you. What would feel most helpful right "
    "now: listening, a grounding exercise, or a small next step?",
    "I'm glad you're here, {name}. Take your time. What would you like to talk about?",
]

SPEECH_FALLBACK_TEXT = "I'm having trouble speaking right now, but I'm still here with you."

_WORD = re.compile(r"[a-z']+")


class FallbackGenerator:
    """Pick a supportive canned message using whatever context is available.

    Priority of context:
    1. The user's most recent mood label
    2. Emotion keywords in the latest user message
    3. Nothing: a generic supportive message

    Every template addresses the user by name ("friend" when unknown).
    """

    def __init__(self, picker: CandidatePicker | None = None) -> None:
        self._picker = picker or CandidatePicker()

    @classmethod
    def create(cls, seed: int | None = None) -> "FallbackGenerator":
        return cls(picker=CandidatePicker(seed))

    def candidates(
        self,
        messages: Sequence[ChatMessage] = (),
        profile: UserProfile | None = None,
    ) -> list[str]:
        """All messages applicable to this context, already filled in."""
        profile = profile or UserProfile()
        name = profile.display_name

        mood = profile.latest_mood
        if mood:
            return [t.format(name=name, mood=mood) for t in MOOD_TEMPLATES]

        topic = self._detect_topic(messages)
        if topic:
            return [t.format(name=name) for t in KEYWORD_TEMPLATES[topic]]

        return [t.format(name=name) for t in GENERIC_TEMPLATES]

    def chat_reply(
        self,
        messages: Sequence[ChatMessage] = (),
        profile: UserProfile | None = None,
    ) -> str:
        """Pick one applicable message uniformly at random."""
        return self._picker.pick(self.candidates(messages, profile))

    def speech_text(self, text: str | None = None) -> str:
        """Text the client should speak locally when synthesis fails."""
        return text or SPEECH_FALLBACK_TEXT

    @staticmethod
    def _detect_topic(messages: Sequence[ChatMessage]) -> str | None:
        latest = next((m.content.lower() for m in reversed(messages) if m.role == Role.USER), "")
        if not latest:
            return None
        words = set(_WORD.findall(latest))
        for topic, keywords in KEYWORDS.items():
            if words.intersection(keywords):
                return topic
        return None
