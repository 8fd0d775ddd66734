# FILE: app/routing/templates.py
"""Localized reply templates and the greeting phrase list."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from .schemas import Language

WELCOME: Dict[Language, str] = {
    Language.ENGLISH: "Hello! How can I help you today?",
    Language.RUSSIAN: "Здравствуйте! Чем я могу вам помочь?",
    Language.SPANISH: "¡Hola! ¿En qué puedo ayudarle hoy?",
}

NO_INFORMATION: Dict[Language, str] = {
    Language.ENGLISH: "I don't have that information. Please contact the staff.",
    Language.RUSSIAN: "У меня нет этой информации. Пожалуйста, обратитесь к сотрудникам.",
    Language.SPANISH: "No tengo esa información. Por favor, contacte con el personal.",
}

OFF_TOPIC: Dict[Language, str] = {
    Language.ENGLISH: "Sorry, I can only answer questions related to the information I have been given.",
    Language.RUSSIAN: "Извините, я могу отвечать только на вопросы, связанные с предоставленной мне информацией.",
    Language.SPANISH: "Lo siento, solo puedo responder preguntas relacionadas con la información que se me ha proporcionado.",
}

EMPTY_KNOWLEDGE: Dict[Language, str] = {
    Language.ENGLISH: "The knowledge base is empty.",
    Language.RUSSIAN: "База знаний пуста.",
    Language.SPANISH: "La base de conocimientos está vacía.",
}

SNIPPET_HEADER: Dict[Language, str] = {
    Language.ENGLISH: "From \"{title}\":",
    Language.RUSSIAN: "Из «{title}»:",
    Language.SPANISH: "De \"{title}\":",
}

LANGUAGE_NAMES: Dict[Language, str] = {
    Language.ENGLISH: "English",
    Language.RUSSIAN: "Russian",
    Language.SPANISH: "Spanish",
}

# Compared against normalize(message): lowercase, no punctuation
GREETING_PHRASES: Tuple[str, ...] = (
    "hi", "hello", "hey", "hiya", "good morning", "good afternoon", "good evening",
    "привет", "здравствуйте", "здравствуй", "добрый день", "добрый вечер", "доброе утро",
    "hola", "buenos días", "buenos dias", "buenas tardes", "buenas noches",
)


def welcome(language: Language, configured: Optional[str] = None) -> str:
    if configured and configured.strip():
        return configured
    return WELCOME[language]


def snippet_reply(language: Language, title: str, snippet: str) -> str:
    return SNIPPET_HEADER[language].format(title=title) + "\n\n" + snippet
