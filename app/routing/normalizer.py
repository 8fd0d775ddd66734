# FILE: app/routing/normalizer.py
"""
Text normalization, keyword extraction and language detection.

normalize() is the single canonical form used by the FAQ matcher, the cache
key and the greeting check, so two questions that differ only by case,
punctuation or spacing are treated as the same question.

Language detection is a best-effort heuristic: it only picks which localized
template to use, so a wrong guess costs a reply in the wrong language, never a
wrong answer.
"""
from __future__ import annotations

import re
from typing import FrozenSet, Set

from .schemas import Language

# Quotes (straight, curly, guillemets), brackets, terminal and clause punctuation
_PUNCTUATION_RE = re.compile(r"[?!.,;:'\"«»“”„‘’`()\[\]{}<>¿¡…]")
_WHITESPACE_RE = re.compile(r"\s+")

_CYRILLIC_RE = re.compile(r"[Ѐ-ӿ]")
_LATIN_RE = re.compile(r"[a-zA-ZÀ-ɏ]")
_SPANISH_DIACRITICS_RE = re.compile(r"[ñáéíóúü¿¡]", re.IGNORECASE)

SPANISH_MARKER_WORDS: FrozenSet[str] = frozenset({
    "hola", "que", "qué", "como", "cómo", "donde", "dónde", "cuando", "cuándo",
    "por", "para", "los", "las", "una", "del", "biblioteca", "libro", "libros",
    "gracias", "horario", "puedo", "tiene", "tienen", "está", "esta", "el", "la",
})
SPANISH_MARKER_THRESHOLD = 2

MIN_KEYWORD_LENGTH = 3

# =============================================================================
# STOPWORDS
# =============================================================================

# English, including question-framing words ("what time", "tell me") that
# would otherwise dilute the overlap score of a short question.
_STOPWORDS_EN = {
    "a", "about", "above", "after", "again", "against", "all", "also", "am", "an",
    "and", "any", "are", "aren", "as", "at", "be", "because", "been", "before",
    "being", "below", "between", "both", "but", "by", "can", "cannot", "could",
    "did", "didn", "do", "does", "doesn", "doing", "don", "down", "during", "each",
    "few", "for", "from", "further", "get", "got", "had", "has", "have", "having",
    "he", "her", "here", "hers", "herself", "him", "himself", "his", "how", "i",
    "if", "in", "into", "is", "isn", "it", "its", "itself", "just", "know", "let",
    "like", "me", "more", "most", "much", "must", "my", "myself", "need", "no",
    "nor", "not", "now", "of", "off", "on", "once", "only", "or", "other", "our",
    "ours", "ourselves", "out", "over", "own", "please", "same", "shall", "she",
    "should", "so", "some", "such", "tell", "than", "thank", "thanks", "that",
    "the", "their", "theirs", "them", "themselves", "then", "there", "these",
    "they", "this", "those", "through", "time", "to", "too", "under", "until",
    "up", "very", "want", "was", "wasn", "we", "were", "weren", "what", "when",
    "where", "which", "while", "who", "whom", "why", "will", "with", "would",
    "you", "your", "yours", "yourself", "yourselves",
}

_STOPWORDS_RU = {
    "а", "без", "бы", "был", "была", "были", "было", "быть", "в", "вам", "вас",
    "весь", "во", "вот", "все", "всё", "всего", "вы", "где", "да", "даже", "для",
    "до", "его", "ее", "её", "если", "есть", "еще", "ещё", "же", "за", "здесь",
    "и", "из", "или", "им", "их", "к", "как", "какой", "какая", "какие", "когда",
    "кто", "ли", "либо", "мне", "меня", "мы", "на", "над", "нам", "нас", "не",
    "него", "нее", "нет", "ни", "них", "но", "ну", "о", "об", "он", "она", "они",
    "оно", "от", "очень", "по", "под", "пожалуйста", "при", "с", "скажите",
    "со", "так", "также", "такой", "там", "те", "тем", "то", "того", "тоже",
    "только", "том", "ты", "у", "уже", "хочу", "чем", "что", "чтобы", "эта",
    "эти", "это", "этот", "я", "можно", "могу", "нужно",
}

_STOPWORDS_ES = {
    "el", "la", "los", "las", "un", "una", "unos", "unas", "de", "del", "que",
    "qué", "en", "por", "para", "con", "sin", "como", "cómo", "es", "son",
    "está", "están", "hay", "puedo", "puede", "donde", "dónde", "cuando",
    "cuándo", "mi", "tu", "su", "sus", "al", "lo", "le", "se", "y", "o",
}

STOPWORDS: FrozenSet[str] = frozenset(_STOPWORDS_EN | _STOPWORDS_RU | _STOPWORDS_ES)


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize(text: str) -> str:
    """
    Canonical form of a message.

    - Lowercase
    - Strip quotes, brackets and terminal punctuation
    - Collapse runs of whitespace to single spaces
    - Trim
    """
    if not text:
        return ""
    text = text.lower()
    text = _PUNCTUATION_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def _light_stem(token: str) -> str:
    """Drop a plural/3rd-person trailing 's' so "opens" and "open" overlap.

    The result is always a prefix of the token, so it can still be located in
    the raw content when extracting a snippet.
    """
    if len(token) > 4 and token.endswith("s") and not token.endswith(("ss", "us", "is")):
        return token[:-1]
    return token


def extract_keywords(text: str) -> Set[str]:
    """Stopword-filtered keyword set of `text` (order irrelevant, duplicates collapse)."""
    keywords: Set[str] = set()
    for token in normalize(text).split(" "):
        if len(token) < MIN_KEYWORD_LENGTH or token in STOPWORDS:
            continue
        stem = _light_stem(token)
        if stem in STOPWORDS:
            continue
        keywords.add(stem)
    return keywords


# =============================================================================
# LANGUAGE DETECTION
# =============================================================================

def detect_language(text: str) -> Language:
    """
    Guess the message language, in priority order:

    1. Cyrillic letters outnumber Latin letters -> Russian
    2. Spanish diacritics/inverted punctuation, or enough Spanish marker words -> Spanish
    3. Otherwise English
    """
    if not text:
        return Language.ENGLISH

    cyrillic = len(_CYRILLIC_RE.findall(text))
    latin = len(_LATIN_RE.findall(text))
    if cyrillic > latin:
        return Language.RUSSIAN

    if _SPANISH_DIACRITICS_RE.search(text):
        return Language.SPANISH

    words = normalize(text).split(" ")
    markers = sum(1 for w in words if w in SPANISH_MARKER_WORDS)
    if markers >= SPANISH_MARKER_THRESHOLD:
        return Language.SPANISH

    return Language.ENGLISH
