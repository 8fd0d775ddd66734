"""
Answer-routing configuration.

All tunables in one place for easy adjustment. The two scoring constants are
defaults only: an assistant's routing_config overrides them per assistant.
"""

import os

# ============================================================================
# RELEVANCE SCORING
# ============================================================================

# Top score at or above this answers with the snippet directly
HIGH_CONFIDENCE_THRESHOLD: float = float(os.getenv("BEACON_HIGH_CONFIDENCE_THRESHOLD", "0.8"))

# Entries sharing fewer keywords than this with the query are not candidates
MIN_MATCHED_KEYWORDS: int = int(os.getenv("BEACON_MIN_MATCHED_KEYWORDS", "2"))

# Snippet window; the window opens this many characters before the first hit
SNIPPET_MAX_LENGTH: int = int(os.getenv("BEACON_SNIPPET_MAX_LENGTH", "500"))
SNIPPET_LEAD_CHARS: int = 100
ELLIPSIS = "..."

# ============================================================================
# GREETINGS
# ============================================================================

GREETING_MAX_LENGTH: int = int(os.getenv("BEACON_GREETING_MAX_LENGTH", "30"))

# ============================================================================
# RESPONSE CACHE
# ============================================================================

# Only answers shorter than this are cached
CACHE_MAX_RESPONSE_CHARS: int = int(os.getenv("BEACON_CACHE_MAX_RESPONSE_CHARS", "4000"))

# ============================================================================
# CONTEXT ASSEMBLY
# ============================================================================

CONTEXT_TOP_ENTRIES: int = 3
CONTEXT_EXTRA_ENTRIES: int = 2
CONTEXT_MAX_CHARS: int = int(os.getenv("BEACON_CONTEXT_MAX_CHARS", "12000"))
CONTEXT_EXTRA_ENTRY_CHARS: int = int(os.getenv("BEACON_EXTRA_ENTRY_CHARS", "1500"))

# Most recent conversation messages sent to the backend, current question included
CONTEXT_HISTORY_MESSAGES: int = int(os.getenv("BEACON_HISTORY_LIMIT", "20"))

# ============================================================================
# RATE LIMITING
# ============================================================================

RATE_LIMIT_DEFAULT_MAX: int = int(os.getenv("BEACON_RATE_LIMIT_MAX", "20"))
RATE_LIMIT_DEFAULT_WINDOW: int = int(os.getenv("BEACON_RATE_LIMIT_WINDOW", "60"))
RATE_LIMIT_BACKEND: str = os.getenv("BEACON_RATE_LIMIT_BACKEND", "memory").strip().lower()
REDIS_URL: str = os.getenv("BEACON_REDIS_URL", "redis://localhost:6379/0")
