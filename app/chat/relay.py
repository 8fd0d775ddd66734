# FILE: app/chat/relay.py
"""
Server-sent event relay for chat answers.

Wire format, one JSON payload per frame:

    data: {"content": "<delta>"}\\n\\n     (zero or more, in order)
    data: {"done": true}\\n\\n              (terminal; "cached": true on a cache hit)
    data: {"error": "<message>"}\\n\\n     (terminal on a mid-stream failure, no done frame)

Generative answers are primed before the HTTP response starts: the first delta
is pulled from the backend up front, so a backend that fails before producing
anything surfaces as a plain 500 instead of an empty event stream.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Iterable, Iterator, List, Optional

from app.errors import UpstreamFailure
from app.llm.backend import CancellationToken, GenerativeBackend

logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}

# Client-facing failure text; provider details stay in the log.
CHAT_FAILED_MESSAGE = "Chat failed"
STREAM_FAILED_MESSAGE = "Streaming failed"


def sse_frame(payload: dict) -> str:
    return "data: " + json.dumps(payload, ensure_ascii=False) + "\n\n"


def chunk_text(s: str, chunk_size: int = 120) -> List[str]:
    if not s:
        return []
    return [s[i : i + chunk_size] for i in range(0, len(s), chunk_size)]


async def direct_answer_stream(text: str, cached: bool = False) -> AsyncIterator[str]:
    """Frames for an answer that is already complete (greeting, faq, snippet, cache)."""
    for chunk in chunk_text(text):
        yield sse_frame({"content": chunk})
    done = {"done": True}
    if cached:
        done["cached"] = True
    yield sse_frame(done)


# =============================================================================
# GENERATIVE STREAM
# =============================================================================

@dataclass
class PrimedStream:
    """A backend stream whose first delta has already been received."""
    upstream: AsyncIterator[str]
    first_delta: Optional[str]
    cancel_token: CancellationToken
    started: bool = False

    @property
    def exhausted(self) -> bool:
        return self.first_delta is None

    async def release(self) -> None:
        """Cancel and close the upstream call if the relay never began iterating it."""
        if self.started:
            return
        self.started = True
        self.cancel_token.cancel("response_not_started")
        logger.warning("[relay] response closed before streaming began; cancelling upstream")
        await self.upstream.aclose()


async def prime_backend(
    backend: GenerativeBackend,
    system_instruction: str,
    history: List[Dict[str, str]],
    model_selector: Optional[str] = None,
) -> PrimedStream:
    """
    Start the backend call and wait for its first delta.

    Raises:
        UpstreamFailure: If the backend fails before producing any output
    """
    token = CancellationToken()
    upstream = backend.stream(
        system_instruction,
        history,
        cancel_token=token,
        model_selector=model_selector,
    )
    try:
        first = await upstream.__anext__()
    except StopAsyncIteration:
        return PrimedStream(upstream=upstream, first_delta=None, cancel_token=token)
    except Exception as e:
        logger.exception("[relay] backend failed before first delta: %s", e)
        raise UpstreamFailure(CHAT_FAILED_MESSAGE) from e
    return PrimedStream(upstream=upstream, first_delta=first, cancel_token=token)


async def generative_stream(
    primed: PrimedStream,
    on_complete: Callable[[str], None],
) -> AsyncIterator[str]:
    """
    Relay the backend deltas in order, then hand the full answer to on_complete
    and emit the done frame.

    A failure after the first delta ends the stream with an error frame and no
    done frame; on_complete is not called. A client disconnect cancels the
    token and closes the upstream call.
    """
    primed.started = True
    accumulated = ""
    try:
        if primed.first_delta is not None:
            accumulated += primed.first_delta
            yield sse_frame({"content": primed.first_delta})

            async for delta in primed.upstream:
                if not delta:
                    continue
                accumulated += delta
                yield sse_frame({"content": delta})

    except (asyncio.CancelledError, GeneratorExit):
        primed.cancel_token.cancel("client_disconnect")
        logger.warning(f"[relay] client_disconnect after {len(accumulated)} chars; cancelling upstream")
        await primed.upstream.aclose()
        raise
    except Exception as e:
        logger.exception("[relay] stream failed mid-answer: %s", e)
        await primed.upstream.aclose()
        yield sse_frame({"error": STREAM_FAILED_MESSAGE})
        return

    on_complete(accumulated)
    yield sse_frame({"done": True})


# =============================================================================
# CONSUMER SIDE
# =============================================================================

def iter_sse_payloads(lines: Iterable[str]) -> Iterator[dict]:
    """
    Parse text-event-stream lines into payload dicts.

    Frames that are not `data:` lines, or whose data is not a JSON object, are
    skipped so one corrupt frame does not lose the rest of the answer.
    """
    for raw in lines:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        for line in raw.splitlines():
            line = line.strip()
            if not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"[relay] skipping malformed frame: {data[:80]!r}")
                continue
            if isinstance(payload, dict):
                yield payload


@dataclass
class CollectedAnswer:
    text: str = ""
    done: bool = False
    cached: bool = False
    error: Optional[str] = None


def collect_answer(payloads: Iterable[dict]) -> CollectedAnswer:
    """Fold payloads into the answer text and its terminal state."""
    result = CollectedAnswer()
    parts = []
    for payload in payloads:
        if "content" in payload and isinstance(payload["content"], str):
            parts.append(payload["content"])
        if payload.get("error"):
            result.error = str(payload["error"])
            break
        if payload.get("done"):
            result.done = True
            result.cached = bool(payload.get("cached"))
            break
    result.text = "".join(parts)
    return result
