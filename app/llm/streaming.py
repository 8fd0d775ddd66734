# FILE: app/llm/streaming.py
"""
Beacon Streaming LLM Module

Provides the streaming interface for the supported LLM providers and the
ProviderBackend that the chat pipeline calls on generative fallback.
All provider streams follow the canonical event schema.

CANONICAL EVENT SCHEMA:
All streaming functions must yield dict events with this structure:

{"type": "metadata", "provider": "...", "model": "..."}
    - Sent once at the start to indicate the provider and model being used

{"type": "token", "text": "<chunk of answer>"}
    - Streaming chunks of the response

{"type": "error", "message": "..."}
    - Error message if something goes wrong

{"type": "done", "provider": "...", "model": "...", "usage": {...}}
    - Final event; usage is included when the provider reports it

{"type": "cancelled"}
    - The cancellation token was set; the upstream stream has been closed

History entries use the pipeline's roles ("user" / "model"); each provider
function maps them onto its own API.
"""

import os
import logging
from typing import AsyncGenerator, AsyncIterator, Dict, List, Optional

from config import MAX_OUTPUT_TOKENS, parse_model_selector
from app.errors import UpstreamFailure
from .backend import CancellationToken, GenerativeBackend

logger = logging.getLogger(__name__)

# Import provider packages conditionally
try:
    from openai import AsyncOpenAI
    HAS_OPENAI = True
except ImportError:
    HAS_OPENAI = False

try:
    import anthropic
    HAS_ANTHROPIC = True
except ImportError:
    HAS_ANTHROPIC = False

try:
    import google.generativeai as genai
    HAS_GEMINI = True
except ImportError:
    HAS_GEMINI = False


def get_available_streaming_providers() -> Dict[str, bool]:
    """Get dict of available streaming providers."""
    return {
        "gemini": HAS_GEMINI and bool(os.getenv("GOOGLE_API_KEY")),
        "openai": HAS_OPENAI and bool(os.getenv("OPENAI_API_KEY")),
        "anthropic": HAS_ANTHROPIC and bool(os.getenv("ANTHROPIC_API_KEY")),
    }


def merge_consecutive_roles(history: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """Join adjacent same-role turns (left behind by a failed earlier answer).

    Anthropic and Gemini both require alternating user/model turns.
    """
    merged: List[Dict[str, str]] = []
    for item in history:
        if merged and merged[-1]["role"] == item["role"]:
            merged[-1] = {"role": item["role"], "text": merged[-1]["text"] + "\n\n" + item["text"]}
        else:
            merged.append({"role": item["role"], "text": item["text"]})
    return merged


def _chat_messages(history: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """user/model history -> OpenAI/Anthropic user/assistant messages."""
    return [
        {"role": "user" if m["role"] == "user" else "assistant", "content": m["text"]}
        for m in history
    ]


def _cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


def _uget(obj, key: str):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


# ============ STREAMING GENERATORS ============

async def stream_openai(
    history: List[Dict[str, str]],
    system_instruction: str,
    model: str,
    cancel_token: Optional[CancellationToken] = None,
) -> AsyncGenerator[Dict, None]:
    """Stream from OpenAI using async client."""
    if not HAS_OPENAI:
        yield {"type": "error", "message": "openai package not installed"}
        return

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        yield {"type": "error", "message": "OPENAI_API_KEY not set"}
        return

    client = AsyncOpenAI(api_key=api_key)
    full_messages = [{"role": "system", "content": system_instruction}]
    full_messages.extend(_chat_messages(history))

    yield {"type": "metadata", "provider": "openai", "model": model}

    usage = None
    try:
        stream = await client.chat.completions.create(
            model=model,
            messages=full_messages,
            stream=True,
            max_completion_tokens=MAX_OUTPUT_TOKENS,
            stream_options={"include_usage": True},
        )
        try:
            async for chunk in stream:
                if _cancelled(cancel_token):
                    yield {"type": "cancelled"}
                    return
                u = _uget(chunk, "usage")
                if u:
                    usage = {
                        "prompt_tokens": int(_uget(u, "prompt_tokens") or 0),
                        "completion_tokens": int(_uget(u, "completion_tokens") or 0),
                    }
                if chunk.choices and chunk.choices[0].delta and chunk.choices[0].delta.content:
                    yield {"type": "token", "text": chunk.choices[0].delta.content}
        finally:
            await stream.close()

        yield {"type": "done", "provider": "openai", "model": model, "usage": usage}

    except Exception as e:
        yield {"type": "error", "message": str(e)}


async def stream_anthropic(
    history: List[Dict[str, str]],
    system_instruction: str,
    model: str,
    cancel_token: Optional[CancellationToken] = None,
) -> AsyncGenerator[Dict, None]:
    """Stream from Anthropic using async client."""
    if not HAS_ANTHROPIC:
        yield {"type": "error", "message": "anthropic package not installed"}
        return

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        yield {"type": "error", "message": "ANTHROPIC_API_KEY not set"}
        return

    client = anthropic.AsyncAnthropic(api_key=api_key)

    yield {"type": "metadata", "provider": "anthropic", "model": model}

    usage = None
    try:
        # Leaving the context manager closes the HTTP stream, also on cancel
        async with client.messages.stream(
            model=model,
            max_tokens=MAX_OUTPUT_TOKENS,
            system=system_instruction,
            messages=_chat_messages(merge_consecutive_roles(history)),
        ) as stream:
            async for text in stream.text_stream:
                if _cancelled(cancel_token):
                    yield {"type": "cancelled"}
                    return
                yield {"type": "token", "text": text}

            final_msg = await stream.get_final_message()
            u = _uget(final_msg, "usage")
            if u:
                usage = {
                    "prompt_tokens": int(_uget(u, "input_tokens") or 0),
                    "completion_tokens": int(_uget(u, "output_tokens") or 0),
                }

        yield {"type": "done", "provider": "anthropic", "model": model, "usage": usage}

    except Exception as e:
        yield {"type": "error", "message": str(e)}


async def stream_gemini(
    history: List[Dict[str, str]],
    system_instruction: str,
    model: str,
    cancel_token: Optional[CancellationToken] = None,
) -> AsyncGenerator[Dict, None]:
    """Stream from Gemini using the async chat API."""
    if not HAS_GEMINI:
        yield {"type": "error", "message": "google-generativeai package not installed"}
        return

    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        yield {"type": "error", "message": "GOOGLE_API_KEY not set"}
        return

    genai.configure(api_key=api_key)

    yield {"type": "metadata", "provider": "gemini", "model": model}

    try:
        gemini_model = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_instruction,
            generation_config={"max_output_tokens": MAX_OUTPUT_TOKENS},
        )

        turns = merge_consecutive_roles(history)
        prior = [{"role": t["role"], "parts": [t["text"]]} for t in turns[:-1]]
        last_msg = turns[-1]["text"] if turns else ""

        chat = gemini_model.start_chat(history=prior)
        response = await chat.send_message_async(last_msg, stream=True)

        async for chunk in response:
            if _cancelled(cancel_token):
                yield {"type": "cancelled"}
                return
            try:
                text = chunk.text
            except ValueError:
                # Chunk without text parts (e.g. safety metadata only)
                continue
            if text:
                yield {"type": "token", "text": text}

        usage = None
        usage_md = _uget(response, "usage_metadata")
        if usage_md:
            usage = {
                "prompt_tokens": int(_uget(usage_md, "prompt_token_count") or 0),
                "completion_tokens": int(_uget(usage_md, "candidates_token_count") or 0),
            }
        yield {"type": "done", "provider": "gemini", "model": model, "usage": usage}

    except Exception as e:
        yield {"type": "error", "message": str(e)}


# ============ MAIN STREAMING FUNCTION ============

async def stream_llm(
    history: List[Dict[str, str]],
    system_instruction: str = "",
    provider: Optional[str] = None,
    model: Optional[str] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> AsyncGenerator[Dict, None]:
    """
    Stream from the specified LLM provider.

    Args:
        history: Ordered [{role, text}] turns, current question last
        system_instruction: System prompt string
        provider: Provider name ("gemini", "openai", "anthropic")
        model: Specific model name (optional)
        cancel_token: Checked between chunks; stops the upstream stream when set

    Yields:
        Dict events following the canonical schema
    """
    selector = f"{provider}:{model}" if provider and model else provider
    try:
        provider, model = parse_model_selector(selector)
    except ValueError as e:
        yield {"type": "error", "message": str(e)}
        return

    if provider == "openai":
        gen = stream_openai(history, system_instruction, model, cancel_token)
    elif provider == "anthropic":
        gen = stream_anthropic(history, system_instruction, model, cancel_token)
    else:
        gen = stream_gemini(history, system_instruction, model, cancel_token)

    async for event in gen:
        yield event


class ProviderBackend(GenerativeBackend):
    """GenerativeBackend over the provider SDKs, picked by the assistant's model selector."""

    async def stream(
        self,
        system_instruction: str,
        history: List[Dict[str, str]],
        cancel_token: Optional[CancellationToken] = None,
        model_selector: Optional[str] = None,
    ) -> AsyncIterator[str]:
        try:
            provider, model = parse_model_selector(model_selector)
        except ValueError as e:
            raise UpstreamFailure(str(e)) from e

        async for event in stream_llm(
            history=history,
            system_instruction=system_instruction,
            provider=provider,
            model=model,
            cancel_token=cancel_token,
        ):
            event_type = event.get("type")
            if event_type == "token":
                yield event.get("text", "")
            elif event_type == "error":
                raise UpstreamFailure(event.get("message") or "LLM stream failed")
            elif event_type == "cancelled":
                logger.info(f"[streaming] {provider}/{model} stream cancelled")
                return
            elif event_type == "done":
                usage = event.get("usage") or {}
                logger.info(
                    f"[streaming] {provider}/{model} done "
                    f"prompt_tokens={usage.get('prompt_tokens', 0)} "
                    f"completion_tokens={usage.get('completion_tokens', 0)}"
                )
