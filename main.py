# FILE: main.py
"""
Beacon Backend - FastAPI Application
Version: 0.1.0

Knowledge-grounded chat assistants:
- Routes each question to the cheapest confident answer source
  (greeting, FAQ, off-topic guard, keyword snippet, response cache)
- Falls back to a generative model (Gemini, OpenAI or Anthropic) grounded in
  the assistant's knowledge base, streamed as server-sent events
- Per-client sliding-window rate limiting (in-process or Redis)
"""
import os
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from app.db import init_db
from app.errors import ChatError
from app.chat.router import router as chat_router
from app.memory.router import router as memory_router
from app.llm.streaming import get_available_streaming_providers
from app.routing import config as routing_config

logging.basicConfig(
    level=os.getenv("BEACON_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

app = FastAPI(
    title="Beacon",
    version="0.1.0",
    description="Knowledge-grounded chat assistants with cheap-first answer routing",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip()
        for o in os.getenv(
            "BEACON_CORS_ORIGINS",
            "http://localhost:5173,http://localhost:8000,http://127.0.0.1:5173,http://127.0.0.1:8000",
        ).split(",")
        if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ====== ERRORS ======

@app.exception_handler(ChatError)
async def chat_error_handler(request, exc: ChatError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=exc.headers(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    os.makedirs("data", exist_ok=True)

    init_db()

    # Verify provider env vars
    print("[startup] Checking generative providers...")
    for provider, available in get_available_streaming_providers().items():
        if available:
            print(f"[startup] {provider}: [OK] configured")
        else:
            print(f"[startup] {provider}: [X] NOT CONFIGURED")

    print(f"[startup] Rate limit backend: {routing_config.RATE_LIMIT_BACKEND}")
    if routing_config.RATE_LIMIT_BACKEND == "memory":
        print("[startup]   limits are per process; set BEACON_RATE_LIMIT_BACKEND=redis when running several workers")


# ====== ROUTERS ======

# Chat router - public
app.include_router(chat_router, prefix="/api")

# Assistant and knowledge administration
app.include_router(memory_router, prefix="/api")


# ====== PUBLIC ENDPOINTS ======

@app.get("/ping")
def ping():
    """Health check (public)."""
    return {"status": "ok"}
