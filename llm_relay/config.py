"""Configuration for the LLM relay gateway and client."""

import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

from .models import ModelDescriptor, VoiceDescriptor

load_dotenv()

# Shared HMAC secret (hex) for the gateway and first-party clients
GATEWAY_SECRET = os.getenv("GATEWAY_SECRET", "")

# Upstream endpoints the gateway forwards to
CHAT_UPSTREAM_URL = os.getenv("CHAT_UPSTREAM_URL", "")
CHAT_UPSTREAM_API_KEY = os.getenv("CHAT_UPSTREAM_API_KEY", "")
TTS_UPSTREAM_URL = os.getenv("TTS_UPSTREAM_URL", "")
TTS_UPSTREAM_API_KEY = os.getenv("TTS_UPSTREAM_API_KEY", "") or CHAT_UPSTREAM_API_KEY

UPSTREAM_API_VERSION = os.getenv("UPSTREAM_API_VERSION", "2025-01-01-preview")
UPSTREAM_API_KEY_HEADER = "api-key"
UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "120"))

# Headers added by the edge network that must never reach the upstream
EDGE_HEADER_PREFIXES = tuple(
    prefix.strip().lower()
    for prefix in os.getenv("EDGE_HEADER_PREFIXES", "cf-").split(",")
    if prefix.strip()
)

# Accepted distance between client and gateway clocks, in seconds
MAX_CLOCK_SKEW = 120

# Client-side view of the built-in cloud service
RELAY_CLOUD_ENDPOINT = os.getenv("RELAY_CLOUD_ENDPOINT", "http://localhost:8787")
RELAY_CLOUD_SECRET = os.getenv("RELAY_CLOUD_SECRET", "") or GATEWAY_SECRET

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Speech synthesis through the built-in cloud service
TTS_MODEL = os.getenv("TTS_MODEL", "gpt-4o-mini-tts")
DEFAULT_VOICE = "alloy"

# Static allow-list of models served through the gateway
MODEL_CATALOG: Tuple[ModelDescriptor, ...] = (
    ModelDescriptor(id="gpt-4.1-nano", display_name="GPT-4.1 Nano", is_default=True, supports_vision=True),
    ModelDescriptor(id="gpt-4.1-mini", display_name="GPT-4.1 Mini", supports_vision=True),
    ModelDescriptor(id="gpt-4o-mini", display_name="GPT-4o Mini", supports_vision=True),
    ModelDescriptor(id="model-router", display_name="Model Router"),
    ModelDescriptor(id="gpt-4.1", display_name="GPT-4.1", is_premium=True, supports_vision=True),
    ModelDescriptor(id="gpt-4o", display_name="GPT-4o", is_premium=True, supports_vision=True),
    ModelDescriptor(id="o4-mini", display_name="o4-mini", is_premium=True),
)

# Voices offered for text-to-speech when no better list is available
DEFAULT_VOICES: Tuple[VoiceDescriptor, ...] = (
    VoiceDescriptor(id="alloy", name="Alloy", is_default=True),
    VoiceDescriptor(id="ash", name="Ash"),
    VoiceDescriptor(id="coral", name="Coral"),
    VoiceDescriptor(id="echo", name="Echo"),
    VoiceDescriptor(id="fable", name="Fable"),
    VoiceDescriptor(id="nova", name="Nova"),
    VoiceDescriptor(id="onyx", name="Onyx"),
    VoiceDescriptor(id="sage", name="Sage"),
    VoiceDescriptor(id="shimmer", name="Shimmer"),
)


@dataclass(frozen=True)
class GatewaySettings:
    """
    Everything the gateway needs to serve a request.

    Defaults come from the module constants above; tests build their own
    instance and hand it to ``create_app``.
    """
    secret: str = ""
    chat_upstream_url: str = ""
    chat_upstream_api_key: str = ""
    tts_upstream_url: str = ""
    tts_upstream_api_key: str = ""
    api_version: str = UPSTREAM_API_VERSION
    api_key_header: str = UPSTREAM_API_KEY_HEADER
    upstream_timeout: float = UPSTREAM_TIMEOUT
    max_clock_skew: int = MAX_CLOCK_SKEW
    edge_header_prefixes: Tuple[str, ...] = EDGE_HEADER_PREFIXES
    models: Tuple[ModelDescriptor, ...] = MODEL_CATALOG
    voices: Tuple[VoiceDescriptor, ...] = field(default=DEFAULT_VOICES)

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        """Build settings from the environment (and .env, if present)."""
        return cls(
            secret=GATEWAY_SECRET,
            chat_upstream_url=CHAT_UPSTREAM_URL,
            chat_upstream_api_key=CHAT_UPSTREAM_API_KEY,
            tts_upstream_url=TTS_UPSTREAM_URL,
            tts_upstream_api_key=TTS_UPSTREAM_API_KEY,
            api_version=UPSTREAM_API_VERSION,
            upstream_timeout=UPSTREAM_TIMEOUT,
            edge_header_prefixes=EDGE_HEADER_PREFIXES,
        )
