"""Data types shared by the gateway and the fan-out client."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ModelDescriptor(BaseModel):
    """A model offered by the built-in cloud service."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    display_name: str
    is_default: bool = False
    is_premium: bool = False
    supports_vision: bool = False


class VoiceDescriptor(BaseModel):
    """A text-to-speech voice."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    is_default: bool = False


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ProviderCategory(str, Enum):
    """
    Closed set of provider kinds.

    Callers branch on the capability properties below rather than on the
    member itself.
    """
    BUILT_IN_CLOUD = "built_in_cloud"
    AZURE_OPENAI = "azure_openai"
    CUSTOM = "custom"
    LOCAL = "local"

    @property
    def uses_builtin_proxy(self) -> bool:
        return self is ProviderCategory.BUILT_IN_CLOUD

    @property
    def supports_streaming(self) -> bool:
        return self is not ProviderCategory.LOCAL

    @property
    def supports_vision(self) -> bool:
        return self in (ProviderCategory.BUILT_IN_CLOUD, ProviderCategory.AZURE_OPENAI)

    @property
    def is_available(self) -> bool:
        # On-device models run outside this package
        return self is not ProviderCategory.LOCAL


class OutputType(str, Enum):
    PLAIN = "plain"
    DIFF = "diff"
    SENTENCE_PAIRS = "sentence_pairs"
    GRAMMAR_CHECK = "grammar_check"

    @property
    def shows_diff(self) -> bool:
        return self in (OutputType.DIFF, OutputType.GRAMMAR_CHECK)

    @property
    def is_structured(self) -> bool:
        return self in (OutputType.SENTENCE_PAIRS, OutputType.GRAMMAR_CHECK)


@dataclass(frozen=True)
class ActionConfig:
    """What to do with the input text: the system prompt and output shape."""
    name: str
    prompt: str = ""
    output_type: OutputType = OutputType.PLAIN


@dataclass(frozen=True)
class ProviderConfig:
    """Where and how to reach one provider."""
    display_name: str
    api_url: str
    token: str = ""
    auth_header_name: str = "api-key"
    category: ProviderCategory = ProviderCategory.CUSTOM
    model_name: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    images: Tuple[str, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        """Serialize as an OpenAI-style message; images become content parts."""
        if not self.images:
            return {"role": self.role.value, "content": self.content}
        parts: List[Dict[str, Any]] = [{"type": "text", "text": self.content}]
        for url in self.images:
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return {"role": self.role.value, "content": parts}


@dataclass(frozen=True)
class SentencePair:
    original: str
    translation: str


@dataclass(frozen=True)
class ProviderExecutionResult:
    """
    The outcome of one provider in one fan-out call.

    Exactly one of ``text`` and ``error`` is set. ``incomplete`` marks text
    that was cut short by the caller cancelling the stream.
    """
    provider_id: str
    duration: float
    text: Optional[str] = None
    error: Optional[BaseException] = None
    diff_source: Optional[str] = None
    supplemental_texts: Tuple[str, ...] = ()
    sentence_pairs: Tuple[SentencePair, ...] = ()
    incomplete: bool = False

    def __post_init__(self):
        if (self.text is None) == (self.error is None):
            raise ValueError("exactly one of text and error must be set")

    @property
    def succeeded(self) -> bool:
        return self.error is None
