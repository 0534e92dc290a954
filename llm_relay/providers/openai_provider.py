"""Request building for OpenAI-compatible chat completions endpoints."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..auth import RequestSigner
from ..models import ActionConfig, ChatMessage, OutputType, ProviderConfig, Role

logger = logging.getLogger(__name__)

SENTENCE_PAIRS_SCHEMA = {
    "name": "sentence_translate_response",
    "schema": {
        "type": "object",
        "properties": {
            "sentence_pairs": {
                "type": "array",
                "description": "Array of sentence pairs with original and translated text.",
                "items": {
                    "type": "object",
                    "properties": {
                        "original": {"type": "string"},
                        "translation": {"type": "string"},
                    },
                    "required": ["original", "translation"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["sentence_pairs"],
        "additionalProperties": False,
    },
}

GRAMMAR_CHECK_SCHEMA = {
    "name": "grammar_check_response",
    "schema": {
        "type": "object",
        "properties": {
            "revised_text": {
                "type": "string",
                "description": "The user text rewritten with all grammar issues addressed.",
            },
            "additional_text": {
                "type": "string",
                "description": "Explanations or analyses that accompany the revised text.",
            },
        },
        "required": ["revised_text", "additional_text"],
        "additionalProperties": False,
    },
}

STRUCTURED_OUTPUT_SCHEMAS = {
    OutputType.SENTENCE_PAIRS: SENTENCE_PAIRS_SCHEMA,
    OutputType.GRAMMAR_CHECK: GRAMMAR_CHECK_SCHEMA,
}


def build_messages(
    text: str,
    action: ActionConfig,
    images: Sequence[str] = (),
) -> List[ChatMessage]:
    """System message from the action prompt (if any), then the user's text."""
    messages = []
    if action.prompt:
        messages.append(ChatMessage(Role.SYSTEM, action.prompt))
    messages.append(ChatMessage(Role.USER, text, tuple(images)))
    return messages


def build_payload(
    messages: Sequence[ChatMessage],
    stream: bool,
    output_type: OutputType = OutputType.PLAIN,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "messages": [m.to_payload() for m in messages],
        "stream": stream,
    }
    schema = STRUCTURED_OUTPUT_SCHEMAS.get(output_type)
    if schema is not None:
        payload["response_format"] = {"type": "json_schema", "json_schema": schema}
    return payload


def build_chat_request(
    http_client: httpx.AsyncClient,
    provider: ProviderConfig,
    messages: Sequence[ChatMessage],
    stream: bool,
    output_type: OutputType = OutputType.PLAIN,
    signer: Optional[RequestSigner] = None,
    premium: bool = False,
) -> httpx.Request:
    """
    Build the POST for one provider.

    Built-in cloud providers are signed for the gateway; everything else is
    authenticated with the provider's own token header only.
    """
    headers = {"Content-Type": "application/json"}
    if stream:
        headers["Accept"] = "text/event-stream"
    if provider.token:
        headers[provider.auth_header_name] = provider.token

    url = httpx.URL(provider.api_url)
    if provider.category.uses_builtin_proxy:
        if signer is not None:
            headers.update(signer.sign(url.path))
        if premium:
            headers["X-Premium"] = "true"

    payload = build_payload(messages, stream, output_type)
    if provider.model_name:
        # OpenAI-style endpoints pick the model from the body, not the URL
        payload["model"] = provider.model_name
    logger.debug("Chat request | provider=%s url=%s stream=%s", provider.display_name, url, stream)
    return http_client.build_request(
        "POST",
        url,
        headers=headers,
        content=json.dumps(payload).encode("utf-8"),
    )
