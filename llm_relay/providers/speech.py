"""Signed text-to-speech requests to the built-in cloud gateway."""

import logging
from typing import Optional

import httpx

from ..auth import RequestSigner
from ..config import DEFAULT_VOICE, RELAY_CLOUD_ENDPOINT, TTS_MODEL
from ..errors import EmptyInputError, UpstreamError

logger = logging.getLogger(__name__)

SPEECH_PATH = "/tts"


class SpeechClient:
    """
    Turns text into audio through the gateway's ``/tts`` route.

    Args:
        http_client: Shared connection pool
        endpoint: Base URL of the gateway
        signer: Signs each request; built from RELAY_CLOUD_SECRET when omitted
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str = RELAY_CLOUD_ENDPOINT,
        signer: Optional[RequestSigner] = None,
    ):
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")
        self._signer = signer or RequestSigner.from_env()

    async def synthesize(self, text: str, voice: str = DEFAULT_VOICE, model: str = TTS_MODEL) -> bytes:
        """
        Fetch the spoken form of ``text``.

        Returns:
            Audio bytes as sent by the upstream (MP3 by default)

        Raises:
            EmptyInputError: ``text`` is blank
            UpstreamError: The gateway answered with a non-2xx status
        """
        trimmed = text.strip()
        if not trimmed:
            raise EmptyInputError()

        url = httpx.URL(f"{self._endpoint}{SPEECH_PATH}")
        headers = {"Content-Type": "application/json", "Accept": "audio/mpeg"}
        headers.update(self._signer.sign(url.path))

        response = await self._http.post(
            url,
            headers=headers,
            json={"model": model, "input": trimmed, "voice": voice},
        )
        if not response.is_success:
            logger.warning("SpeechClient | status=%d voice=%s", response.status_code, voice)
            raise UpstreamError(response.status_code, response.text)

        logger.info("SpeechClient | voice=%s chars=%d bytes=%d", voice, len(trimmed), len(response.content))
        return response.content
