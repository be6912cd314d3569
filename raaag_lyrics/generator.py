# generator.py  – thin wrapper around the OpenAI chat API

from __future__ import annotations
import logging

from openai import OpenAI, OpenAIError

from raaag_lyrics import config

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """The lyrics model could not produce text."""


class LyricsGenerator:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        seed: int | None = None,
        max_tokens: int | None = None,
        client: OpenAI | None = None,
    ):
        self.api_key     = api_key if api_key is not None else config.OPENAI_API_KEY
        self.model       = model or config.MODEL
        self.temperature = temperature if temperature is not None else config.temperature()
        self.seed        = seed if seed is not None else config.SEED
        self.max_tokens  = max_tokens or config.MAX_TOKENS
        self._client     = client

    @property
    def configured(self) -> bool:
        return bool(self._client is not None or self.api_key)

    @property
    def client(self) -> OpenAI:
        # created on first use so the API can start without a key
        if self._client is None:
            if not self.api_key:
                raise GenerationError("API key not configured")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def generate(self, system_instruction: str, user_message: str) -> str:
        logger.info("Generating lyrics with %s", self.model)
        try:
            resp = self.client.chat.completions.create(
                model       = self.model,
                temperature = self.temperature,
                seed        = self.seed,
                max_tokens  = self.max_tokens,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user",   "content": user_message},
                ],
            )
        except OpenAIError as exc:
            logger.error("Lyrics model call failed: %s", exc)
            raise GenerationError(str(exc)) from exc

        lyrics = resp.choices[0].message.content if resp.choices else None
        if not lyrics or not lyrics.strip():
            logger.error("No lyrics in model response")
            raise GenerationError("Failed to generate lyrics")

        logger.info("Lyrics generated successfully")
        return lyrics.strip()
