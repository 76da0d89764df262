"""
Text-completion clients for the external AI collaborator.

The core only sees the request/response contract below. Provider transports
turn SDK exceptions into ``CompletionResponse(success=False, ...)`` so that
tier/quota rejections can be recognised from the error message alone.
"""

import abc
import asyncio
from typing import Dict, Literal, Optional

from anthropic import AsyncAnthropic
from google import genai
from google.genai import types
from pydantic import BaseModel

from utils.logger import setup_logger
import config

logger = setup_logger(__name__)

Tier = Literal["free", "paid"]

# Non-streaming Anthropic requests above ~21k tokens are refused by the SDK
ANTHROPIC_MAX_TOKENS = 16000


class LLMTransportError(Exception):
    """Raised when the AI collaborator could not produce an answer."""
    pass


class TierRestrictedError(LLMTransportError):
    """Raised when a model is unavailable to the credential's tier."""
    pass


class GenerationCancelled(Exception):
    """Raised when an in-flight request was abandoned on request."""
    pass


class CompletionRequest(BaseModel):
    credential: str
    prompt_text: str
    model: str


class CompletionResponse(BaseModel):
    success: bool
    text: str = ""
    error_message: Optional[str] = None


class CredentialCheck(BaseModel):
    success: bool
    message: str
    tier: Optional[Tier] = None


def is_tier_error(message: Optional[str]) -> bool:
    """Whether an error message signals a free-tier or quota restriction."""
    if not message:
        return False
    lower = message.lower()
    return (
        "free_tier" in lower
        or "limit: 0" in message
        or 'limit":0' in message
        or 'limit": 0' in message
        or ("resource_exhausted" in lower and "limit" in lower)
        or ("quota" in lower and "pro" in lower)
    )


class BaseCompletionClient(abc.ABC):
    """A provider transport: one prompt in, one completion out."""

    @abc.abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send a prompt; failures are reported in the response, not raised"""
        pass

    def get_provider_name(self) -> str:
        return self.__class__.__name__


class GeminiCompletionClient(BaseCompletionClient):
    """Google Gemini via the google-genai SDK."""

    def __init__(
        self,
        temperature: float = config.LLM_TEMPERATURE,
        max_output_tokens: int = config.LLM_MAX_OUTPUT_TOKENS
    ):
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._clients: Dict[str, genai.Client] = {}

    def _client(self, api_key: str) -> genai.Client:
        if api_key not in self._clients:
            self._clients[api_key] = genai.Client(api_key=api_key)
        return self._clients[api_key]

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        try:
            response = await self._client(request.credential).aio.models.generate_content(
                model=request.model,
                contents=request.prompt_text,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            return CompletionResponse(success=False, error_message=str(e))
        return CompletionResponse(success=True, text=response.text or "")

    def get_provider_name(self) -> str:
        return "gemini"


class AnthropicCompletionClient(BaseCompletionClient):
    """Anthropic Claude via the anthropic SDK."""

    def __init__(
        self,
        temperature: float = config.LLM_TEMPERATURE,
        max_tokens: int = min(config.LLM_MAX_OUTPUT_TOKENS, ANTHROPIC_MAX_TOKENS)
    ):
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._clients: Dict[str, AsyncAnthropic] = {}

    def _client(self, api_key: str) -> AsyncAnthropic:
        if api_key not in self._clients:
            self._clients[api_key] = AsyncAnthropic(api_key=api_key)
        return self._clients[api_key]

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        try:
            message = await self._client(request.credential).messages.create(
                model=request.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": request.prompt_text}],
            )
        except Exception as e:
            return CompletionResponse(success=False, error_message=str(e))
        text = "".join(block.text for block in message.content if block.type == "text")
        return CompletionResponse(success=True, text=text)

    def get_provider_name(self) -> str:
        return "anthropic"


def create_transport(provider: str = config.LLM_PROVIDER) -> BaseCompletionClient:
    """Build the transport for ``provider`` (``gemini`` or ``anthropic``)."""
    if provider == "gemini":
        return GeminiCompletionClient()
    if provider == "anthropic":
        return AnthropicCompletionClient()
    raise ValueError(f"Unknown LLM provider: {provider}")


def default_models(provider: str = config.LLM_PROVIDER) -> Dict[str, str]:
    """Paid and free model identifiers configured for ``provider``."""
    if provider == "anthropic":
        return {"paid": config.ANTHROPIC_PAID_MODEL, "free": config.ANTHROPIC_FREE_MODEL}
    return {"paid": config.PAID_MODEL, "free": config.FREE_MODEL}


def default_api_key(provider: str = config.LLM_PROVIDER) -> Optional[str]:
    if provider == "anthropic":
        return config.ANTHROPIC_API_KEY
    return config.GEMINI_API_KEY


class TieredCompletionClient:
    """Selects the model from the tier and falls back once on tier errors.

    A ``paid`` call rejected with a tier/quota message is retried exactly
    once on the free model; that second outcome is final.
    """

    def __init__(
        self,
        transport: BaseCompletionClient,
        api_key: str,
        tier: Optional[Tier] = "free",
        paid_model: str = config.PAID_MODEL,
        free_model: str = config.FREE_MODEL
    ):
        self.transport = transport
        self.api_key = api_key
        self.tier = tier or "free"
        self.paid_model = paid_model
        self.free_model = free_model

    @property
    def model(self) -> str:
        return self.paid_model if self.tier == "paid" else self.free_model

    async def complete(self, prompt: str, cancel_event: Optional[asyncio.Event] = None) -> str:
        """Send ``prompt`` and return the completion text.

        Raises:
            TierRestrictedError: Tier rejection with no fallback left
            LLMTransportError: Any other collaborator failure, message verbatim
            GenerationCancelled: If ``cancel_event`` fired first
        """
        model = self.model
        response = await self._send(prompt, model, cancel_event)

        if (
            not response.success
            and self.tier == "paid"
            and model != self.free_model
            and is_tier_error(response.error_message)
        ):
            logger.warning(f"{model} unavailable for this key, falling back to {self.free_model}")
            model = self.free_model
            response = await self._send(prompt, model, cancel_event)

        if not response.success:
            message = response.error_message or "Failed to call AI model"
            logger.error(f"{model} call failed: {message}")
            if is_tier_error(message):
                raise TierRestrictedError(message)
            raise LLMTransportError(message)

        logger.info(f"{model} returned {len(response.text):,} chars")
        return response.text

    async def _send(
        self,
        prompt: str,
        model: str,
        cancel_event: Optional[asyncio.Event]
    ) -> CompletionResponse:
        request = CompletionRequest(credential=self.api_key, prompt_text=prompt, model=model)

        if cancel_event is None:
            return await self.transport.complete(request)
        if cancel_event.is_set():
            raise GenerationCancelled("Request cancelled before it was sent")

        call = asyncio.ensure_future(self.transport.complete(request))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({call, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (call, cancelled):
                if not task.done():
                    task.cancel()

        if call.done() and not call.cancelled():
            return call.result()
        raise GenerationCancelled("Request cancelled")


async def validate_credential(
    transport: BaseCompletionClient,
    api_key: str,
    paid_model: str = config.PAID_MODEL,
    free_model: str = config.FREE_MODEL
) -> CredentialCheck:
    """Check that ``api_key`` works and detect its tier.

    The key is validated on the free model, then a one-word request goes to the paid model:
    any failure there means ``free``.
    """
    if not api_key:
        return CredentialCheck(success=False, message="API key is required")

    free = await transport.complete(
        CompletionRequest(credential=api_key, prompt_text="OK", model=free_model)
    )
    if not free.success:
        error = (free.error_message or "Unknown error").lower()
        if "api_key" in error or "invalid" in error:
            message = "Invalid API key."
        elif "quota" in error:
            message = "API quota exceeded. Please wait or check your usage limits."
        else:
            message = f"Validation failed: {free.error_message}"
        return CredentialCheck(success=False, message=message)

    paid = await transport.complete(
        CompletionRequest(credential=api_key, prompt_text="OK", model=paid_model)
    )
    tier: Tier = "paid" if paid.success else "free"
    if not paid.success and not is_tier_error(paid.error_message):
        logger.warning(f"Paid model check failed, assuming free tier: {paid.error_message}")

    model_name = paid_model if tier == "paid" else free_model
    return CredentialCheck(
        success=True,
        message=f"API key valid! Using: {model_name} [{tier.capitalize()}]",
        tier=tier,
    )
