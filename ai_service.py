"""
InnoVest — AI gateway
========================================
Multi-provider chat completion with an ordered fallback chain.

  AI_PROVIDER_ORDER=openai,groq,huggingface   (default)

Each provider is tried in order. A retryable failure (missing key, 408,
425, 429, 5xx, network error, empty answer) moves on to the next one; any
other failure is raised straight away. No state is kept between calls.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════
# CONFIG
# ═══════════════════════════════════════════
DEFAULT_PROVIDER_ORDER = "openai,groq,huggingface"
DEFAULT_SYSTEM_PROMPT = "You are InnoVest risk copilot. Return practical, concise financial risk insights."

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
HF_URL = "https://api-inference.huggingface.co/models/{model}"

TEMPERATURE = 0.2
HF_MAX_NEW_TOKENS = 240

RETRYABLE_STATUSES = {408, 425, 429}


def ai_model() -> str:
    return os.getenv("AI_MODEL", "gpt-4o-mini")


def _timeout() -> float:
    return float(os.getenv("AI_TIMEOUT_SEC", "30"))


def get_provider_order() -> list:
    configured = os.getenv("AI_PROVIDER_ORDER", DEFAULT_PROVIDER_ORDER)
    return [p.strip().lower() for p in configured.split(",") if p.strip()]


# ═══════════════════════════════════════════
# ERRORS & RESULTS
# ═══════════════════════════════════════════

class AIServiceError(Exception):
    """
    A provider (or the whole chain) failed.

    status       HTTP status to surface to the client
    details      provider's own error text
    provider     openai | groq | huggingface | multi
    can_fallback True when the next provider should be tried
    """

    def __init__(self, status: int = 500, message: str = None, details: str = None,
                 provider: str = None, can_fallback: bool = False):
        self.status = status
        self.message = message or "AI provider request failed."
        self.details = details or "Unknown AI failure"
        self.provider = provider or "unknown"
        self.can_fallback = can_fallback
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "details": self.details, "provider": self.provider}


@dataclass
class AIResult:
    text: str
    provider: str


def should_try_next_provider(error: Optional[AIServiceError]) -> bool:
    if error is None:
        return False
    return bool(
        error.can_fallback
        or error.status >= 500
        or error.status in RETRYABLE_STATUSES
    )


QUOTA_MARKERS = ("quota", "rate limit", "insufficient_quota", "billing")


def should_fallback_to_demo(error: AIServiceError) -> bool:
    """
    Cloud AI is out of reach for reasons the user can't fix from the
    request: every provider failed, rate limit / bad key, or a quota or
    billing problem in the provider's message.
    """
    if error.provider == "multi" or error.status in (401, 429):
        return True
    text = f"{error.message} {error.details}".lower()
    return any(m in text for m in QUOTA_MARKERS)


def extract_text_from_choices(data) -> str:
    """choices[0].message.content as a string, or its first text part."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str):
                if part["text"]:
                    return part["text"]
    return ""


def _json_or_empty(response) -> object:
    try:
        return response.json()
    except ValueError:
        return {}


def _error_details(data, fallback: str) -> str:
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if data.get("message"):
            return str(data["message"])
    return fallback


def _messages(message: str, system_prompt: Optional[str]) -> list:
    return [
        {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
        {"role": "user", "content": message},
    ]


def _post(provider: str, url: str, api_key: str, payload: dict):
    try:
        return httpx.post(
            url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=_timeout(),
        )
    except httpx.HTTPError as e:
        raise AIServiceError(
            status=503,
            provider=provider,
            message=f"{provider} is unreachable.",
            details=str(e) or e.__class__.__name__,
            can_fallback=True,
        )


def _missing_key(provider: str, label: str, env_name: str) -> AIServiceError:
    return AIServiceError(
        status=503,
        provider=provider,
        message=f"{label} key missing",
        details=f"{env_name} is not configured",
        can_fallback=True,
    )


def _empty_content(provider: str, label: str, details: str) -> AIServiceError:
    return AIServiceError(
        status=502,
        provider=provider,
        message=f"{label} returned empty content.",
        details=details,
        can_fallback=True,
    )


# ═══════════════════════════════════════════════════════════════════════
#
#  PROVIDERS
#
# ═══════════════════════════════════════════════════════════════════════

def call_openai(message: str, system_prompt: str = None) -> str:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise _missing_key("openai", "OpenAI", "OPENAI_API_KEY")

    response = _post("openai", OPENAI_URL, api_key, {
        "model": ai_model(),
        "temperature": TEMPERATURE,
        "messages": _messages(message, system_prompt),
    })
    data = _json_or_empty(response)

    if not response.is_success:
        status = response.status_code
        raise AIServiceError(
            status=status,
            provider="openai",
            message="OpenAI authentication failed." if status == 401 else "OpenAI request failed.",
            details=_error_details(data, f"OpenAI HTTP {status}"),
            can_fallback=status == 429 or status >= 500,
        )

    text = extract_text_from_choices(data)
    if not text:
        raise _empty_content("openai", "OpenAI", "No text in response choices.")
    return text


def call_groq(message: str, system_prompt: str = None) -> str:
    api_key = os.getenv("GROQ_API_KEY")
    if not api_key:
        raise _missing_key("groq", "Groq", "GROQ_API_KEY")

    response = _post("groq", GROQ_URL, api_key, {
        "model": os.getenv("GROQ_MODEL", "llama-3.1-8b-instant"),
        "temperature": TEMPERATURE,
        "messages": _messages(message, system_prompt),
    })
    data = _json_or_empty(response)

    if not response.is_success:
        status = response.status_code
        raise AIServiceError(
            status=status,
            provider="groq",
            message="Groq request failed.",
            details=_error_details(data, f"Groq HTTP {status}"),
            can_fallback=status == 429 or status >= 500,
        )

    text = extract_text_from_choices(data)
    if not text:
        raise _empty_content("groq", "Groq", "No text in response choices.")
    return text


def call_huggingface(message: str, system_prompt: str = None) -> str:
    """
    HF Inference API is text-generation, not chat: the system prompt and
    the user message are folded into a single prompt string.
    """
    api_key = os.getenv("HUGGINGFACE_API_KEY")
    if not api_key:
        raise _missing_key("huggingface", "Hugging Face", "HUGGINGFACE_API_KEY")

    model = os.getenv("HF_MODEL", "google/flan-t5-large")
    prompt = f"{system_prompt or DEFAULT_SYSTEM_PROMPT}\n\nUser:\n{message}\n\nAssistant:"

    response = _post("huggingface", HF_URL.format(model=model), api_key, {
        "inputs": prompt,
        "parameters": {
            "max_new_tokens": HF_MAX_NEW_TOKENS,
            "temperature": TEMPERATURE,
            "return_full_text": False,
        },
    })
    data = _json_or_empty(response)

    if not response.is_success or (isinstance(data, dict) and data.get("error")):
        status = response.status_code if not response.is_success else 502
        details = _error_details(data, f"Hugging Face HTTP {status}")
        raise AIServiceError(
            status=status,
            provider="huggingface",
            message="Hugging Face request failed.",
            details=details,
            # model cold start: "Model ... is currently loading"
            can_fallback=status == 429 or status >= 500 or "loading" in details,
        )

    text = ""
    if isinstance(data, list) and data and isinstance(data[0], dict):
        text = data[0].get("generated_text") or ""
    elif isinstance(data, dict):
        text = data.get("generated_text") or ""

    if not isinstance(text, str) or not text.strip():
        raise _empty_content("huggingface", "Hugging Face", "No generated_text found.")
    return text.strip()


PROVIDERS = {
    "openai": call_openai,
    "groq": call_groq,
    "huggingface": call_huggingface,
}


# ═══════════════════════════════════════════════════════════════════════
#
#  FALLBACK CHAIN
#
# ═══════════════════════════════════════════════════════════════════════

def ask_ai(message: str, system_prompt: str = None) -> AIResult:
    """
    FALLBACK CHAIN:
    1. Walk AI_PROVIDER_ORDER
    2. First provider that answers wins
    3. Retryable error → remember it, try the next provider
    4. Non-retryable error → raise immediately
    5. Nothing left → 503 "All AI providers failed." with every error joined
    """
    errors = []

    for provider in get_provider_order():
        call = PROVIDERS.get(provider)
        if call is None:
            logger.warning("Unknown AI provider %r in AI_PROVIDER_ORDER, skipping", provider)
            continue

        try:
            text = call(message, system_prompt)
            logger.info("AI answer from %s (%d chars)", provider, len(text))
            return AIResult(text=text, provider=provider)
        except AIServiceError as e:
            retryable = should_try_next_provider(e)
            logger.warning(
                "AI provider %s failed: status=%s retryable=%s details=%s",
                e.provider, e.status, retryable, e.details,
                extra={"provider": e.provider or provider},
            )
            errors.append(f"[{e.provider or provider}] {e.details or e.message}")
            if not retryable:
                raise

    combined = " | ".join(errors) if errors else (
        "No AI provider configured. Set OPENAI_API_KEY or GROQ_API_KEY or HUGGINGFACE_API_KEY."
    )
    logger.error("All AI providers failed: %s", combined)
    raise AIServiceError(
        status=503,
        provider="multi",
        message="All AI providers failed.",
        details=combined,
        can_fallback=False,
    )
