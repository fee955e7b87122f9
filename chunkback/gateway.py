"""Route detection and request normalization for the emulated provider APIs."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Literal, Mapping

Provider = Literal["openai", "anthropic", "gemini"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "gemini")
MODELS_PATHS = {"/v1/models", "/v1beta/models", "/openai/models", "/openai/deployments"}
TOOL_RESPONSE_PREFIX = "/v1/tool-responses/"

_OPENAI_PATTERNS = (
    re.compile(r"^/v1/chat/completions$"),
    re.compile(r"^/openai/deployments/(?P<deployment>[^/]+)/chat/completions$"),
    re.compile(r"^/openai/models/(?P<model>[^/]+)/chat/completions$"),
)
_GEMINI_PATTERN = re.compile(
    r"^/(?:v1|v1beta)/models/(?P<model>[^/:]+)[:/](?:generateContent|streamGenerateContent)$"
)


class RequestValidationError(ValueError):
    """Raised when a provider request body cannot yield a prompt."""


@dataclass(frozen=True, slots=True)
class ProviderRoute:
    provider: Provider
    path: str
    model: str | None = None


def detect_route(path: str) -> ProviderRoute | None:
    normalized = path.strip().rstrip("/") or "/"
    for pattern in _OPENAI_PATTERNS:
        match = pattern.fullmatch(normalized)
        if match is not None:
            groups = match.groupdict()
            return ProviderRoute(
                provider="openai",
                path=normalized,
                model=groups.get("model") or groups.get("deployment"),
            )
    if normalized == "/v1/messages":
        return ProviderRoute(provider="anthropic", path=normalized)
    match = _GEMINI_PATTERN.fullmatch(normalized)
    if match is not None:
        return ProviderRoute(provider="gemini", path=normalized, model=match.group("model"))
    return None


def detect_models_provider(headers: Mapping[str, str], query: Mapping[str, str]) -> str:
    """Pick the model-list flavor from provider-specific credentials."""
    lowered = {str(key).lower(): value for key, value in headers.items()}
    if lowered.get("x-api-key") or lowered.get("anthropic-version"):
        return "anthropic"
    if lowered.get("x-goog-api-key") or query.get("key"):
        return "gemini"
    return "openai"


def _join_text_parts(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts: list[str] = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "\n".join(texts)
    return None


def extract_prompt(provider: str, payload: Mapping[str, Any]) -> str:
    """Return the text of the last user message for the provider's request shape."""
    if provider in {"openai", "anthropic"}:
        messages = payload.get("messages")
        if not isinstance(messages, list) or not messages:
            raise RequestValidationError("Messages array is required")
        user_messages = [
            message
            for message in messages
            if isinstance(message, dict) and message.get("role") == "user"
        ]
        if not user_messages:
            raise RequestValidationError("At least one user message is required")
        prompt = _join_text_parts(user_messages[-1].get("content"))
        if prompt is None:
            raise RequestValidationError("User message content must be text")
        return prompt

    if provider == "gemini":
        contents = payload.get("contents")
        if not isinstance(contents, list) or not contents:
            raise RequestValidationError("Contents array is required")
        user_contents = [
            content
            for content in contents
            if isinstance(content, dict) and content.get("role", "user") == "user"
        ]
        if not user_contents:
            raise RequestValidationError("At least one user content is required")
        parts = user_contents[-1].get("parts")
        if not isinstance(parts, list):
            raise RequestValidationError("User content parts must be a list")
        texts = [
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"]
        ]
        return "\n".join(texts)

    raise ValueError(f"unsupported provider: {provider}")


def resolve_model(route: ProviderRoute, payload: Mapping[str, Any], *, default: str) -> str:
    model = payload.get("model")
    if isinstance(model, str) and model.strip():
        return model.strip()
    if route.model:
        return route.model
    return default


def error_payload(message: str, *, error_type: str = "invalid_request_error") -> dict[str, Any]:
    return {"error": {"type": error_type, "message": message}}


def build_models_payload(provider: str) -> dict[str, Any]:
    if provider == "anthropic":
        return _ANTHROPIC_MODELS
    if provider == "gemini":
        return _GEMINI_MODELS
    return _OPENAI_MODELS


_OPENAI_MODELS: dict[str, Any] = {
    "object": "list",
    "data": [
        {"id": "gpt-4o", "object": "model", "created": 1715367049, "owned_by": "system"},
        {"id": "gpt-4o-mini", "object": "model", "created": 1721172741, "owned_by": "system"},
        {"id": "gpt-4-turbo", "object": "model", "created": 1712361441, "owned_by": "system"},
        {"id": "gpt-4", "object": "model", "created": 1687882411, "owned_by": "openai"},
        {"id": "gpt-3.5-turbo", "object": "model", "created": 1677610602, "owned_by": "openai"},
        {"id": "o1-preview", "object": "model", "created": 1725648070, "owned_by": "system"},
        {"id": "o1-mini", "object": "model", "created": 1725648069, "owned_by": "system"},
    ],
}

_ANTHROPIC_MODELS: dict[str, Any] = {
    "data": [
        {
            "id": "claude-sonnet-4-5-20250929",
            "display_name": "Claude Sonnet 4.5",
            "created_at": "2025-09-29T00:00:00Z",
            "type": "model",
        },
        {
            "id": "claude-sonnet-4-20250514",
            "display_name": "Claude Sonnet 4",
            "created_at": "2025-05-14T00:00:00Z",
            "type": "model",
        },
        {
            "id": "claude-3-5-sonnet-20241022",
            "display_name": "Claude 3.5 Sonnet",
            "created_at": "2024-10-22T00:00:00Z",
            "type": "model",
        },
        {
            "id": "claude-3-5-haiku-20241022",
            "display_name": "Claude 3.5 Haiku",
            "created_at": "2024-10-22T00:00:00Z",
            "type": "model",
        },
        {
            "id": "claude-3-opus-20240229",
            "display_name": "Claude 3 Opus",
            "created_at": "2024-02-29T00:00:00Z",
            "type": "model",
        },
    ],
    "first_id": "claude-sonnet-4-5-20250929",
    "has_more": False,
    "last_id": "claude-3-opus-20240229",
}


def _gemini_model(name: str, display_name: str, description: str, *, input_limit: int, top_k: int) -> dict[str, Any]:
    return {
        "name": f"models/{name}",
        "displayName": display_name,
        "description": description,
        "inputTokenLimit": input_limit,
        "outputTokenLimit": 8192,
        "supportedGenerationMethods": ["generateContent", "countTokens"],
        "temperature": 1.0,
        "maxTemperature": 2.0,
        "topP": 0.95,
        "topK": top_k,
    }


_GEMINI_MODELS: dict[str, Any] = {
    "models": [
        _gemini_model(
            "gemini-2.5-flash",
            "Gemini 2.5 Flash",
            "Fast and versatile performance across a diverse variety of tasks",
            input_limit=1048576,
            top_k=64,
        ),
        _gemini_model(
            "gemini-2.0-flash-exp",
            "Gemini 2.0 Flash Experimental",
            "Experimental multimodal model with advanced capabilities",
            input_limit=1048576,
            top_k=40,
        ),
        _gemini_model(
            "gemini-1.5-pro",
            "Gemini 1.5 Pro",
            "Mid-size multimodal model that supports up to 2 million tokens",
            input_limit=2097152,
            top_k=64,
        ),
        _gemini_model(
            "gemini-1.5-flash",
            "Gemini 1.5 Flash",
            "Fast and versatile multimodal model for scaling across diverse tasks",
            input_limit=1048576,
            top_k=64,
        ),
        _gemini_model(
            "gemini-1.5-flash-8b",
            "Gemini 1.5 Flash-8B",
            "Smaller, faster model for high-frequency tasks",
            input_limit=1048576,
            top_k=40,
        ),
    ],
}
