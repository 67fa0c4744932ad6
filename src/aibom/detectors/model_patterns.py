"""Model-name pattern table, candidate validation and name normalization.

Commercial providers are matched by explicit literals; open-registry
models are captured by a generic ``organization/model`` pattern. The
generic capture matches almost any quoted string with a slash in it, so
every candidate it yields goes through ``is_valid_model_name``.

Literal patterns are anchored so that a name is not found inside a
longer name: ``gpt-4`` does not match ``gpt-4o`` or ``gpt-4-turbo``, and
``mistral`` does not match ``mistral-large``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Characters that may not touch a literal model name on either side.
_BEFORE = r"(?<![\w./-])"
_AFTER = r"(?![\w.-])"


@dataclass(frozen=True)
class ModelPattern:
    """One row of the identification table.

    Attributes:
        pattern: Compiled regex; group 1 is the matched name.
        provider: Provider credited with the match.
        model: Canonical name to report, or None to use the captured text.
        model_type: Task category (``text-generation``, ``embeddings``...).
    """

    pattern: re.Pattern[str]
    provider: str
    model: str | None
    model_type: str = "text-generation"


def _literal(regex: str, provider: str, model: str, model_type: str = "text-generation") -> ModelPattern:
    return ModelPattern(re.compile(f"{_BEFORE}({regex}){_AFTER}", re.I), provider, model, model_type)


HUGGINGFACE = "HuggingFace"

MODEL_PATTERNS: tuple[ModelPattern, ...] = (
    # OpenAI
    _literal(r"gpt-4o-mini", "OpenAI", "gpt-4o-mini"),
    _literal(r"gpt-4o", "OpenAI", "gpt-4o"),
    _literal(r"gpt-4-turbo", "OpenAI", "gpt-4-turbo"),
    _literal(r"gpt-4", "OpenAI", "gpt-4"),
    _literal(r"gpt-3\.5-turbo", "OpenAI", "gpt-3.5-turbo"),
    _literal(r"o1-preview", "OpenAI", "o1-preview"),
    _literal(r"o1-mini", "OpenAI", "o1-mini"),
    _literal(r"text-embedding-3-large", "OpenAI", "text-embedding-3-large", "embeddings"),
    _literal(r"text-embedding-3-small", "OpenAI", "text-embedding-3-small", "embeddings"),
    _literal(r"text-embedding-ada-002", "OpenAI", "text-embedding-ada-002", "embeddings"),
    _literal(r"dall-e-3", "OpenAI", "dall-e-3", "text-to-image"),
    _literal(r"dall-e-2", "OpenAI", "dall-e-2", "text-to-image"),
    # Anthropic
    _literal(r"claude-3-5-sonnet-\d+", "Anthropic", "claude-3.5-sonnet"),
    _literal(r"claude-3-opus-\d+", "Anthropic", "claude-3-opus"),
    _literal(r"claude-3-sonnet-\d+", "Anthropic", "claude-3-sonnet"),
    _literal(r"claude-3-haiku-\d+", "Anthropic", "claude-3-haiku"),
    # Google
    _literal(r"gemini-1\.5-pro-\d+", "Google", "gemini-1.5-pro"),
    _literal(r"gemini-1\.5-flash-\d+", "Google", "gemini-1.5-flash"),
    _literal(r"gemini-1\.5-pro", "Google", "gemini-1.5-pro"),
    _literal(r"gemini-1\.5-flash", "Google", "gemini-1.5-flash"),
    _literal(r"gemini-pro", "Google", "gemini-pro"),
    _literal(r"gemini-2\.0-flash-exp", "Google", "gemini-2.0-flash-exp"),
    _literal(r"models/embedding-001", "Google", "models/embedding-001", "embeddings"),
    _literal(r"models/text-embedding-004", "Google", "models/text-embedding-004", "embeddings"),
    _literal(r"text-embedding-004", "Google", "text-embedding-004", "embeddings"),
    # Open registry: quoted org/model and hf.co links
    ModelPattern(
        re.compile(r"[\"']([a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+)[\"']"),
        HUGGINGFACE, None, "unknown",
    ),
    ModelPattern(
        re.compile(r"hf\.co/([a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+)(?::[a-zA-Z0-9_-]+)?", re.I),
        HUGGINGFACE, None, "unknown",
    ),
    # Mistral, Cohere
    _literal(r"mistral-large", "Mistral", "mistral-large"),
    _literal(r"mixtral-8x7b", "Mistral", "mixtral-8x7b"),
    _literal(r"command-r-plus", "Cohere", "command-r-plus"),
    _literal(r"command-r", "Cohere", "command-r"),
    _literal(r"command-a", "Cohere", "command-a"),
    # Local / Ollama model tags
    _literal(r"llama3\.3", "Meta", "llama3.3"),
    _literal(r"llama3\.2", "Meta", "llama3.2"),
    _literal(r"llama3\.1", "Meta", "llama3.1"),
    _literal(r"llama3", "Meta", "llama3"),
    _literal(r"codellama", "Meta", "codellama"),
    _literal(r"deepseek-coder-v2", "DeepSeek", "deepseek-coder-v2"),
    _literal(r"deepseek-r1", "DeepSeek", "deepseek-r1"),
    _literal(r"deepseek-v3", "DeepSeek", "deepseek-v3"),
    _literal(r"qwen2\.5", "Alibaba", "qwen2.5"),
    _literal(r"qwen2\.5-coder", "Alibaba", "qwen2.5-coder"),
    _literal(r"qwq", "Alibaba", "qwq"),
    _literal(r"gemma2", "Google", "gemma2"),
    _literal(r"gemma3", "Google", "gemma3"),
    _literal(r"phi4", "Microsoft", "phi4"),
    _literal(r"phi3", "Microsoft", "phi3"),
    _literal(r"mistral", "Mistral", "mistral"),
    _literal(r"medllama2", "Meta", "medllama2"),
    _literal(r"meditron", "EPFL", "meditron"),
    _literal(r"mathstral", "Mistral", "mathstral"),
    _literal(r"yi", "01.AI", "yi"),
    _literal(r"athene-v2", "Nexusflow", "athene-v2"),
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_MIME_PREFIXES: tuple[str, ...] = (
    "application/", "image/", "text/", "font/", "audio/", "video/", "multipart/",
)
_FRAMEWORK_PREFIXES: tuple[str, ...] = (
    "next/", "react/", "vue/", "angular/", "@angular/", "lodash/", "jquery/",
    "bootstrap/", "tailwind/",
)
_CSS_UTILITY = re.compile(r"^(text|bg|border|shadow|rounded|flex|grid|gap|p|m|w|h)-")
_PLACEHOLDERS: frozenset[str] = frozenset({"n/a", "none", "null", "undefined", "todo", "fixme", "tbd"})
_URL_MARKERS: tuple[str, ...] = ("://", "www.", ".com", ".org")
_FILE_SUFFIX = re.compile(r"\.(js|ts|jsx|tsx|py|java|go|css|html|json|xml|yml|yaml)$", re.I)
_ORG_START = re.compile(r"^[a-zA-Z0-9]")


def is_valid_model_name(name: str, provider: str = HUGGINGFACE) -> bool:
    """Reject candidates that cannot be an ``organization/model`` identifier.

    Only open-registry candidates are checked; literal patterns for
    commercial providers are precise enough on their own.
    """
    if not name:
        return False
    if provider != HUGGINGFACE:
        return True

    lower = name.lower()
    if lower.startswith(_MIME_PREFIXES) or lower.startswith(_FRAMEWORK_PREFIXES):
        return False
    if _CSS_UTILITY.match(lower) or lower in _PLACEHOLDERS:
        return False

    parts = name.split("/")
    if len(parts) != 2:
        return False
    org, model = parts
    if not 2 <= len(org) <= 50 or not _ORG_START.match(org):
        return False
    if not 2 <= len(model) <= 100:
        return False
    if any(marker in name for marker in _URL_MARKERS):
        return False
    if _FILE_SUFFIX.search(name):
        return False
    return True


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_model_name(name: str) -> str:
    """Identity form of a model name: lowercased, spaces to hyphens."""
    return re.sub(r"\s+", "-", name.strip().lower())


def canonical_model_name(provider: str, name: str) -> str:
    """Apply provider-specific canonical forms.

    Google embedding models are reported as ``models/<name>``.
    """
    if provider == "Google" and "embedding" in name and not name.startswith("models/"):
        return f"models/{name}"
    return name


def related_group_key(name: str) -> str:
    """Grouping key for cross-provider duplicates: drops any ``org/`` prefix."""
    return re.sub(r"^[^/]+/", "", normalize_model_name(name))
