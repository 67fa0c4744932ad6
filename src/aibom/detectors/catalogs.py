"""Pattern catalogs shared by the detection units.

Every table the detection units match against lives here so the catalogs
can be reviewed, tested and extended without touching unit logic. All
regexes are compiled case-insensitive unless noted otherwise.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Rule shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderPattern:
    """Regex attributed to an AI provider, with a score weight."""

    pattern: re.Pattern[str]
    provider: str
    weight: int


@dataclass(frozen=True)
class LabeledPattern:
    """Regex mapped to a display label (model, platform, tool...)."""

    pattern: re.Pattern[str]
    label: str
    provider: str = ""


@dataclass(frozen=True)
class ModelFileRule:
    """Local model artifact recognised by extension or exact filename."""

    description: str
    extension: str | None = None
    filename: str | None = None
    path_match: re.Pattern[str] | None = None

    @property
    def key(self) -> str:
        return self.extension or self.filename or ""


def _p(regex: str, provider: str, weight: int) -> ProviderPattern:
    return ProviderPattern(re.compile(regex, re.I), provider, weight)


def _l(regex: str, label: str, provider: str = "") -> LabeledPattern:
    return LabeledPattern(re.compile(regex, re.I), label, provider)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

LLM_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    "python": (
        "openai", "anthropic", "google-generativeai", "langchain", "langchain-openai",
        "langchain-anthropic", "langchain-google-genai", "llama-index", "llama-index-core",
        "haystack-ai", "transformers", "sentence-transformers", "vllm", "huggingface-hub",
        "llama-cpp-python", "litellm", "cohere", "replicate", "stability-sdk", "together",
        "pinecone-client", "chromadb", "weaviate-client", "qdrant-client", "faiss-cpu",
        "faiss-gpu",
    ),
    "node": (
        "openai", "@anthropic-ai/sdk", "@google/generative-ai", "langchain", "langchain-openai",
        "langchain-anthropic", "ai", "llamaindex", "@mistralai/mistralai", "cohere-ai",
        "replicate", "@huggingface/inference", "@pinecone-database/pinecone", "chromadb",
        "weaviate-client", "qdrant-client", "vectordb",
    ),
    "go": (
        "github.com/sashabaranov/go-openai", "github.com/anthropics/anthropic-sdk-go",
        "github.com/google/generative-ai-go", "github.com/tmc/langchaingo",
    ),
    "java": (
        "com.openai:openai-java", "com.anthropic:anthropic-sdk-java",
        "com.google.cloud:google-cloud-aiplatform", "dev.langchain4j:langchain4j",
    ),
    "rust": ("async-openai", "anthropic-sdk", "llm-chain"),
}

ALL_LLM_DEPENDENCIES: tuple[str, ...] = tuple(
    dict.fromkeys(dep for deps in LLM_DEPENDENCIES.values() for dep in deps)
)

MANIFEST_FILES: dict[str, tuple[str, ...]] = {
    "python": ("requirements.txt", "pyproject.toml", "Pipfile", "Pipfile.lock", "setup.py", "poetry.lock"),
    "node": ("package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml"),
    "go": ("go.mod", "go.sum"),
    "java": ("pom.xml", "build.gradle", "build.gradle.kts"),
    "rust": ("Cargo.toml", "Cargo.lock"),
}

ALL_MANIFEST_FILES: frozenset[str] = frozenset(
    name for names in MANIFEST_FILES.values() for name in names
)

# Package-url type -> ecosystem label.
PURL_ECOSYSTEMS: dict[str, str] = {
    "npm": "node",
    "pypi": "python",
    "golang": "go",
    "maven": "java",
    "cargo": "rust",
    "gem": "ruby",
    "nuget": "dotnet",
}


# ---------------------------------------------------------------------------
# Code usage
# ---------------------------------------------------------------------------

SDK_PATTERNS: dict[str, tuple[ProviderPattern, ...]] = {
    "python": (
        _p(r"import\s+openai", "OpenAI", 5),
        _p(r"from\s+openai\s+import", "OpenAI", 5),
        _p(r"openai\.ChatCompletion", "OpenAI", 5),
        _p(r"openai\.chat\.completions", "OpenAI", 5),
        _p(r"openai\.Embedding", "OpenAI", 5),
        _p(r"OpenAI\(", "OpenAI", 5),
        _p(r"import\s+anthropic", "Anthropic", 5),
        _p(r"from\s+anthropic\s+import", "Anthropic", 5),
        _p(r"Anthropic\(", "Anthropic", 5),
        _p(r"messages\.create\(", "Anthropic", 4),
        _p(r"import\s+google\.generativeai", "Google", 5),
        _p(r"genai\.GenerativeModel", "Google", 5),
        _p(r"\.generate_content\(", "Google", 4),
        _p(r"from\s+langchain", "LangChain", 4),
        _p(r"import\s+langchain", "LangChain", 4),
        _p(r"from\s+llama_index", "LlamaIndex", 4),
        _p(r"import\s+llama_index", "LlamaIndex", 4),
    ),
    "javascript": (
        _p(r"from\s+['\"]openai['\"]", "OpenAI", 5),
        _p(r"require\s*\(\s*['\"]openai['\"]", "OpenAI", 5),
        _p(r"new\s+OpenAI\s*\(", "OpenAI", 5),
        _p(r"\.chat\.completions\.create", "OpenAI", 5),
        _p(r"from\s+['\"]@anthropic-ai/sdk['\"]", "Anthropic", 5),
        _p(r"require\s*\(\s*['\"]@anthropic-ai/sdk['\"]", "Anthropic", 5),
        _p(r"new\s+Anthropic\s*\(", "Anthropic", 5),
        _p(r"from\s+['\"]@google/generative-ai['\"]", "Google", 5),
        _p(r"GoogleGenerativeAI", "Google", 5),
        _p(r"from\s+['\"]langchain", "LangChain", 4),
        _p(r"require\s*\(\s*['\"]langchain", "LangChain", 4),
        _p(r"from\s+['\"]ai['\"]", "Vercel AI", 4),
        _p(r"generateText|streamText", "Vercel AI", 4),
    ),
}

API_ENDPOINTS: tuple[ProviderPattern, ...] = (
    _p(r"api\.openai\.com", "OpenAI", 4),
    _p(r"api\.anthropic\.com", "Anthropic", 4),
    _p(r"generativelanguage\.googleapis\.com", "Google", 4),
    _p(r"api\.groq\.com", "Groq", 4),
    _p(r"api\.openrouter\.ai", "OpenRouter", 4),
    _p(r"api\.together\.xyz", "Together AI", 4),
    _p(r"api\.cohere\.ai", "Cohere", 4),
    _p(r"api\.replicate\.com", "Replicate", 4),
    _p(r"/v1/chat/completions", "OpenAI-compatible", 3),
    _p(r"/v1/completions", "OpenAI-compatible", 3),
    _p(r"/v1/embeddings", "OpenAI-compatible", 3),
)

# Search qualifiers per repository language.
LANGUAGE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "JavaScript": ("js", "jsx", "mjs", "cjs"),
    "TypeScript": ("ts", "tsx"),
    "Python": ("py", "pyw"),
    "Java": ("java",),
    "Go": ("go",),
    "Rust": ("rs",),
    "Ruby": ("rb",),
    "PHP": ("php",),
    "C": ("c", "h"),
    "C++": ("cpp", "cc", "cxx", "hpp", "hxx"),
    "C#": ("cs",),
    "Kotlin": ("kt", "kts"),
    "Scala": ("scala",),
    "Swift": ("swift",),
    "Objective-C": ("m", "mm", "h"),
    "Shell": ("sh", "bash"),
    "R": ("r", "R"),
}

DEFAULT_SEARCH_EXTENSIONS: tuple[str, ...] = ("py", "js", "ts", "jsx", "tsx", "java", "go")

SCAN_EXTENSIONS: tuple[str, ...] = (".py", ".js", ".ts", ".jsx", ".tsx")


# ---------------------------------------------------------------------------
# Metadata, configuration, CI, model files, prompts
# ---------------------------------------------------------------------------

METADATA_KEYWORDS: tuple[str, ...] = (
    "llm", "gpt", "langchain", "llamaindex", "rag", "chatbot", "ai assistant",
    "openai", "anthropic", "claude", "gemini", "generative ai",
)

# First match wins, so longer model names precede their prefixes.
CONFIG_MODEL_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"gpt-4o", "GPT-4o", "OpenAI"),
    _l(r"gpt-4-turbo|gpt-4-1106", "GPT-4 Turbo", "OpenAI"),
    _l(r"gpt-4(?!\.)", "GPT-4", "OpenAI"),
    _l(r"gpt-3\.5-turbo", "GPT-3.5 Turbo", "OpenAI"),
    _l(r"claude-3-opus", "Claude 3 Opus", "Anthropic"),
    _l(r"claude-3\.5-sonnet", "Claude 3.5 Sonnet", "Anthropic"),
    _l(r"claude-3-sonnet", "Claude 3 Sonnet", "Anthropic"),
    _l(r"claude-3-haiku", "Claude 3 Haiku", "Anthropic"),
    _l(r"gemini-1\.5-pro", "Gemini 1.5 Pro", "Google"),
    _l(r"gemini-1\.5-flash", "Gemini 1.5 Flash", "Google"),
    _l(r"gemini-pro", "Gemini Pro", "Google"),
    _l(r"mistral-large", "Mistral Large", "Mistral"),
    _l(r"mixtral-8x7b", "Mixtral 8x7B", "Mistral"),
)

CONFIG_FILE_NAMES: frozenset[str] = frozenset({
    ".env", ".env.example", ".env.sample", ".env.local",
    "config.yml", "config.yaml", "docker-compose.yml",
    "settings.json", "settings.yaml", "app.config",
    "config.py", "config.js", "constants.py", "constants.js",
})

CONFIG_DIR_PATTERN = re.compile(r"config/.*\.(yml|yaml|json|toml)$")

CI_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"ai-pr-review", "AI PR Review Action"),
    _l(r"chatgpt-action", "ChatGPT Action"),
    _l(r"openai-pr-reviewer", "OpenAI PR Reviewer"),
    _l(r"gpt-commit-summarizer", "GPT Commit Summarizer"),
    _l(r"copilot-cli", "GitHub Copilot CLI"),
)

MODEL_FILE_RULES: tuple[ModelFileRule, ...] = (
    ModelFileRule("GGUF model file (llama.cpp format)", extension=".gguf"),
    ModelFileRule("SafeTensors model file", extension=".safetensors"),
    ModelFileRule("Binary model file", extension=".bin",
                  path_match=re.compile(r"models?|checkpoints?", re.I)),
    ModelFileRule("Tokenizer configuration", filename="tokenizer.json"),
    ModelFileRule("Tokenizer model", filename="tokenizer.model"),
    ModelFileRule("Tokenizer configuration", filename="tokenizer_config.json"),
    ModelFileRule("Model configuration", filename="config.json",
                  path_match=re.compile(r"models?", re.I)),
    ModelFileRule("Generation configuration", filename="generation_config.json"),
    ModelFileRule("Ollama Modelfile", filename="Modelfile"),
    ModelFileRule("Ollama configuration", filename="ollama.yaml"),
    ModelFileRule("Model index file", filename="model_index.json"),
)

PROMPT_INDICATORS: tuple[str, ...] = (
    "You are a helpful assistant",
    "You are an AI assistant",
    "You are a coding assistant",
    "system prompt",
    "user prompt",
    "assistant prompt",
    "few-shot",
    "zero-shot",
    "chain-of-thought",
    "tool calling",
    "function calling",
    "RAG",
    "retrieval augmented generation",
)

PROMPT_PATH_PATTERN = re.compile(r"(prompts|templates|llm|ai)", re.I)
PROMPT_FILE_EXTENSIONS: tuple[str, ...] = (".txt", ".md", ".json", ".yaml")


# ---------------------------------------------------------------------------
# Hardware
# ---------------------------------------------------------------------------

GPU_DEPENDENCIES: tuple[str, ...] = (
    "torch", "tensorflow-gpu", "cupy", "pycuda", "nvidia-", "jax[cuda]",
    "faiss-gpu", "vllm", "bitsandbytes", "xformers", "flash-attn",
)
TPU_DEPENDENCIES: tuple[str, ...] = ("cloud-tpu-client", "torch_xla", "libtpu")
SPECIALIZED_DEPENDENCIES: tuple[str, ...] = (
    "tensorrt", "openvino", "onnxruntime-gpu", "coremltools",
    "intel-extension-for-pytorch",
)

GPU_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"torch\.cuda\.\w+", "CUDA (PyTorch)"),
    _l(r"\.cuda\(\)", "CUDA (PyTorch)"),
    _l(r"device\s*=\s*['\"]cuda", "CUDA (PyTorch)"),
    _l(r"\.to\(\s*['\"]cuda", "CUDA (PyTorch)"),
    _l(r"tf\.config\.list_physical_devices\(\s*['\"]GPU", "TensorFlow GPU"),
    _l(r"import\s+cupy|from\s+cupy", "CuPy"),
    _l(r"@tensorflow/tfjs-node-gpu", "TensorFlow.js GPU"),
    _l(r"torch\.backends\.mps", "Apple Metal (MPS)"),
)

TPU_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"TPUStrategy", "TensorFlow TPU"),
    _l(r"jax\.devices\(\s*['\"]tpu", "JAX TPU"),
    _l(r"import\s+torch_xla|from\s+torch_xla", "PyTorch XLA"),
    _l(r"xla_device\(", "PyTorch XLA"),
)

# TensorRT and OpenVINO are Python-only integrations.
PYTHON_ONLY_HARDWARE: frozenset[str] = frozenset({"TensorRT", "OpenVINO"})

SPECIALIZED_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"import\s+tensorrt|from\s+tensorrt", "TensorRT"),
    _l(r"import\s+openvino|from\s+openvino", "OpenVINO"),
    _l(r"onnxruntime", "ONNX Runtime"),
    _l(r"coremltools", "Core ML"),
    _l(r"torch_neuronx?|neuronx-cc", "AWS Inferentia"),
)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

CONTAINER_FILES: tuple[str, ...] = ("dockerfile", "docker-compose.yml", "docker-compose.yaml", "containerfile")

# ML-specific container signals only; plain Docker usage is not reported.
CONTAINER_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"nvidia/cuda:[\w.\-]+", "Docker (NVIDIA CUDA)"),
    _l(r"--gpus\s+\S+", "Docker (GPU runtime)"),
    _l(r"runtime:\s*nvidia", "Docker (GPU runtime)"),
    _l(r"pytorch/pytorch[:\w.\-]*", "Docker (PyTorch)"),
    _l(r"tensorflow/tensorflow[:\w.\-]*", "Docker (TensorFlow)"),
    _l(r"huggingface/[\w.\-]+", "Docker (Hugging Face)"),
    _l(r"ollama/ollama[:\w.\-]*", "Docker (Ollama)"),
    _l(r"vllm/vllm-openai[:\w.\-]*", "Docker (vLLM)"),
)

ORCHESTRATION_PATH_MARKERS: tuple[str, ...] = ("k8s/", "kubernetes/", "helm/", "charts/")

ORCHESTRATION_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"nvidia\.com/gpu", "Kubernetes GPU"),
    _l(r"google\.com/tpu", "Kubernetes TPU"),
    _l(r"kind:\s*Deployment", "Kubernetes Deployment"),
    _l(r"kind:\s*Service", "Kubernetes Service"),
    _l(r"kind:\s*Pod\b", "Kubernetes Pod"),
)

CLOUD_SCAN_PATTERN = re.compile(r"\.(py|js|ts|yaml|yml|json|toml|ini|cfg)$")

CLOUD_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"sagemaker", "AWS SageMaker"),
    _l(r"bedrock-runtime|boto3\.client\(\s*['\"]bedrock", "AWS Bedrock"),
    _l(r"vertexai|google\.cloud\.aiplatform", "Google Vertex AI"),
    _l(r"azure\.ai\.ml|AzureOpenAI|openai\.azure\.com", "Azure OpenAI / Azure ML"),
    _l(r"modal\.Stub|modal\.App", "Modal"),
    _l(r"replicate\.run", "Replicate"),
)

MLOPS_PATTERNS: tuple[LabeledPattern, ...] = (
    _l(r"import\s+mlflow|mlflow\.", "MLflow"),
    _l(r"import\s+wandb|wandb\.init", "Weights & Biases"),
    _l(r"import\s+dvc|dvc\.api", "DVC"),
    _l(r"kfp\.dsl|kubeflow", "Kubeflow"),
    _l(r"import\s+bentoml|bentoml\.", "BentoML"),
    _l(r"ray\.serve|from\s+ray\s+import\s+serve", "Ray Serve"),
    _l(r"comet_ml", "Comet"),
    _l(r"clearml", "ClearML"),
)

MLOPS_DEPENDENCIES: tuple[str, ...] = (
    "mlflow", "wandb", "dvc", "kubeflow", "bentoml", "ray", "comet-ml", "clearml",
)


# ---------------------------------------------------------------------------
# Documentation and governance
# ---------------------------------------------------------------------------

DOCUMENTATION_FILES: tuple[str, ...] = (
    "readme.md", "model_card.md", "modelcard.md", "security.md", "security.txt",
    "ethics.md", "limitations.md", "responsible_ai.md", "model-card.md",
)

# Header keyword -> parsed documentation field.
DOC_SECTION_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("intent", "purpose", "use case"), "intended_use"),
    (("limit", "constraint", "known issue"), "limitations"),
    (("ethic", "responsible", "privacy"), "ethical_considerations"),
    (("bias", "fairness", "demographic"), "bias_information"),
    (("security", "vulnerability", "cve"), "security_notes"),
)

RISK_KEYWORDS: dict[str, tuple[str, ...]] = {
    "vulnerabilities": ("vulnerability", "cve-", "security issue", "exploit"),
    "deprecation": ("deprecated", "end of life", "no longer maintained", "legacy"),
    "bias": ("bias", "fairness", "discriminat"),
    "limitations": ("limitation", "not suitable", "may produce", "hallucinat"),
    "ethical": ("ethical", "responsible ai", "misuse", "harmful"),
}

DATA_PIPELINE_LIBRARIES: dict[str, tuple[str, ...]] = {
    "data_loading": ("datasets", "pandas", "numpy"),
    "preprocessing": ("sklearn", "scikit-learn", "nltk", "spacy", "torchvision", "albumentations"),
    "frameworks": ("torch", "tensorflow", "jax", "keras"),
}
