"""
Configuration Management for docsearch

Loads configuration from ~/.docsearch/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("docsearch.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".docsearch"
CONFIG_PATH = CONFIG_DIR / "config.json"
MODELS_DIR = CONFIG_DIR / "models"


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    model: str = "BAAI/bge-small-en-v1.5"
    cache_dir: str = str(MODELS_DIR)


@dataclass
class TokenizerConfig:
    """Tokenizer used for token budgets"""
    model: str = "bert-base-uncased"


@dataclass
class SplitterConfig:
    """Text splitter configuration (sizes in characters)"""
    chunk_size: int = 1000
    chunk_overlap: int = 200


@dataclass
class RerankerConfig:
    """Reranking service configuration"""
    enabled: bool = False
    endpoint: str = ""
    model: str = ""
    api_key: str = ""
    timeout: float = 30.0


@dataclass
class RetrievalConfig:
    """Ranking, summarization and budget settings"""
    top_n: int = 10
    min_similarity: float = 0.25
    max_clusters: int = 5
    max_context_tokens: int = 4096


@dataclass
class DocSearchConfig:
    """Main docsearch configuration"""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    splitter: SplitterConfig = field(default_factory=SplitterConfig)
    reranker: RerankerConfig = field(default_factory=RerankerConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    collection: str = "default"
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        model=embedding_data.get("model", "BAAI/bge-small-en-v1.5"),
        cache_dir=embedding_data.get("cache_dir", str(MODELS_DIR)),
    )


def _parse_tokenizer_config(data: dict) -> TokenizerConfig:
    """Parse tokenizer section from config dict"""
    tokenizer_data = data.get("tokenizer", {})
    return TokenizerConfig(
        model=tokenizer_data.get("model", "bert-base-uncased"),
    )


def _parse_splitter_config(data: dict) -> SplitterConfig:
    """Parse splitter section from config dict"""
    splitter_data = data.get("splitter", {})
    return SplitterConfig(
        chunk_size=int(splitter_data.get("chunk_size", 1000)),
        chunk_overlap=int(splitter_data.get("chunk_overlap", 200)),
    )


def _parse_reranker_config(data: dict) -> RerankerConfig:
    """Parse reranker section from config dict"""
    reranker_data = data.get("reranker", {})
    return RerankerConfig(
        enabled=_parse_bool(reranker_data.get("enabled", False)),
        endpoint=reranker_data.get("endpoint", ""),
        model=reranker_data.get("model", ""),
        api_key=reranker_data.get("api_key", ""),
        timeout=float(reranker_data.get("timeout", 30.0)),
    )


def _parse_retrieval_config(data: dict) -> RetrievalConfig:
    """Parse retrieval section from config dict"""
    retrieval_data = data.get("retrieval", {})
    return RetrievalConfig(
        top_n=int(retrieval_data.get("top_n", 10)),
        min_similarity=float(retrieval_data.get("min_similarity", 0.25)),
        max_clusters=int(retrieval_data.get("max_clusters", 5)),
        max_context_tokens=int(retrieval_data.get("max_context_tokens", 4096)),
    )


def load_config() -> DocSearchConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.docsearch/config.json)
    3. Default values
    """
    config = DocSearchConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.embedding = _parse_embedding_config(data)
            config.tokenizer = _parse_tokenizer_config(data)
            config.splitter = _parse_splitter_config(data)
            config.reranker = _parse_reranker_config(data)
            config.retrieval = _parse_retrieval_config(data)
            config.collection = data.get("collection", "default")
        except (json.JSONDecodeError, IOError, ValueError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    if os.getenv("DOCSEARCH_EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("DOCSEARCH_EMBEDDING_MODEL")
    if os.getenv("DOCSEARCH_TOKENIZER_MODEL"):
        config.tokenizer.model = os.getenv("DOCSEARCH_TOKENIZER_MODEL")
    if os.getenv("DOCSEARCH_COLLECTION"):
        config.collection = os.getenv("DOCSEARCH_COLLECTION")

    if os.getenv("DOCSEARCH_TOP_N"):
        config.retrieval.top_n = int(os.getenv("DOCSEARCH_TOP_N"))
    if os.getenv("DOCSEARCH_MIN_SIMILARITY"):
        config.retrieval.min_similarity = float(os.getenv("DOCSEARCH_MIN_SIMILARITY"))
    if os.getenv("DOCSEARCH_MAX_CLUSTERS"):
        config.retrieval.max_clusters = int(os.getenv("DOCSEARCH_MAX_CLUSTERS"))
    if os.getenv("DOCSEARCH_MAX_CONTEXT_TOKENS"):
        config.retrieval.max_context_tokens = int(os.getenv("DOCSEARCH_MAX_CONTEXT_TOKENS"))

    if os.getenv("DOCSEARCH_RERANKING_ENABLED"):
        config.reranker.enabled = _parse_bool(os.getenv("DOCSEARCH_RERANKING_ENABLED"))
    if os.getenv("DOCSEARCH_RERANKER_ENDPOINT"):
        config.reranker.endpoint = os.getenv("DOCSEARCH_RERANKER_ENDPOINT")
    if os.getenv("DOCSEARCH_RERANKER_MODEL"):
        config.reranker.model = os.getenv("DOCSEARCH_RERANKER_MODEL")

    # Secrets are tracked so save_config never writes them to disk
    api_key = os.getenv("DOCSEARCH_RERANKER_API_KEY")
    if api_key:
        config.reranker.api_key = api_key
        config._env_sourced_keys.add("reranker.api_key")

    return config


def save_config(config: DocSearchConfig) -> None:
    """Save configuration to file.

    The reranker API key is written as an empty string when it was sourced
    from the environment.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())
    api_key = "" if "reranker.api_key" in env_sourced else config.reranker.api_key

    data = {
        "embedding": {
            "model": config.embedding.model,
            "cache_dir": config.embedding.cache_dir,
        },
        "tokenizer": {
            "model": config.tokenizer.model,
        },
        "splitter": {
            "chunk_size": config.splitter.chunk_size,
            "chunk_overlap": config.splitter.chunk_overlap,
        },
        "reranker": {
            "enabled": config.reranker.enabled,
            "endpoint": config.reranker.endpoint,
            "model": config.reranker.model,
            "api_key": api_key,
            "timeout": config.reranker.timeout,
        },
        "retrieval": {
            "top_n": config.retrieval.top_n,
            "min_similarity": config.retrieval.min_similarity,
            "max_clusters": config.retrieval.max_clusters,
            "max_context_tokens": config.retrieval.max_context_tokens,
        },
        "collection": config.collection,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
