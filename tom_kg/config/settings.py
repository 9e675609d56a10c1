"""
TomConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> tom = TomGraph()

    >>> # Explicit configuration
    >>> config = TomConfig(
    ...     store_path="./ontology_db",
    ...     llm_model="gpt-4o",
    ... )
    >>> tom = TomGraph(config=config)

    >>> # From config file
    >>> config = TomConfig.from_file("./tom.toml")

Environment Variables:
    TOM_LLM_PROVIDER - LLM provider name
    TOM_LLM_MODEL - Model for the "top" extraction tier
    TOM_EMBEDDING_MODEL - Embedding model name
    TOM_EMBEDDING_DIMENSIONS - Vector size D of both named vectors
    TOM_STORE_PATH - LanceDB directory
    TOM_COLLECTION - Collection (table) name
    TOM_STORE_TIMEOUT - Per-call store timeout in seconds
    TOM_INGEST_CONCURRENCY - Files ingested at once by ingest_directory
    OPENAI_API_KEY - OpenAI API key (standard name)
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from tom_kg.config.providers import TIERS


class TomConfig:
    """Configuration for TOM."""

    # === LLM Configuration ===

    llm_provider: str = "openai"
    """LLM provider: "openai" """

    llm_model: str = "gpt-4o"
    """Model for the "top" tier (default for extraction)"""

    llm_model_fast: str = "gpt-4o-mini"
    """Model for the "fast" tier"""

    llm_model_cheap: str = "gpt-4o-mini"
    """Model for the "cheap" tier"""

    default_tier: str = "top"
    """Tier used when ingestion is not given one"""

    # === Embedding Configuration ===

    embedding_provider: str = "openai"
    """Embedding provider: "openai" """

    embedding_model: str = "text-embedding-3-large"
    """Embedding model name"""

    embedding_dimensions: int = 1024
    """Size of both the primary and the secondary vector"""

    # === API Keys ===

    openai_api_key: str | None = None

    # === Store Configuration ===

    store_path: str = "./tom_db"
    """LanceDB directory holding the collection"""

    collection_name: str = "tom"
    """Name of the single collection holding entities and relations"""

    store_timeout_seconds: float = 30.0
    """Time budget for each store call"""

    scroll_page_size: int = 100
    """Points fetched per page when scanning"""

    # === Ingestion Configuration ===

    ingest_file_extension: str = ".txt"
    """Extension picked up by ingest_directory"""

    ingest_concurrency: int = 1
    """Files ingested at once (1 = strictly sequential)"""

    min_importance: float = 0.0
    """Entities scored below this importance are not written"""

    extract_relations: bool = True
    """Run the relation extraction pass after entities are written"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        import os

        self.openai_api_key = os.getenv("OPENAI_API_KEY")

        if provider := os.getenv("TOM_LLM_PROVIDER"):
            self.llm_provider = provider
        if model := os.getenv("TOM_LLM_MODEL"):
            self.llm_model = model
        if model := os.getenv("TOM_EMBEDDING_MODEL"):
            self.embedding_model = model
        if dimensions := os.getenv("TOM_EMBEDDING_DIMENSIONS"):
            self.embedding_dimensions = int(dimensions)
        if path := os.getenv("TOM_STORE_PATH"):
            self.store_path = path
        if collection := os.getenv("TOM_COLLECTION"):
            self.collection_name = collection
        if timeout := os.getenv("TOM_STORE_TIMEOUT"):
            self.store_timeout_seconds = float(timeout)
        if concurrency := os.getenv("TOM_INGEST_CONCURRENCY"):
            self.ingest_concurrency = int(concurrency)

    def model_for_tier(self, tier: str) -> str:
        """
        Resolve a cost/quality tier to a model name.

        Raises:
            ValueError: If the tier is not one of "top", "fast", "cheap"
        """
        if tier not in TIERS:
            raise ValueError(f"Unknown tier: {tier!r}. Expected one of {', '.join(TIERS)}")
        return str(getattr(self, TIERS[tier]))

    @classmethod
    def from_file(cls, path: str | Path) -> "TomConfig":
        """
        Load configuration from TOML file.

        Nested sections are flattened with their prefix.

        Example TOML:
            [llm]
            provider = "openai"
            model = "gpt-4o"

            [store]
            path = "./tom_db"
            timeout_seconds = 10

            [ingestion]
            concurrency = 4

        Args:
            path: Path to TOML configuration file

        Returns:
            TomConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        flat_config: dict[str, Any] = {}

        section_mapping = {
            "llm": "llm_",
            "embedding": "embedding_",
            "api_keys": "",  # api_keys.openai -> openai_api_key
            "store": "store_",
            "ingestion": "ingest_",
        }
        # Keys whose attribute name does not follow the section prefix
        renames = {
            "llm_default_tier": "default_tier",
            "store_collection_name": "collection_name",
            "store_scroll_page_size": "scroll_page_size",
            "ingest_min_importance": "min_importance",
            "ingest_extract_relations": "extract_relations",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    if section == "api_keys":
                        flat_config[f"{key}_api_key"] = value
                    else:
                        name = f"{prefix}{key}"
                        flat_config[renames.get(name, name)] = value

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "TomConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        API keys are excluded.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "llm": {
                "provider": self.llm_provider,
                "model": self.llm_model,
                "model_fast": self.llm_model_fast,
                "model_cheap": self.llm_model_cheap,
                "default_tier": self.default_tier,
            },
            "embedding": {
                "provider": self.embedding_provider,
                "model": self.embedding_model,
                "dimensions": self.embedding_dimensions,
            },
            "store": {
                "path": self.store_path,
                "collection_name": self.collection_name,
                "timeout_seconds": self.store_timeout_seconds,
                "scroll_page_size": self.scroll_page_size,
            },
            "ingestion": {
                "file_extension": self.ingest_file_extension,
                "concurrency": self.ingest_concurrency,
                "min_importance": self.min_importance,
                "extract_relations": self.extract_relations,
            },
        }

        lines = ["# TOM Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# API keys should be set via environment variables:",
            "# OPENAI_API_KEY",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "TomConfig":
        """Return new config with specified overrides."""
        new_config = TomConfig.__new__(TomConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config
