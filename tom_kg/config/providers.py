"""
Provider Configurations

Tier names and the config attribute holding each tier's model.

A tier is a cost/quality selector for structured extraction:
    >>> config = TomConfig()
    >>> config.model_for_tier("fast")
    'gpt-4o-mini'
"""

TIERS = {
    "top": "llm_model",
    "fast": "llm_model_fast",
    "cheap": "llm_model_cheap",
}

# Embedding model sizes; text-embedding-3 models can be shortened to any D
MODEL_DIMENSIONS = {
    "text-embedding-3-large": 3072,
    "text-embedding-3-small": 1536,
    "text-embedding-ada-002": 1536,
}
