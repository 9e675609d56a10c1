"""
Assembly

Embeds extracted nodes and writes them to the store.
"""

from tom_kg.ingestion.assembly.assembler import Assembler

__all__ = ["Assembler"]
