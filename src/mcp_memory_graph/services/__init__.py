from .memory_engine import MemoryEngine

__all__ = ["MemoryEngine"]
