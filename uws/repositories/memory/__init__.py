from .memory_instance_repository import InMemoryInstanceRepository

__all__ = ["InMemoryInstanceRepository"]
