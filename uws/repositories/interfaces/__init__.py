from .instance import IInstanceRepository
from .user import IUserRepository

__all__ = ["IInstanceRepository", "IUserRepository"]
