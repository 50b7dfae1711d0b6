from .sqlalchemy_instance_repository import SqlalchemyInstanceRepository
from .sqlalchemy_user_repository import SqlalchemyUserRepository

__all__ = ["SqlalchemyInstanceRepository", "SqlalchemyUserRepository"]
