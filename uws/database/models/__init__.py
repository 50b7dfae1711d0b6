from .instance import Instance
from .user import User

__all__ = ["Instance", "User"]
