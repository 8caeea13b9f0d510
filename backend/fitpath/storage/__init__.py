"""Storage module - provides interface and implementations for data persistence."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .user_repository import UserRepository, init_user_repository, get_user_repository

__all__ = ['StorageInterface', 'LocalStorage', 'UserRepository', 'init_user_repository', 'get_user_repository']
