# glo_cloud/services/__init__.py
"""Business logic services"""
from .auth import auth_service
from .activity import activity_service
from .storage import storage_service
