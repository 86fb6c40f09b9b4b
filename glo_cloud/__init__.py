# glo_cloud/__init__.py
"""Glo Cloud file storage and sharing service"""
def __getattr__(name):
    if name == "__version__":
        from .config import settings
        return settings.VERSION
    raise AttributeError(name)
