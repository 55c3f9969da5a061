"""Remote document storage and local file cleanup."""
from .cleanup import remove_all, remove_local
from .provider import ObjectStoreProvider
from .schemas import RemoteObject, UploadOutcome
from .uploader import StorageUploader

__all__ = [
    "ObjectStoreProvider",
    "RemoteObject",
    "StorageUploader",
    "UploadOutcome",
    "remove_all",
    "remove_local",
]
