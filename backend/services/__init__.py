"""Business logic services."""

from .avatars import AvatarPreview, AvatarService, AvatarUpdate
from .image_generation import ImageGenerator, OpenAIImageGenerator, build_image_generator
from .images import (
    JPEG_CONTENT_TYPE,
    UploadTooLargeError,
    process_image_bytes,
    read_upload_file,
)
from .prompts import compose_prompt
from .storage import (
    MinioObjectStore,
    ObjectStore,
    delete_object,
    ensure_bucket,
    get_minio_client,
    get_object_store,
)

__all__ = [
    "AvatarPreview",
    "AvatarService",
    "AvatarUpdate",
    "ImageGenerator",
    "OpenAIImageGenerator",
    "build_image_generator",
    "compose_prompt",
    "get_minio_client",
    "get_object_store",
    "ensure_bucket",
    "delete_object",
    "MinioObjectStore",
    "ObjectStore",
    "process_image_bytes",
    "read_upload_file",
    "JPEG_CONTENT_TYPE",
    "UploadTooLargeError",
]
