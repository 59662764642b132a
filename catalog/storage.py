"""
Product image storage on top of Django's default storage backend.

The image directory (``XSTORE_PRODUCT_IMAGE_DIR``) plays the part of a
public bucket: files saved there are served from ``MEDIA_URL``.
"""
import logging
import os
import re
import time

from django.conf import settings
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


def bucket_name():
    return settings.XSTORE_PRODUCT_IMAGE_DIR


def build_image_name(filename, now_ms=None):
    """products/<epoch-ms>_<filename with whitespace replaced by _>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    safe_name = re.sub(r'\s+', '_', os.path.basename(filename))
    return f"{bucket_name()}/{now_ms}_{safe_name}"


def is_image(uploaded_file):
    content_type = getattr(uploaded_file, 'content_type', '') or ''
    return content_type.startswith('image/')


def bucket_exists():
    return default_storage.exists(bucket_name())


def list_images():
    if not bucket_exists():
        return []
    _, files = default_storage.listdir(bucket_name())
    return sorted(files)


def ensure_bucket():
    """Create the image directory if needed. Returns True when it was created."""
    if bucket_exists():
        return False
    try:
        os.makedirs(default_storage.path(bucket_name()), exist_ok=True)
    except NotImplementedError:
        # Remote backends create prefixes on first write
        return False
    except OSError as exc:
        logger.exception("Could not create image directory %s", bucket_name())
        raise StorageError('Could not create products bucket') from exc
    logger.info("Created image directory %s", bucket_name())
    return True


def save_product_image(uploaded_file):
    """Save an uploaded image and return its storage name."""
    name = build_image_name(uploaded_file.name)
    try:
        saved_name = default_storage.save(name, uploaded_file)
    except OSError as exc:
        logger.exception("Failed to store product image %s", name)
        raise StorageError('Failed to upload image') from exc
    logger.info("Uploaded product image %s", saved_name)
    return saved_name


def image_url(saved_name, request=None):
    url = default_storage.url(saved_name)
    if request is not None and url.startswith('/'):
        url = request.build_absolute_uri(url)
    return url


def delete_image(saved_name):
    default_storage.delete(saved_name)
    logger.info("Deleted product image %s", saved_name)


def upload_product_image(uploaded_file, request=None):
    """Save an uploaded image and return its public URL."""
    return image_url(save_product_image(uploaded_file), request)


def storage_status():
    exists = bucket_exists()
    return {
        'bucket': bucket_name(),
        'exists': exists,
        'is_public': bool(settings.MEDIA_URL),
        'file_count': len(list_images()) if exists else 0,
    }
