"""
Helpers Module - Utility functions for common operations
"""

import math
import os

from flask import current_app

from .api_client import ApiError


def allowed_file(filename):
    """Check if file extension is allowed"""
    allowed_extensions = current_app.config.get('ALLOWED_EXTENSIONS', {'png', 'jpg', 'jpeg', 'gif', 'webp'})
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


def upload_size(upload):
    """Size in bytes of an uploaded FileStorage without consuming it"""
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def check_image(upload):
    """Return an error message for an unusable image upload, or None"""
    if not upload or not upload.filename:
        return None
    if not allowed_file(upload.filename):
        return f'{upload.filename}: unsupported image type'
    limit = current_app.config.get('MAX_IMAGE_SIZE', 10 * 1024 * 1024)
    if upload_size(upload) > limit:
        return f'{upload.filename}: image must be under {limit / (1024 * 1024):g}MB'
    return None


def present_uploads(files, field):
    """Non-empty uploads for a form field"""
    return [f for f in files.getlist(field) if f and f.filename]


def total_pages(total, limit):
    """Number of pages for a listing; never less than one"""
    if not limit:
        return 1
    return max(1, math.ceil((total or 0) / limit))


def parse_page(raw, default=1):
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return default
    return page if page > 0 else default


def safe_listing(loader, label):
    """Listing items, or None when the API fails (None is never cached)"""
    try:
        return loader().items
    except ApiError as e:
        current_app.logger.error(f"{label} fetch error: {e.message}")
        return None


__all__ = [
    'allowed_file',
    'check_image',
    'parse_page',
    'present_uploads',
    'safe_listing',
    'total_pages',
    'upload_size'
]
