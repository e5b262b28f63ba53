# security/input_validation.py

import io
import logging
import os
import re
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class SecurityValidator:
    """
    Validate inputs for security
    """

    ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.gif', '.tiff', '.webp'}
    MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB

    @staticmethod
    def validate_image_bytes(data: bytes) -> bool:
        """Check that the bytes really are an image Pillow understands"""
        if not data or len(data) > SecurityValidator.MAX_FILE_SIZE:
            return False
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
            return True
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            logger.debug("Rejected image data: %s", e)
            return False

    @staticmethod
    def validate_image_path(path: str) -> bool:
        """
        Validate image path for security
        """
        try:
            # Check path traversal
            path_obj = Path(path).resolve()
        except (OSError, RuntimeError) as e:
            logger.warning("Validation error for %s: %s", path, e)
            return False

        # Ensure file exists and is a file (not directory)
        if not path_obj.is_file():
            return False

        # Check extension
        if path_obj.suffix.lower() not in SecurityValidator.ALLOWED_EXTENSIONS:
            return False

        # Check file size
        if path_obj.stat().st_size > SecurityValidator.MAX_FILE_SIZE:
            return False

        # Verify actual file type (not just extension)
        return SecurityValidator.validate_image_bytes(path_obj.read_bytes())

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """
        Sanitize filename to prevent injection attacks
        """
        # Remove path separators
        filename = filename.replace('/', '_').replace('\\', '_')

        # Remove special characters
        filename = re.sub(r'[^\w\s.-]', '', filename)

        # No hidden files or parent references
        filename = filename.lstrip('.') or "image"

        # Limit length
        if len(filename) > 255:
            name, ext = os.path.splitext(filename)
            filename = name[:250] + ext

        return filename

    @staticmethod
    def validate_directory(directory: str, allow_system_dirs: bool = False) -> bool:
        """
        Validate directory path
        """
        try:
            dir_path = Path(directory).resolve()
        except (OSError, RuntimeError) as e:
            logger.warning("Directory validation error for %s: %s", directory, e)
            return False

        # Check if directory exists
        if not dir_path.is_dir():
            return False

        # Prevent access to system directories
        if not allow_system_dirs:
            system_dirs = {
                Path('/etc'), Path('/sys'), Path('/proc'),
                Path('C:\\Windows'), Path('C:\\Program Files')
            }

            for sys_dir in system_dirs:
                if sys_dir.exists() and dir_path.is_relative_to(sys_dir):
                    return False

        # Check permissions
        return os.access(dir_path, os.R_OK)
