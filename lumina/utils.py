"""Decoding and encoding helpers for the Lumina photo editor."""

import io
import os
import logging
from typing import List, Union, BinaryIO

import cv2
import numpy as np
from PIL import Image

from .errors import InvalidImage, EncodeFailure

# Set up logging
logger = logging.getLogger(__name__)

# Define supported image formats
SUPPORTED_FORMATS = {
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.png': 'PNG',
}

DEFAULT_JPEG_QUALITY = 90

ImageSource = Union[str, os.PathLike, bytes, bytearray, BinaryIO, np.ndarray]


def load_image(source: ImageSource) -> np.ndarray:
    """Decode an image into an RGB pixel buffer.

    Args:
        source: File path, raw encoded bytes, file object, or numpy array

    Returns:
        Decoded image as a uint8 numpy array in RGB format

    Raises:
        InvalidImage: If the image could not be decoded or has no pixels
    """
    # If source is already a numpy array, just return it
    if isinstance(source, np.ndarray):
        image = source
    elif isinstance(source, (str, os.PathLike)):
        image = _load_from_path(os.fspath(source))
    elif isinstance(source, (bytes, bytearray)):
        image = _load_from_bytes(bytes(source))
    else:
        # File-like object; restore its position afterwards
        pos = source.tell()
        try:
            source.seek(0)
            image = _load_from_bytes(source.read())
        finally:
            source.seek(pos)

    if image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImage(f"Decoded image has degenerate shape {image.shape}")
    return image


def _load_from_path(path: str) -> np.ndarray:
    if not os.path.exists(path):
        raise InvalidImage(f"Image file does not exist: {path}")
    with open(path, 'rb') as f:
        return _load_from_bytes(f.read(), origin=path)


def _load_from_bytes(data: bytes, origin: str = "<bytes>") -> np.ndarray:
    if not data:
        raise InvalidImage(f"No image data in {origin}")

    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.mode in ('RGBA', 'LA', 'PA') or 'transparency' in img.info:
                return flatten_alpha(np.array(img.convert('RGBA')))
            # Convert to RGB if needed
            if img.mode != 'RGB':
                img = img.convert('RGB')
            return np.array(img)
    except Exception as pil_error:
        logger.debug(f"PIL could not decode {origin}: {pil_error}; trying OpenCV")

    # Fall back to OpenCV
    file_bytes = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(file_bytes, cv2.IMREAD_COLOR)
    if image is None:
        raise InvalidImage(f"Could not decode image from {origin}")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def _encode(image: np.ndarray, format_name: str, **save_args) -> bytes:
    try:
        pil_image = Image.fromarray(image.astype('uint8'), 'RGB')
        buffer = io.BytesIO()
        pil_image.save(buffer, format=format_name, **save_args)
    except Exception as e:
        raise EncodeFailure(f"Error encoding image as {format_name}: {str(e)}") from e

    data = buffer.getvalue()
    if not data:
        raise EncodeFailure(f"Encoding as {format_name} produced no data")
    return data


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGB image as lossless PNG bytes.

    Raises:
        EncodeFailure: If the encoder fails or produces no data
    """
    return _encode(image, 'PNG', optimize=True)


def encode_jpeg(image: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode an RGB image as JPEG bytes.

    Args:
        image: Image as numpy array in RGB format
        quality: JPEG quality factor (1-100)

    Raises:
        EncodeFailure: If the encoder fails or produces no data
    """
    if not 1 <= quality <= 100:
        raise ValueError(f"JPEG quality must be within 1-100, got {quality}")
    return _encode(image, 'JPEG', quality=quality, optimize=True)


def save_image(image: np.ndarray, output_path: str, quality: int = DEFAULT_JPEG_QUALITY) -> None:
    """Save an image to a file path, choosing the format from the extension.

    Args:
        image: Image as numpy array in RGB format
        output_path: Path where the image will be saved
        quality: Quality for JPEG output (1-100)
    """
    # Create directory if it doesn't exist
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    ext = os.path.splitext(output_path)[1].lower()
    if SUPPORTED_FORMATS.get(ext) == 'JPEG':
        data = encode_jpeg(image, quality)
    else:
        data = encode_png(image)

    with open(output_path, 'wb') as f:
        f.write(data)


def flatten_alpha(image: np.ndarray) -> np.ndarray:
    """Composite an RGBA image onto black and drop the alpha channel.

    Fully transparent pixels become black whatever RGB they store.
    """
    rgb = image[:, :, :3].astype(np.float32)
    alpha = image[:, :, 3:4].astype(np.float32) / 255.0
    return np.clip(np.rint(rgb * alpha), 0, 255).astype(np.uint8)


def normalize_image(image: np.ndarray) -> np.ndarray:
    """Normalize image values to [0, 1] range."""
    return image.astype(np.float32) / 255.0


def denormalize_image(image: np.ndarray) -> np.ndarray:
    """Convert normalized image back to [0, 255] range."""
    return np.clip(np.rint(image * 255.0), 0, 255).astype(np.uint8)


def is_supported_format(file_path: str) -> bool:
    """Check if an input file has a supported image extension."""
    ext = os.path.splitext(file_path)[1].lower()
    return ext in SUPPORTED_FORMATS


def get_supported_formats() -> List[str]:
    """Get list of supported image format extensions (with dots, e.g., '.jpg')."""
    return list(SUPPORTED_FORMATS.keys())
