"""Image processing and validation utilities"""
from pathlib import Path
from typing import List, Optional, Tuple, Union
from PIL import Image
import io

from medscan.core.config import Config
from medscan.types.medicine import ImagePayload

MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


class ImageProcessor:
    """Utilities for encoding, processing and validating images"""

    @staticmethod
    def optimize_image(
        image: Union[Path, Image.Image],
        max_width: int = 2048,
        max_height: int = 2048,
        format: str = "JPEG"
    ) -> Image.Image:
        """
        Normalize color mode and downscale an image for faster API processing

        Args:
            image: Path to image file or an already decoded image
            max_width: Maximum width in pixels (default 2048)
            max_height: Maximum height in pixels (default 2048)
            format: Target format (JPEG, PNG, WEBP)

        Returns:
            Optimized PIL Image object
        """
        img = Image.open(image) if isinstance(image, (str, Path)) else image

        # Convert RGBA to RGB if needed (for JPEG)
        if format == "JPEG" and img.mode in ("RGBA", "LA", "P"):
            # Create white background
            background = Image.new("RGB", img.size, (255, 255, 255))
            if img.mode == "P":
                img = img.convert("RGBA")
            background.paste(img, mask=img.split()[-1] if img.mode in ("RGBA", "LA") else None)
            img = background
        elif img.mode not in ("RGB", "L"):
            img = img.convert("RGB")

        # Resize if image is too large
        width, height = img.size
        if width > max_width or height > max_height:
            ratio = min(max_width / width, max_height / height)
            new_width = int(width * ratio)
            new_height = int(height * ratio)
            img = img.resize((new_width, new_height), Image.Resampling.LANCZOS)

        return img

    @staticmethod
    def encode_image(img: Image.Image, quality: int = 85, format: str = "JPEG") -> ImagePayload:
        """
        Compress an image into a payload for API transmission

        Args:
            img: Decoded image (RGB or L for JPEG)
            quality: Lossy quality 1-100
            format: Output format (JPEG, PNG, WEBP)

        Returns:
            ImagePayload with the encoded bytes and their mime type
        """
        if img.width == 0 or img.height == 0:
            raise ValueError("Cannot encode an image with zero dimensions")

        buffer = io.BytesIO()
        save_kwargs = {"format": format}
        if format in ("JPEG", "WEBP"):
            save_kwargs["quality"] = quality
        if format in ("JPEG", "PNG"):
            save_kwargs["optimize"] = True

        img.save(buffer, **save_kwargs)
        return ImagePayload(data=buffer.getvalue(), mime_type=MIME_TYPES[format])

    @staticmethod
    def payload_from_bytes(content: bytes) -> ImagePayload:
        """Decode uploaded image bytes and re-encode them with the configured optimization"""
        try:
            img = Image.open(io.BytesIO(content))
            img.load()
        except Exception as e:
            raise ValueError(f"Invalid image file: {e}")
        return ImageProcessor._optimized_payload(img)

    @staticmethod
    def load_payload(image_path: Union[Path, str]) -> ImagePayload:
        """Build an ImagePayload from an image file on disk"""
        image_path = Path(image_path)
        is_valid, error = ImageProcessor.validate_image(image_path)
        if not is_valid:
            raise ValueError(error)

        with Image.open(image_path) as img:
            img.load()
            return ImageProcessor._optimized_payload(img)

    @staticmethod
    def _optimized_payload(img: Image.Image) -> ImagePayload:
        if Config.get("optimization", "optimize_images", default=True):
            img = ImageProcessor.optimize_image(
                img,
                max_width=Config.get("optimization", "max_image_width", default=2048),
                max_height=Config.get("optimization", "max_image_height", default=2048),
            )
        else:
            img = ImageProcessor.optimize_image(img, max_width=img.width, max_height=img.height)
        return ImageProcessor.encode_image(
            img,
            quality=Config.get("optimization", "image_quality", default=85)
        )

    @staticmethod
    def validate_image(image_path: Path) -> Tuple[bool, Optional[str]]:
        """
        Validate if file is a valid image

        Returns:
            (is_valid, error_message)
        """
        if not image_path.exists():
            return False, f"File not found: {image_path}"

        # Check extension
        if image_path.suffix.lower() not in Config.SUPPORTED_FORMATS:
            return False, f"Unsupported format. Supported: {', '.join(Config.SUPPORTED_FORMATS)}"

        # Check file size
        file_size_mb = image_path.stat().st_size / (1024 * 1024)
        if file_size_mb > Config.MAX_IMAGE_SIZE_MB:
            return False, f"File too large: {file_size_mb:.2f}MB (max: {Config.MAX_IMAGE_SIZE_MB}MB)"

        # Try to open and verify image
        try:
            with Image.open(image_path) as img:
                img.verify()
            return True, None
        except Exception as e:
            return False, f"Invalid image file: {e}"

    @staticmethod
    def find_images(directory: Path, recursive: bool = False) -> List[Path]:
        """
        Find all image files in a directory

        Args:
            directory: Directory to search
            recursive: Whether to search recursively

        Returns:
            List of image file paths
        """
        directory = Path(directory)
        if not directory.exists():
            return []

        images = []
        pattern = "**/*" if recursive else "*"

        for ext in Config.SUPPORTED_FORMATS:
            images.extend(directory.glob(f"{pattern}{ext}"))
            images.extend(directory.glob(f"{pattern}{ext.upper()}"))

        return sorted(set(images))

    @staticmethod
    def is_image_file(file_path: Path) -> bool:
        """Check if file is an image based on extension"""
        return file_path.suffix.lower() in Config.SUPPORTED_FORMATS
