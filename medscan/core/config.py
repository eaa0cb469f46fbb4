"""Configuration management"""
import os
import json
import logging
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


DEFAULT_PROMPTS: Dict[str, str] = {
    "image_analysis": (
        "Analyze this photo of medicine packaging or a pill. "
        "Decide whether it shows a pharmaceutical product and set isMedicine accordingly. "
        "Extract the brand name, generic name, active ingredients, the primary medical purpose, "
        "the specific reasons for use as a list, common side effects, and 3-5 related or "
        "alternative medicines. Be precise and put safety information first."
    ),
    "name_lookup": (
        "Give detailed information about the medicine named \"{name}\". "
        "Include the brand name, generic name, active ingredients, primary medical purpose, "
        "specific reasons for use as a list, common side effects, and 3-5 related or "
        "alternative medicines. If the input is not a recognized medicine, set isMedicine to false."
    ),
    "suggestions": (
        "List {limit} well-known medicine brand or generic names that start with or match "
        "the characters \"{query}\". Return only a JSON array of names."
    ),
    "illustration": (
        "A clean clinical 3D render of a medicine bottle or pharmaceutical box for {brand_name}. "
        "White background, soft studio lighting, medical look."
    ),
}


class Config:
    """Application configuration"""

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent.parent
    PROMPTS_CONFIG_PATH: Path = Path(os.getenv("PROMPTS_CONFIG_PATH", str(BASE_DIR / "config" / "prompts.json")))
    APP_CONFIG_PATH: Path = Path(os.getenv("APP_CONFIG_PATH", str(BASE_DIR / "config" / "app_config.yaml")))

    # Load app config
    _app_config: Optional[Dict[str, Any]] = None

    # Gemini API
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")
    GEMINI_IMAGE_MODEL: str = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

    # Camera
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))

    # Processing settings
    MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "10"))
    SUPPORTED_FORMATS: list = [".png", ".jpg", ".jpeg", ".webp"]

    # Output settings
    OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", "./results"))
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "./logs"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Parallel processing
    MAX_WORKERS: int = int(os.getenv("MAX_WORKERS", "5"))

    # API settings
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    @classmethod
    def load_app_config(cls) -> Dict[str, Any]:
        """Load application configuration from YAML file"""
        if cls._app_config is not None:
            return cls._app_config

        try:
            if cls.APP_CONFIG_PATH.exists():
                with open(cls.APP_CONFIG_PATH, "r", encoding="utf-8") as f:
                    cls._app_config = yaml.safe_load(f) or {}
                    return cls._app_config
            else:
                # Return empty dict if config file doesn't exist
                return {}
        except (yaml.YAMLError, IOError) as e:
            raise ValueError(f"Failed to load app config from {cls.APP_CONFIG_PATH}: {e}")

    @classmethod
    def get(cls, *keys, default=None):
        """Get nested config value

        Args:
            *keys: Variable number of keys to traverse nested config
            default: Default value if key not found

        Example:
            Config.get("suggestions", "debounce_ms") -> config["suggestions"]["debounce_ms"]
        """
        config = cls.load_app_config()
        value = config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default
        return value if value is not None else default

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration"""
        if not cls.GEMINI_API_KEY:
            raise ValueError(
                "GEMINI_API_KEY is required. Set it in .env file or environment variable."
            )

    @classmethod
    def ensure_directories(cls) -> None:
        """Ensure output and log directories exist"""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        (cls.LOG_DIR / cls.get("directories", "debug", default="debug")).mkdir(parents=True, exist_ok=True)

    @classmethod
    def load_prompts_config(cls) -> Dict[str, Any]:
        """Load prompts configuration from JSON file"""
        try:
            if cls.PROMPTS_CONFIG_PATH.exists():
                with open(cls.PROMPTS_CONFIG_PATH, "r", encoding="utf-8") as f:
                    return json.load(f)
            else:
                # Return empty dict if config file doesn't exist
                return {}
        except (json.JSONDecodeError, IOError) as e:
            raise ValueError(f"Failed to load prompts config from {cls.PROMPTS_CONFIG_PATH}: {e}")

    @classmethod
    def get_prompt(cls, name: str) -> str:
        """Get a prompt template from the prompts file, falling back to the built-in one"""
        prompts_config = cls.load_prompts_config()
        return prompts_config.get(name) or DEFAULT_PROMPTS[name]


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for an entry point"""
    level_name = (level or Config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=Config.get("logging", "format", default="%(asctime)s %(levelname)s %(name)s: %(message)s"),
    )
