"""TTS engine registry and detection."""

import logging

from epub2speech.errors import EngineNotFoundError
from epub2speech.tts.base import TTSEngine

logger = logging.getLogger(__name__)

# name -> (priority, engine class); lower priority is preferred
ENGINE_REGISTRY: dict[str, tuple[int, type[TTSEngine]]] = {}


def register_engine(name: str, priority: int):
    """Decorator to register a TTS engine class."""
    def decorator(cls):
        ENGINE_REGISTRY[name] = (priority, cls)
        return cls
    return decorator


def _import_engines() -> None:
    """Import all engine modules to trigger registration."""
    import epub2speech.tts.espeak_engine  # noqa: F401
    import epub2speech.tts.festival_engine  # noqa: F401


def list_engines() -> list[str]:
    """Return names of all registered engines in preference order."""
    _import_engines()
    return [name for name, _ in sorted(ENGINE_REGISTRY.items(), key=lambda kv: kv[1][0])]


def get_engine(name: str, language: str = "en") -> TTSEngine:
    """Instantiate a TTS engine by name."""
    _import_engines()
    if name not in ENGINE_REGISTRY:
        available = ", ".join(ENGINE_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown engine '{name}'. Available: {available}")
    return ENGINE_REGISTRY[name][1](language=language)


def probe_engines(language: str = "en") -> dict[str, bool]:
    """Availability of every known engine, in preference order."""
    return {name: get_engine(name, language).is_available() for name in list_engines()}


def detect_engine(language: str = "en") -> TTSEngine:
    """Return the most capable engine found on PATH.

    Raises:
        EngineNotFoundError: If none of the registered engines is installed.
    """
    names = list_engines()
    for name in names:
        engine = get_engine(name, language)
        if engine.is_available():
            logger.info("Using TTS engine: %s", engine.name)
            return engine
    raise EngineNotFoundError(names)
