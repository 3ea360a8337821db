"""Recognition Provider Factory.

Builds the recognition pipeline of an engine from a configuration mapping.
The backend is selected by the presence of its keys; without backend keys
the regex backend is used.

Configuration:
    NLU_PROJECT_ID + NLU_CREDENTIALS | NLU_CREDENTIALS_PATH: remote NLU backend
    ENABLE_RECOGNITION_ANALYTICS: attach a RecognitionMonitor (default: true)
    RECOGNITION_PREPROCESSORS: ordered pre-processor identifiers
    RECOGNITION_POSTPROCESSORS: ordered post-processor identifiers

Usage:
    from convoflow.recognition import get_recognition_pipeline

    pipeline = get_recognition_pipeline(engine, {"RECOGNITION_PREPROCESSORS": "Lowercase"})
    event = await pipeline.recognize("Hello", session)
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError, NullReferenceError
from ..infrastructure.logging_config import get_logger
from .base import BaseRecognitionBackend
from .monitor import RecognitionMonitor
from .pipeline import RecognitionPipeline
from .processors import resolve_post_processor, resolve_pre_processor
from .regex import RegexRecognitionBackend
from .remote import (
    CREDENTIALS_KEY,
    CREDENTIALS_PATH_KEY,
    PROJECT_ID_KEY,
    RemoteRecognitionBackend,
)

if TYPE_CHECKING:
    from ..core.engine import DialogueEngine

logger = get_logger(__name__)

ENABLE_RECOGNITION_ANALYTICS = "ENABLE_RECOGNITION_ANALYTICS"
RECOGNITION_PREPROCESSORS_KEY = "RECOGNITION_PREPROCESSORS"
RECOGNITION_POSTPROCESSORS_KEY = "RECOGNITION_POSTPROCESSORS"

REMOTE_BACKEND_KEYS = (PROJECT_ID_KEY, CREDENTIALS_KEY, CREDENTIALS_PATH_KEY)


class BackendType(str, Enum):
    """Available recognition backends."""

    REGEX = "regex"
    REMOTE = "remote"


# Backend registry
BACKENDS: dict[BackendType, type[BaseRecognitionBackend]] = {
    BackendType.REGEX: RegexRecognitionBackend,
    BackendType.REMOTE: RemoteRecognitionBackend,
}


class RecognitionConfig(BaseModel):
    """Factory-level view of a configuration mapping."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    enable_analytics: bool = Field(default=True, alias=ENABLE_RECOGNITION_ANALYTICS)
    pre_processors: list[str] = Field(default_factory=list, alias=RECOGNITION_PREPROCESSORS_KEY)
    post_processors: list[str] = Field(default_factory=list, alias=RECOGNITION_POSTPROCESSORS_KEY)

    @field_validator("pre_processors", "post_processors", mode="before")
    @classmethod
    def split_identifiers(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


def select_backend_type(config: Mapping[str, Any]) -> BackendType:
    """Pick the backend from the keys present in ``config``.

    Raises:
        ConfigurationError: If the remote keys are incomplete or contradictory.
    """
    present = [key for key in REMOTE_BACKEND_KEYS if config.get(key)]
    if not present:
        return BackendType.REGEX

    if not config.get(PROJECT_ID_KEY):
        raise ConfigurationError(
            f"Remote NLU credentials are configured but {PROJECT_ID_KEY} is missing"
        )
    if config.get(CREDENTIALS_KEY) and config.get(CREDENTIALS_PATH_KEY):
        raise ConfigurationError(
            f"{CREDENTIALS_KEY} and {CREDENTIALS_PATH_KEY} are mutually exclusive"
        )
    if not config.get(CREDENTIALS_KEY) and not config.get(CREDENTIALS_PATH_KEY):
        raise ConfigurationError(
            f"{PROJECT_ID_KEY} is set but neither {CREDENTIALS_KEY} nor "
            f"{CREDENTIALS_PATH_KEY} is provided"
        )
    return BackendType.REMOTE


def get_recognition_pipeline(
    engine: DialogueEngine | None,
    config: Mapping[str, Any] | None,
) -> RecognitionPipeline:
    """Build the recognition pipeline of ``engine`` from ``config``.

    Args:
        engine: The owning engine; its model intents seed the pipeline.
        config: Configuration mapping (see module docstring).

    Returns:
        A pipeline wrapping the selected backend.

    Raises:
        NullReferenceError: If ``engine`` or ``config`` is None.
        ConfigurationError: If the configuration cannot be satisfied.
    """
    if engine is None:
        raise NullReferenceError("Cannot build a recognition pipeline without an engine")
    if config is None:
        raise NullReferenceError("Cannot build a recognition pipeline from a None configuration")

    try:
        settings = RecognitionConfig.model_validate(dict(config))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid recognition configuration: {e}") from e

    pre_processors = [resolve_pre_processor(i) for i in settings.pre_processors]
    post_processors = [resolve_post_processor(i) for i in settings.post_processors]

    backend_type = select_backend_type(config)
    intents = engine.model_index.all_intents
    backend_config = dict(config)
    if backend_type == BackendType.REGEX:
        backend: BaseRecognitionBackend = RegexRecognitionBackend(backend_config, intents=intents)
    else:
        backend = BACKENDS[backend_type](backend_config)

    monitor = RecognitionMonitor(backend.name) if settings.enable_analytics else None

    logger.info(
        "Recognition pipeline created",
        backend=backend.name,
        analytics=monitor is not None,
        pre_processors=[p.name for p in pre_processors],
        post_processors=[p.name for p in post_processors],
    )
    return RecognitionPipeline(
        backend,
        pre_processors=pre_processors,
        post_processors=post_processors,
        monitor=monitor,
        intents=intents,
    )
