"""Recognition layer: turns raw user input into recognized events.

Backends:
- Regex (local, no dependency, default)
- Remote NLU service (HTTP)

Usage:
    from convoflow.recognition import get_recognition_pipeline

    pipeline = get_recognition_pipeline(engine, config)
    event = await pipeline.recognize("hello", session)
"""

from .base import BaseRecognitionBackend
from .factory import (
    ENABLE_RECOGNITION_ANALYTICS,
    RECOGNITION_POSTPROCESSORS_KEY,
    RECOGNITION_PREPROCESSORS_KEY,
    BackendType,
    get_recognition_pipeline,
)
from .monitor import RecognitionMonitor
from .pipeline import RecognitionPipeline
from .processors import (
    PostProcessor,
    PreProcessor,
    resolve_post_processor,
    resolve_pre_processor,
)
from .regex import RegexRecognitionBackend
from .remote import RemoteRecognitionBackend

__all__ = [
    "BaseRecognitionBackend",
    "RegexRecognitionBackend",
    "RemoteRecognitionBackend",
    "RecognitionPipeline",
    "RecognitionMonitor",
    "PreProcessor",
    "PostProcessor",
    "resolve_pre_processor",
    "resolve_post_processor",
    "get_recognition_pipeline",
    "BackendType",
    "ENABLE_RECOGNITION_ANALYTICS",
    "RECOGNITION_PREPROCESSORS_KEY",
    "RECOGNITION_POSTPROCESSORS_KEY",
]
