"""Tests for the recognition provider factory."""

import pytest

from convoflow.errors import ConfigurationError, NullReferenceError
from convoflow.recognition.factory import (
    BackendType,
    get_recognition_pipeline,
    select_backend_type,
)
from convoflow.recognition.processors import (
    InternetSlangPreProcessor,
    LowercasePreProcessor,
    RemoveEnglishStopWordsPostProcessor,
)
from convoflow.recognition.regex import RegexRecognitionBackend
from convoflow.recognition.remote import RemoteRecognitionBackend


class TestSelectBackendType:
    """Tests for the backend decision table."""

    def test_no_keys_selects_regex(self):
        assert select_backend_type({}) == BackendType.REGEX

    def test_remote_with_credentials(self):
        config = {"NLU_PROJECT_ID": "p", "NLU_CREDENTIALS": "t"}
        assert select_backend_type(config) == BackendType.REMOTE

    def test_remote_with_credentials_path(self):
        config = {"NLU_PROJECT_ID": "p", "NLU_CREDENTIALS_PATH": "/tmp/token"}
        assert select_backend_type(config) == BackendType.REMOTE

    @pytest.mark.parametrize(
        "config",
        [
            {"NLU_PROJECT_ID": "p"},
            {"NLU_CREDENTIALS": "t"},
            {"NLU_CREDENTIALS_PATH": "/tmp/token"},
            {"NLU_PROJECT_ID": "p", "NLU_CREDENTIALS": "t", "NLU_CREDENTIALS_PATH": "/tmp/t"},
        ],
    )
    def test_incomplete_or_contradictory_keys(self, config):
        """Test that partial or conflicting remote keys are rejected."""
        with pytest.raises(ConfigurationError):
            select_backend_type(config)


class TestGetRecognitionPipeline:
    """Tests for get_recognition_pipeline."""

    def test_null_engine(self):
        with pytest.raises(NullReferenceError):
            get_recognition_pipeline(None, {})

    def test_null_config(self, engine):
        with pytest.raises(NullReferenceError):
            get_recognition_pipeline(engine, None)

    def test_null_checked_before_config(self):
        """Test that a None engine wins over an invalid configuration."""
        with pytest.raises(NullReferenceError):
            get_recognition_pipeline(None, {"NLU_PROJECT_ID": "p"})

    def test_default_regex_backend_seeded_with_intents(self, engine):
        pipeline = get_recognition_pipeline(engine, {})

        assert isinstance(pipeline.backend, RegexRecognitionBackend)
        assert pipeline.backend.intents == engine.model_index.all_intents
        assert pipeline.intents == engine.model_index.all_intents

    def test_remote_backend(self, engine):
        pipeline = get_recognition_pipeline(
            engine, {"NLU_PROJECT_ID": "p", "NLU_CREDENTIALS": "t"}
        )
        assert isinstance(pipeline.backend, RemoteRecognitionBackend)
        assert pipeline.name == "remote"

    def test_analytics_enabled_by_default(self, engine):
        assert get_recognition_pipeline(engine, {}).monitor is not None

    @pytest.mark.parametrize("value", [False, "false", "0"])
    def test_analytics_disabled(self, engine, value):
        pipeline = get_recognition_pipeline(engine, {"ENABLE_RECOGNITION_ANALYTICS": value})
        assert pipeline.monitor is None

    def test_invalid_analytics_value(self, engine):
        with pytest.raises(ConfigurationError):
            get_recognition_pipeline(engine, {"ENABLE_RECOGNITION_ANALYTICS": "maybe"})

    def test_processors_from_comma_separated_string(self, engine):
        pipeline = get_recognition_pipeline(
            engine,
            {
                "RECOGNITION_PREPROCESSORS": "InternetSlang, Lowercase",
                "RECOGNITION_POSTPROCESSORS": ["RemoveEnglishStopWords"],
            },
        )
        assert [type(p) for p in pipeline.pre_processors] == [
            InternetSlangPreProcessor,
            LowercasePreProcessor,
        ]
        assert [type(p) for p in pipeline.post_processors] == [
            RemoveEnglishStopWordsPostProcessor
        ]

    def test_unknown_processor(self, engine):
        with pytest.raises(ConfigurationError, match="Unknown pre-processor"):
            get_recognition_pipeline(engine, {"RECOGNITION_PREPROCESSORS": "Spellcheck"})
