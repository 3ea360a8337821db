"""Pre- and post-processors applied around recognition.

Pre-processors rewrite the raw input before it reaches the backend.
Post-processors rewrite the recognized event afterwards. Both are resolved
from configuration by identifier, e.g. ``"Lowercase"`` or
``"RemoveEnglishStopWords"``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..models.events import RecognizedEvent

if TYPE_CHECKING:
    from ..core.session import Session


class PreProcessor(ABC):
    """Transforms raw input. May read the session, never needs to write it."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def process(self, text: str, session: Session) -> str:
        pass


class PostProcessor(ABC):
    """Transforms a recognized event."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def process(self, event: RecognizedEvent, session: Session) -> RecognizedEvent:
        pass


# =============================================================================
# Pre-processors
# =============================================================================


class LowercasePreProcessor(PreProcessor):
    def process(self, text: str, session: Session) -> str:
        return text.lower()


class TrimPreProcessor(PreProcessor):
    """Strips the input and collapses inner whitespace."""

    def process(self, text: str, session: Session) -> str:
        return " ".join(text.split())


# Common chat abbreviations
INTERNET_SLANG: dict[str, str] = {
    "afaik": "as far as I know",
    "asap": "as soon as possible",
    "btw": "by the way",
    "brb": "be right back",
    "fyi": "for your information",
    "idk": "I don't know",
    "imo": "in my opinion",
    "imho": "in my humble opinion",
    "lol": "laughing out loud",
    "np": "no problem",
    "omg": "oh my God",
    "pls": "please",
    "plz": "please",
    "r": "are",
    "thx": "thanks",
    "ty": "thank you",
    "u": "you",
    "ur": "your",
    "wtf": "what the f**k",
}


class InternetSlangPreProcessor(PreProcessor):
    """Expands internet slang terms; punctuation around them is preserved."""

    WORD_PATTERN = re.compile(r"[A-Za-z0-9']+")

    def __init__(self, dictionary: dict[str, str] | None = None):
        self.dictionary = {k.lower(): v for k, v in (dictionary or INTERNET_SLANG).items()}

    def process(self, text: str, session: Session) -> str:
        return self.WORD_PATTERN.sub(self._expand, text)

    def _expand(self, match: re.Match[str]) -> str:
        word = match.group(0)
        return self.dictionary.get(word.lower(), word)


# =============================================================================
# Post-processors
# =============================================================================


ENGLISH_STOP_WORDS = frozenset(
    """
    a an and are as at be but by for from has have i if in into is it its
    me my of on or our so than that the their them then there these they
    this to was we were what which who will with you your
    """.split()
)


class RemoveEnglishStopWordsPostProcessor(PostProcessor):
    """Removes English stop words from string parameter values.

    A value made only of stop words is left untouched.
    """

    def process(self, event: RecognizedEvent, session: Session) -> RecognizedEvent:
        for name, value in event.parameters.items():
            if not isinstance(value, str):
                continue
            words = [w for w in value.split() if w.lower() not in ENGLISH_STOP_WORDS]
            if words:
                event.parameters[name] = " ".join(words)
        return event


class LowercaseParametersPostProcessor(PostProcessor):
    def process(self, event: RecognizedEvent, session: Session) -> RecognizedEvent:
        event.parameters = {
            k: v.lower() if isinstance(v, str) else v for k, v in event.parameters.items()
        }
        return event


YES_NO_QUESTION_STARTERS = frozenset(
    """
    am is are was were do does did have has had can could shall should
    will would may might must
    """.split()
)


class IsEnglishYesNoQuestionPostProcessor(PostProcessor):
    """Flags inputs phrased as yes/no questions in ``nlp_data``."""

    KEY = "is_yes_no_question"

    def process(self, event: RecognizedEvent, session: Session) -> RecognizedEvent:
        words = event.matched_input.strip().split()
        event.nlp_data[self.KEY] = bool(
            words
            and words[0].lower() in YES_NO_QUESTION_STARTERS
            and event.matched_input.rstrip().endswith("?")
        )
        return event


# =============================================================================
# Registry
# =============================================================================

PRE_PROCESSORS: dict[str, type[PreProcessor]] = {
    "lowercase": LowercasePreProcessor,
    "trim": TrimPreProcessor,
    "internetslang": InternetSlangPreProcessor,
}

POST_PROCESSORS: dict[str, type[PostProcessor]] = {
    "removeenglishstopwords": RemoveEnglishStopWordsPostProcessor,
    "lowercaseparameters": LowercaseParametersPostProcessor,
    "isenglishyesnoquestion": IsEnglishYesNoQuestionPostProcessor,
}


def _normalize(identifier: str, suffix: str) -> str:
    key = identifier.strip().replace("_", "").replace("-", "").lower()
    if key.endswith(suffix) and key != suffix:
        key = key[: -len(suffix)]
    return key


def resolve_pre_processor(identifier: str) -> PreProcessor:
    """Instantiate the pre-processor registered under ``identifier``.

    Raises:
        ConfigurationError: If no pre-processor matches.
    """
    processor_class = PRE_PROCESSORS.get(_normalize(identifier, "preprocessor"))
    if processor_class is None:
        raise ConfigurationError(f"Unknown pre-processor: {identifier}")
    return processor_class()


def resolve_post_processor(identifier: str) -> PostProcessor:
    """Instantiate the post-processor registered under ``identifier``.

    Raises:
        ConfigurationError: If no post-processor matches.
    """
    processor_class = POST_PROCESSORS.get(_normalize(identifier, "postprocessor"))
    if processor_class is None:
        raise ConfigurationError(f"Unknown post-processor: {identifier}")
    return processor_class()
