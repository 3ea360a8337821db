"""Remote NLU service backend.

Delegates intent recognition to an HTTP NLU service organised in projects.
The service is trained with the model's intents and then queried once per
user turn.

Configuration:
    NLU_PROJECT_ID: Project holding the agent (required)
    NLU_CREDENTIALS: API token (required unless NLU_CREDENTIALS_PATH is set)
    NLU_CREDENTIALS_PATH: File containing the API token
    NLU_BASE_URL: Service URL (default: http://localhost:5005)
    NLU_LANGUAGE_CODE: Language of the agent (default: en-US)
    NLU_TIMEOUT: Request timeout in seconds (default: 10)

Endpoints:
    PUT  {base_url}/v1/projects/{project}/intents
    POST {base_url}/v1/projects/{project}/sessions/{session}:detect
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from ..errors import ConfigurationError, RecognitionFailure
from ..infrastructure.logging_config import get_logger
from ..models.events import DEFAULT_FALLBACK_INTENT, IntentDefinition, RecognizedEvent
from .base import BaseRecognitionBackend

if TYPE_CHECKING:
    from ..core.session import Session

logger = get_logger(__name__)

PROJECT_ID_KEY = "NLU_PROJECT_ID"
CREDENTIALS_KEY = "NLU_CREDENTIALS"
CREDENTIALS_PATH_KEY = "NLU_CREDENTIALS_PATH"
BASE_URL_KEY = "NLU_BASE_URL"
LANGUAGE_CODE_KEY = "NLU_LANGUAGE_CODE"
TIMEOUT_KEY = "NLU_TIMEOUT"

DEFAULT_BASE_URL = "http://localhost:5005"
DEFAULT_LANGUAGE_CODE = "en-US"
DEFAULT_TIMEOUT = 10.0


def read_credentials(path: str | Path) -> str:
    """Read an API token from a credentials file.

    Raises:
        ConfigurationError: If the file does not exist or is empty.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Credentials file not found: {path}")
    token = path.read_text().strip()
    if not token:
        raise ConfigurationError(f"Credentials file is empty: {path}")
    return token


class RemoteRecognitionBackend(BaseRecognitionBackend):
    """Client of a remote NLU service.

    One ``httpx.AsyncClient`` is shared by all sessions; httpx clients are
    safe for concurrent requests.
    """

    def __init__(
        self,
        config: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the backend.

        Args:
            config: Mapping with the NLU_* keys described in the module docstring.
            transport: Optional httpx transport (tests use httpx.MockTransport).

        Raises:
            ConfigurationError: If the project id or the credentials are missing.
        """
        super().__init__(config)
        self.project_id = self.config.get(PROJECT_ID_KEY)
        if not self.project_id:
            raise ConfigurationError(f"{PROJECT_ID_KEY} is required by the remote NLU backend")

        credentials = self.config.get(CREDENTIALS_KEY)
        if not credentials and self.config.get(CREDENTIALS_PATH_KEY):
            credentials = read_credentials(self.config[CREDENTIALS_PATH_KEY])
        if not credentials:
            raise ConfigurationError(
                f"{CREDENTIALS_KEY} or {CREDENTIALS_PATH_KEY} is required by the remote NLU backend"
            )

        self.base_url = str(self.config.get(BASE_URL_KEY, DEFAULT_BASE_URL)).rstrip("/")
        self.language_code = self.config.get(LANGUAGE_CODE_KEY, DEFAULT_LANGUAGE_CODE)
        self.timeout = float(self.config.get(TIMEOUT_KEY, DEFAULT_TIMEOUT))
        self._intents: dict[str, IntentDefinition] = {}
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {credentials}"},
            timeout=self.timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "remote"

    @property
    def project_url(self) -> str:
        return f"/v1/projects/{self.project_id}"

    async def train(self, intents: Iterable[IntentDefinition]) -> None:
        self._check_running()
        intents = list(intents)
        payload = {
            "language_code": self.language_code,
            "intents": [
                {
                    "name": intent.name,
                    "training_sentences": intent.training_sentences,
                    "parameters": intent.parameters,
                }
                for intent in intents
            ],
        }
        await self._request("PUT", f"{self.project_url}/intents", payload)
        for intent in intents:
            self._intents[intent.name] = intent
        logger.info("Remote NLU agent trained", project=self.project_id, intents=len(intents))

    async def recognize(self, text: str, session: Session) -> RecognizedEvent:
        self._check_running()
        payload = {"text": text, "language_code": self.language_code}
        data = await self._request(
            "POST", f"{self.project_url}/sessions/{session.session_id}:detect", payload
        )

        intent_name = data.get("intent")
        definition = self._intents.get(intent_name) if intent_name else None
        if definition is None:
            if intent_name:
                logger.warning("Remote NLU returned an untrained intent", intent=intent_name)
            return RecognizedEvent(
                definition=DEFAULT_FALLBACK_INTENT,
                confidence=float(data.get("confidence", 0.0)),
                matched_input=text,
            )

        return RecognizedEvent(
            definition=definition,
            parameters=dict(data.get("parameters") or {}),
            confidence=float(data.get("confidence", 1.0)),
            matched_input=text,
        )

    async def _request(self, method: str, url: str, payload: dict) -> dict:
        try:
            response = await self._client.request(method, url, json=payload)
        except httpx.ConnectError:
            raise RecognitionFailure(
                f"Cannot connect to the NLU service at {self.base_url}",
                backend=self.name,
                retryable=True,
            )
        except httpx.TimeoutException:
            raise RecognitionFailure(
                "NLU service request timed out",
                backend=self.name,
                retryable=True,
            )
        except httpx.HTTPError as e:
            raise RecognitionFailure(
                f"NLU service request failed: {e}",
                backend=self.name,
            )

        if response.status_code in (401, 403):
            raise RecognitionFailure(
                f"Authentication failed for NLU project {self.project_id}",
                backend=self.name,
                status_code=response.status_code,
            )
        if response.status_code == 429:
            raise RecognitionFailure(
                "NLU service quota exceeded",
                backend=self.name,
                status_code=429,
                retryable=True,
            )
        if response.status_code >= 400:
            raise RecognitionFailure(
                f"NLU service request failed: {response.text}",
                backend=self.name,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise RecognitionFailure(
                "NLU service returned a malformed response",
                backend=self.name,
                status_code=response.status_code,
            )

    async def shutdown(self) -> None:
        await super().shutdown()
        await self._client.aclose()
