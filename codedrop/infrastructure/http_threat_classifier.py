"""
HTTP Threat Classifier

IThreatClassifier implementation that posts payloads to a remote scanning
service and reads back a JSON verdict.
"""

import logging
from typing import BinaryIO, Dict, Optional

import httpx

from codedrop.domain.errors import ClassifierUnavailableError
from codedrop.domain.sharing.threat import IThreatClassifier, ThreatReport, ThreatVerdict

logger = logging.getLogger(__name__)


class HttpThreatClassifier(IThreatClassifier):
    """
    Synchronous HTTP client for a malware scanning service.

    The service receives the payload as multipart field ``file`` and answers
    with ``{"verdict": "clean" | "malicious", "detail": "..."}``. Anything
    else, including timeouts and non-2xx responses, is reported as
    ClassifierUnavailableError so the caller's fallback policy applies.
    """

    def __init__(
        self,
        url: str,
        *,
        bearer_token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not url:
            raise ValueError("url is required")

        self._url = url
        self._bearer_token = bearer_token
        self._timeout = float(timeout_seconds)
        self._client = http_client or httpx.Client()

    def _auth_headers(self) -> Dict[str, str]:
        if not self._bearer_token:
            return {}
        return {"Authorization": f"Bearer {self._bearer_token}"}

    def classify(self, file_name: str, content: BinaryIO) -> ThreatReport:
        try:
            resp = self._client.post(
                self._url,
                headers=self._auth_headers(),
                files={"file": (file_name, content, "application/octet-stream")},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise ClassifierUnavailableError(f"Classifier timed out: {e}", e)
        except httpx.HTTPError as e:
            raise ClassifierUnavailableError(f"Classifier request failed: {e}", e)

        if resp.status_code >= 400:
            body = resp.text
            raise ClassifierUnavailableError(
                f"Classifier returned HTTP {resp.status_code}: {body[:200]}"
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise ClassifierUnavailableError("Classifier returned invalid JSON", e)

        if not isinstance(payload, dict):
            raise ClassifierUnavailableError("Classifier response is not a JSON object")

        try:
            verdict = ThreatVerdict(str(payload.get("verdict", "")).lower())
        except ValueError as e:
            raise ClassifierUnavailableError(
                f"Classifier returned unknown verdict {payload.get('verdict')!r}", e
            )

        detail = payload.get("detail")
        logger.debug(f"Classifier verdict for {file_name}: {verdict.value}")
        return ThreatReport(verdict=verdict, detail=str(detail) if detail else None)

    def close(self) -> None:
        self._client.close()
