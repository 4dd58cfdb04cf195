"""
Unit tests for HttpThreatClassifier using httpx.MockTransport.
"""

import io

import httpx
import pytest

from codedrop.domain.errors import ClassifierUnavailableError
from codedrop.domain.sharing import ThreatVerdict
from codedrop.infrastructure.http_threat_classifier import HttpThreatClassifier

SCAN_URL = "https://scanner.test/v1/scan"


def make_classifier(handler, token=None):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpThreatClassifier(SCAN_URL, bearer_token=token, http_client=client)


def test_clean_verdict():
    classifier = make_classifier(lambda request: httpx.Response(200, json={"verdict": "clean"}))

    report = classifier.classify("notes.txt", io.BytesIO(b"hello"))

    assert report.verdict is ThreatVerdict.CLEAN
    assert report.detail is None


def test_malicious_verdict_with_detail():
    classifier = make_classifier(
        lambda request: httpx.Response(
            200, json={"verdict": "MALICIOUS", "detail": "Win.Test.EICAR_HDB-1"}
        )
    )

    report = classifier.classify("invoice.exe", io.BytesIO(b"x"))

    assert report.is_malicious
    assert report.detail == "Win.Test.EICAR_HDB-1"


def test_sends_payload_as_multipart_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["content_type"] = request.headers.get("Content-Type")
        seen["body"] = request.read()
        return httpx.Response(200, json={"verdict": "clean"})

    classifier = make_classifier(handler, token="s3cret")
    classifier.classify("notes.txt", io.BytesIO(b"payload-bytes"))

    assert seen["auth"] == "Bearer s3cret"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="file"; filename="notes.txt"' in seen["body"]
    assert b"payload-bytes" in seen["body"]


def test_no_token_no_authorization_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"verdict": "clean"})

    make_classifier(handler).classify("a.txt", io.BytesIO(b""))

    assert seen["auth"] is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="overloaded"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["clean"]),
        httpx.Response(200, json={"verdict": "probably fine"}),
        httpx.Response(200, json={}),
    ],
)
def test_unusable_responses_are_unavailable(response):
    classifier = make_classifier(lambda request: response)

    with pytest.raises(ClassifierUnavailableError):
        classifier.classify("a.txt", io.BytesIO(b"x"))


def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ClassifierUnavailableError):
        make_classifier(handler).classify("a.txt", io.BytesIO(b"x"))


def test_connection_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ClassifierUnavailableError):
        make_classifier(handler).classify("a.txt", io.BytesIO(b"x"))


def test_url_is_required():
    with pytest.raises(ValueError):
        HttpThreatClassifier("")
