"""Unit tests for shared field validators."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from learnhub.doubts.schemas import DoubtAnswerRequest, DoubtCreateRequest
from learnhub.validators import strip_required, validate_http_url


class TestHttpUrl:
    def test_accepts_https(self):
        assert validate_http_url("  https://example.com/a?b=1 ") == "https://example.com/a?b=1"

    @pytest.mark.parametrize("value", ["ftp://example.com", "example.com", "http://", "https://exa mple.com"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError, match="valid URL"):
            validate_http_url(value)

    def test_rejects_overlong(self):
        with pytest.raises(ValueError, match="must not exceed"):
            validate_http_url("https://example.com/" + "a" * 2100)


class TestStripRequired:
    def test_trims(self):
        assert strip_required("  hi  ") == "hi"

    def test_blank_rejected(self):
        with pytest.raises(ValueError, match="Question cannot be empty"):
            strip_required("   ", "Question")


class TestDoubtSchemas:
    def test_question_trimmed(self):
        assert DoubtCreateRequest(question="  How do X?  ").question == "How do X?"

    def test_question_too_long(self):
        with pytest.raises(ValidationError):
            DoubtCreateRequest(question="x" * 1001)

    def test_blank_url_means_none(self):
        assert DoubtAnswerRequest(title="t", description="d", url="  ").url is None

    def test_bad_url_rejected(self):
        with pytest.raises(ValidationError):
            DoubtAnswerRequest(title="t", description="d", url="javascript:alert(1)")
