"""
Tests for Webhook Security

Tests signature verification and event filtering.
"""

import hashlib
import hmac

import pytest

from review_relay.webhook.security import (
    WebhookSignatureError,
    compute_signature,
    should_process_event,
    verify_webhook_signature,
)

SECRET = "test_secret"
BODY = b'{"action": "opened", "pull_request": {"diff_url": "U1", "comments_url": "U2"}}'


class TestComputeSignature:
    """Tests for signature computation."""

    def test_matches_hmac_sha256(self):
        """Test the signature is the hex HMAC-SHA256 of the body."""
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()

        assert compute_signature(SECRET, BODY) == f"sha256={expected}"

    def test_signature_format(self):
        """Test the signature is a prefixed lowercase hex digest."""
        signature = compute_signature(SECRET, BODY)
        prefix, digest = signature.split("=", 1)

        assert prefix == "sha256"
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)


class TestVerifyWebhookSignature:
    """Tests for verify_webhook_signature."""

    def test_valid_signature(self):
        """Test a correct signature is accepted."""
        verify_webhook_signature(BODY, compute_signature(SECRET, BODY), SECRET)

    def test_empty_body_valid_signature(self):
        """Test a correctly signed empty body is accepted."""
        verify_webhook_signature(b"", compute_signature(SECRET, b""), SECRET)

    def test_missing_header(self):
        """Test a missing header is rejected."""
        with pytest.raises(WebhookSignatureError, match="Missing"):
            verify_webhook_signature(BODY, None, SECRET)

    def test_empty_header(self):
        """Test an empty header is rejected."""
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, "", SECRET)

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret(self, secret):
        """Test verification fails closed without a secret."""
        with pytest.raises(WebhookSignatureError, match="not configured"):
            verify_webhook_signature(BODY, compute_signature("anything", BODY), secret)

    def test_wrong_secret(self):
        """Test a signature made with another secret is rejected."""
        with pytest.raises(WebhookSignatureError, match="Invalid"):
            verify_webhook_signature(BODY, compute_signature("other", BODY), SECRET)

    def test_digest_without_prefix_rejected(self):
        """Test a bare digest without the sha256= prefix is rejected."""
        bare = compute_signature(SECRET, BODY)[len("sha256="):]

        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, bare, SECRET)

    def test_sha1_signature_rejected(self):
        """Test the legacy SHA-1 signature format is rejected."""
        sha1 = "sha1=" + hmac.new(SECRET.encode(), BODY, hashlib.sha1).hexdigest()

        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, sha1, SECRET)

    def test_length_mismatch_rejected(self):
        """Test truncated and extended signatures are rejected."""
        signature = compute_signature(SECRET, BODY)

        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, signature[:-1], SECRET)
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, signature + "0", SECRET)

    def test_uppercase_digest_rejected(self):
        """Test the comparison is exact and case sensitive."""
        signature = compute_signature(SECRET, BODY)

        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, signature.upper(), SECRET)

    def test_non_ascii_header_rejected(self):
        """Test a non-ASCII header value is rejected, not crashed on."""
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(BODY, "sha256=é" * 8, SECRET)

    def test_single_bit_mutation_rejected(self):
        """Test flipping one bit of the body invalidates the signature."""
        signature = compute_signature(SECRET, BODY)

        for index in (0, len(BODY) // 2, len(BODY) - 1):
            for bit in (0, 3, 7):
                mutated = bytearray(BODY)
                mutated[index] ^= 1 << bit
                with pytest.raises(WebhookSignatureError):
                    verify_webhook_signature(bytes(mutated), signature, SECRET)


class TestShouldProcessEvent:
    """Tests for event filtering."""

    @pytest.mark.parametrize("action", ["opened", "synchronize"])
    def test_reviewable_actions(self, action):
        """Test opened and synchronize are reviewed."""
        assert should_process_event("pull_request", action) is True

    @pytest.mark.parametrize(
        "action",
        ["closed", "reopened", "edited", "labeled", "ready_for_review", "", None]
    )
    def test_other_actions_ignored(self, action):
        """Test every other action is ignored."""
        assert should_process_event("pull_request", action) is False

    @pytest.mark.parametrize(
        "action",
        [["opened"], {"a": 1}, {"opened": True}, 1, True]
    )
    def test_non_string_actions_ignored(self, action):
        """Test unhashable and non-string actions are ignored, not raised on."""
        assert should_process_event("pull_request", action) is False

    def test_missing_event_type_tolerated(self):
        """Test a missing event type header lets the action decide."""
        assert should_process_event(None, "opened") is True

    def test_other_event_type_ignored(self):
        """Test events other than pull_request are ignored."""
        assert should_process_event("issues", "opened") is False
        assert should_process_event("push", None) is False
