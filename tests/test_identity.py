"""Tests for conversation key reconciliation."""

import uuid

import pytest

from callrelay.core.identity import is_canonical_key, reconcile


class TestIsCanonicalKey:
    """Tests for canonical key detection."""

    def test_lowercase_uuid_is_canonical(self):
        assert is_canonical_key("8d3a7c52-4b1e-4f7a-9c2d-1e5f6a7b8c9d") is True

    def test_uppercase_uuid_is_not_canonical(self):
        assert is_canonical_key("8D3A7C52-4B1E-4F7A-9C2D-1E5F6A7B8C9D") is False

    def test_telnyx_call_control_id_is_not_canonical(self):
        assert is_canonical_key("v3:u5OAKGEPT3Dx8SZSSDRWEMdNH2OripQhO") is False

    def test_empty_is_not_canonical(self):
        assert is_canonical_key("") is False
        assert is_canonical_key(None) is False


class TestReconcile:
    """Tests for reconcile()."""

    def test_canonical_id_passes_through(self):
        key = "8d3a7c52-4b1e-4f7a-9c2d-1e5f6a7b8c9d"
        assert reconcile("vapi", key) == key
        assert reconcile("telnyx", key) == key

    def test_deterministic(self):
        """The same external id always maps to the same key."""
        first = reconcile("telnyx", "v3:abc123")
        second = reconcile("telnyx", "v3:abc123")
        assert first == second

    def test_derived_key_is_canonical(self):
        key = reconcile("telnyx", "v3:abc123")
        assert is_canonical_key(key)
        parsed = uuid.UUID(key)
        assert parsed.version == 5
        assert parsed.variant == uuid.RFC_4122

    def test_derived_key_is_not_identity(self):
        assert reconcile("telnyx", "v3:abc123") != "v3:abc123"

    def test_provider_separates_identical_ids(self):
        """Identical non-canonical ids from different providers never collide."""
        assert reconcile("vapi", "call-42") != reconcile("telnyx", "call-42")

    def test_distinct_ids_get_distinct_keys(self):
        assert reconcile("telnyx", "v3:one") != reconcile("telnyx", "v3:two")

    def test_uppercase_uuid_is_hashed(self):
        """Only the lowercase form is canonical; anything else is derived."""
        upper = "8D3A7C52-4B1E-4F7A-9C2D-1E5F6A7B8C9D"
        key = reconcile("vapi", upper)
        assert key != upper
        assert key != upper.lower()
        assert is_canonical_key(key)

    @pytest.mark.parametrize("external_id", ["", "   "])
    def test_blank_external_id_rejected(self, external_id):
        with pytest.raises(ValueError):
            reconcile("telnyx", external_id)

    def test_empty_provider_rejected(self):
        with pytest.raises(ValueError):
            reconcile("", "v3:abc123")
