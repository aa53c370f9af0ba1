"""
Unit tests for canonical JSON serialization and payload checksums.
"""

import hashlib

from radb_state.snapshot.canonical import (
    canonicalize,
    compute_payload_checksum,
    verify_payload_checksum,
)


class TestCanonicalize:
    """Tests for canonicalize."""

    def test_sorted_keys_no_whitespace(self):
        assert canonicalize({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_key_order_does_not_matter(self):
        first = {"routes": {"count": 1, "timestamp": "t"}, "contacts": None}
        second = {"contacts": None, "routes": {"timestamp": "t", "count": 1}}
        assert canonicalize(first) == canonicalize(second)

    def test_unicode_normalized(self):
        """Test composed and decomposed forms canonicalize identically."""
        composed = "caf\u00e9"
        decomposed = "cafe\u0301"
        assert canonicalize({"descr": composed}) == canonicalize({"descr": decomposed})

    def test_non_ascii_kept(self):
        assert canonicalize(["Z\u00fcrich"]) == '["Z\u00fcrich"]'

    def test_bool_not_coerced(self):
        assert canonicalize({"x": True, "y": 1}) == '{"x":true,"y":1}'


class TestPayloadChecksum:
    """Tests for compute/verify_payload_checksum."""

    def test_is_sha256_of_canonical_form(self):
        payload = {"routes": {"routes": [], "count": 0}}
        expected = hashlib.sha256(canonicalize(payload).encode("utf-8")).hexdigest()

        assert compute_payload_checksum(payload) == expected
        assert len(expected) == 64

    def test_verify(self):
        payload = {"contacts": {"contacts": [{"id": "EX1-RADB"}], "count": 1}}
        checksum = compute_payload_checksum(payload)

        assert verify_payload_checksum(payload, checksum)
        assert not verify_payload_checksum({"contacts": {"count": 1}}, checksum)
        assert not verify_payload_checksum(payload, "")
