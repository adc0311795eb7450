"""Tests for the engine trace decorator and input fingerprints."""

from decimal import Decimal

from settlement_engines.tracer import compute_input_fingerprint, traced_engine


@traced_engine("sample", "2.1", fingerprint_fields=("amount", "code"))
def _sample(amount, code, note=None):
    return amount * 2


class TestFingerprint:

    def test_deterministic(self):
        args = {"amount": Decimal("10.50"), "code": "ON"}
        assert compute_input_fingerprint(("amount", "code"), args) == compute_input_fingerprint(
            ("amount", "code"), dict(args),
        )

    def test_trailing_zeros_ignored(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("10.5")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("10.500")})
        assert a == b

    def test_sensitive_to_values(self):
        a = compute_input_fingerprint(("code",), {"code": "ON"})
        b = compute_input_fingerprint(("code",), {"code": "QC"})
        assert a != b
        assert len(a) == 16


class TestTracedEngine:

    def test_result_unchanged(self):
        assert _sample(Decimal("2"), "ON") == Decimal("4")

    def test_emits_trace(self, captured_logs):
        _sample(Decimal("2"), code="ON")
        traces = [r for r in captured_logs() if r["message"] == "SETTLEMENT_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("amount", "code"), {"amount": Decimal("2"), "code": "ON"},
        )

    def test_positional_and_keyword_calls_fingerprint_alike(self, captured_logs):
        _sample(Decimal("2"), "ON")
        _sample(amount=Decimal("2"), code="ON")
        fps = [r["input_fingerprint"] for r in captured_logs() if r["message"] == "SETTLEMENT_ENGINE_TRACE"]
        assert fps[0] == fps[1]
