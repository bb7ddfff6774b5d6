"""Tests for the signal decoder."""
import pytest

from tunnelsync.core.signal_decoder import decode, encode
from tunnelsync.core.types import StatusCode


class TestDecodeExactTokens:
    @pytest.mark.parametrize("code", list(StatusCode))
    def test_every_token_decodes_to_itself(self, code):
        assert decode(code.value) == (code, None)

    @pytest.mark.parametrize("alias", ["READY", "EXIT"])
    def test_legacy_aliases_mean_disconnected(self, alias):
        assert decode(alias) == (StatusCode.DISCONNECTED, None)

    def test_surrounding_whitespace_is_ignored(self):
        assert decode("  CONNECTED\n") == (StatusCode.CONNECTED, None)


class TestDecodeColonDelimited:
    def test_bad_config_detail(self):
        assert decode("BAD_CONFIG: port must be numeric") == (StatusCode.BAD_CONFIG, "port must be numeric")

    def test_error_detail(self):
        assert decode("ERROR: Failed to capture stderr") == (StatusCode.ERROR, "Failed to capture stderr")

    def test_detail_keeps_later_colons(self):
        code, detail = decode("UNKNOWN: ssh: connect to host: oops")
        assert code == StatusCode.UNKNOWN
        assert detail == "ssh: connect to host: oops"

    def test_colon_without_space(self):
        assert decode("ERROR:boom") == (StatusCode.ERROR, "boom")

    def test_empty_detail_is_none(self):
        assert decode("ERROR:") == (StatusCode.ERROR, None)

    def test_detail_on_plain_status(self):
        assert decode("DENIED: publickey") == (StatusCode.DENIED, "publickey")

    def test_unknown_prefix_is_unknown_with_raw_detail(self):
        assert decode("FOO: bar") == (StatusCode.UNKNOWN, "FOO: bar")


class TestDecodeFixedOffset:
    def test_bad_config_with_separator(self):
        assert decode("BAD_CONFIG port must be numeric") == (StatusCode.BAD_CONFIG, "port must be numeric")

    def test_error_with_dash_separator(self):
        assert decode("ERROR-disk full") == (StatusCode.ERROR, "disk full")

    def test_token_followed_by_letters_is_not_a_prefix(self):
        assert decode("ERRORS everywhere") == (StatusCode.UNKNOWN, "ERRORS everywhere")

    def test_non_detail_codes_do_not_use_legacy_form(self):
        assert decode("CONNECTED now") == (StatusCode.UNKNOWN, "CONNECTED now")


class TestDecodeIsTotal:
    def test_empty_string(self):
        assert decode("") == (StatusCode.UNKNOWN, None)

    def test_none(self):
        assert decode(None) == (StatusCode.UNKNOWN, None)

    @pytest.mark.parametrize("raw", ["garbage", "connected", ":", "::::", "\x00\x01", "🚀", "BAD_CONFIG"[:3]])
    def test_unrecognized_input_degrades_to_unknown(self, raw):
        code, detail = decode(raw)
        assert code == StatusCode.UNKNOWN
        assert detail == raw

    def test_non_string_payload(self):
        assert decode(42) == (StatusCode.UNKNOWN, "42")


class TestEncode:
    def test_plain(self):
        assert encode(StatusCode.CONNECTED) == "CONNECTED"

    def test_with_detail(self):
        assert encode(StatusCode.ERROR, "boom") == "ERROR: boom"
