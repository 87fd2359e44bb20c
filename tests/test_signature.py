"""Tests for signature normalization."""

import pytest

from ledgersigner.device.base import DeviceSignature
from ledgersigner.errors import SigningError
from ledgersigner.signature import (
    Signature,
    TransactionType,
    VEncoding,
    add_hex_prefix,
    normalize_signature,
    parse_v,
    recovery_value,
    transaction_type_of,
    y_parity,
)

R = "1f" * 32
S = "2e" * 32


class TestAddHexPrefix:
    """Tests for hex prefixing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("abcd", "0xabcd"),
            ("0xabcd", "0xabcd"),
            ("0XABCD", "0xabcd"),
            ("abc", "0x0abc"),
            (b"\x01\x02", "0x0102"),
            (27, "0x1b"),
            (0, "0x00"),
        ],
    )
    def test_encoding(self, value, expected):
        """Test that output is prefixed, even-length and lowercase."""
        assert add_hex_prefix(value) == expected

    @pytest.mark.parametrize("value", ["", "0x", "xyz", "0x12g4"])
    def test_rejects_non_hex(self, value):
        """Test that invalid hex strings are rejected."""
        with pytest.raises(ValueError):
            add_hex_prefix(value)

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            add_hex_prefix(-1)


class TestRecoveryValue:
    """Tests for v parsing and transaction-type aware recovery values."""

    @pytest.mark.parametrize("value,expected", [(28, 28), ("1b", 27), ("0x1c", 28), ("01", 1)])
    def test_parse_v(self, value, expected):
        assert parse_v(value) == expected

    @pytest.mark.parametrize(
        "v,chain_id,expected",
        [
            (0, None, 0),
            (1, None, 1),
            (27, None, 0),
            (28, None, 1),
            (37, 1, 0),
            (38, 1, 1),
            (38, None, 1),
            # chain 1000: 2035 truncated to one byte is 0xf3
            (0xF3, 1000, 0),
            (0xF4, 1000, 1),
        ],
    )
    def test_y_parity(self, v, chain_id, expected):
        assert y_parity(v, chain_id) == expected

    def test_y_parity_unknown(self):
        with pytest.raises(SigningError):
            y_parity(5)

    @pytest.mark.parametrize(
        "tx_type", [TransactionType.ACCESS_LIST, TransactionType.FEE_MARKET, TransactionType.BLOB]
    )
    def test_typed_transactions_use_parity(self, tx_type):
        """Test that typed transactions carry the bare y-parity."""
        assert recovery_value("01", tx_type) == 1
        assert recovery_value(28, tx_type) == 1
        assert recovery_value("00", tx_type, chain_id=1) == 0

    def test_legacy_without_chain_id(self):
        """Test pre-EIP-155 legacy v values."""
        assert recovery_value("00", TransactionType.LEGACY) == 27
        assert recovery_value("1c", TransactionType.LEGACY) == 28

    def test_legacy_eip155(self):
        """Test that replay protected v values are passed through."""
        assert recovery_value("25", TransactionType.LEGACY, chain_id=1) == 37
        assert recovery_value("26", TransactionType.LEGACY, chain_id=1) == 38

    def test_legacy_eip155_truncated(self):
        """Test that a one-byte v is expanded for large chain ids."""
        assert recovery_value("f3", TransactionType.LEGACY, chain_id=1000) == 2035
        assert recovery_value("f4", TransactionType.LEGACY, chain_id=1000) == 2036

    def test_legacy_eip155_truncated_to_zero(self):
        """Test chain 110, whose parity-1 v of 256 truncates to 0x00."""
        assert recovery_value("00", TransactionType.LEGACY, chain_id=110) == 256
        assert recovery_value("ff", TransactionType.LEGACY, chain_id=110) == 255

    def test_typed_transaction_zero_is_parity_on_any_chain(self):
        assert recovery_value("00", TransactionType.FEE_MARKET, chain_id=110) == 0
        assert recovery_value("01", TransactionType.FEE_MARKET, chain_id=110) == 1


class TestTransactionType:
    """Tests for EIP-2718 type detection."""

    def test_legacy_rlp(self):
        assert transaction_type_of(b"\xe9\x80\x85") is TransactionType.LEGACY

    def test_legacy_hex_string(self):
        assert transaction_type_of("0xf86c0a85") is TransactionType.LEGACY

    @pytest.mark.parametrize(
        "first,expected",
        [
            (0x01, TransactionType.ACCESS_LIST),
            (0x02, TransactionType.FEE_MARKET),
            (0x03, TransactionType.BLOB),
            (0x04, TransactionType.SET_CODE),
        ],
    )
    def test_typed_envelopes(self, first, expected):
        assert transaction_type_of(bytes([first, 0xF8, 0x00])) is expected

    @pytest.mark.parametrize("payload", [b"", b"\x05\xc0", b"\x80"])
    def test_invalid(self, payload):
        with pytest.raises(SigningError):
            transaction_type_of(payload)


class TestNormalizeSignature:
    """Tests for normalize_signature."""

    @pytest.mark.parametrize("encoding", list(VEncoding))
    def test_r_and_s_always_prefixed(self, encoding):
        """Test that raw fields without prefix come out prefixed."""
        signature = normalize_signature({"r": R, "s": S, "v": 27}, encoding)

        assert signature.r == "0x" + R
        assert signature.s == "0x" + S

    def test_numeric_v(self):
        signature = normalize_signature(DeviceSignature(r=R, s=S, v="1c"))

        assert signature.v == 28

    def test_hex_v(self):
        signature = normalize_signature({"r": R, "s": S, "v": 27}, VEncoding.HEX)

        assert signature.v == "0x1b"

    def test_no_v(self):
        signature = normalize_signature({"r": R, "s": S}, VEncoding.NONE)

        assert signature.v is None

    def test_missing_v(self):
        with pytest.raises(SigningError):
            normalize_signature({"r": R, "s": S})

    def test_transaction_v(self):
        """Test that transaction signatures get a type-consistent v."""
        signature = normalize_signature(
            {"r": R, "s": S, "v": "26"},
            tx_type=TransactionType.LEGACY,
            chain_id=1,
        )

        assert signature.v == 38

    def test_already_prefixed_fields(self):
        signature = normalize_signature({"r": "0x" + R, "s": "0x" + S, "v": 0})

        assert signature.r == "0x" + R


class TestSerializedSignature:
    """Tests for 65-byte recoverable signature assembly."""

    @pytest.mark.parametrize("v,last_byte", [(27, "1b"), (28, "1c"), (0, "1b"), (1, "1c"), ("0x1c", "1c"), (38, "1c")])
    def test_serialized(self, v, last_byte):
        serialized = Signature(r="0x" + R, s="0x" + S, v=v).serialized

        assert serialized == "0x" + R + S + last_byte
        assert len(serialized) == 2 + 130

    def test_short_components_are_padded(self):
        serialized = Signature(r="0x01", s="0x02", v=27).serialized

        assert serialized == "0x" + "01".rjust(64, "0") + "02".rjust(64, "0") + "1b"

    def test_serialized_requires_v(self):
        with pytest.raises(SigningError):
            Signature(r="0x" + R, s="0x" + S).serialized

    def test_to_dict(self):
        assert Signature(r="0x01", s="0x02", v=27).to_dict() == {"r": "0x01", "s": "0x02", "v": 27}
