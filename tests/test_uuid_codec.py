"""Tests for compact/canonical identifier conversion."""

import pytest

from prefab_migrate.uuid_codec import (
    BASE64_KEYS,
    canonical_short,
    is_long,
    is_short,
    lengthen,
    normalize_to_long,
    normalize_to_short,
    shorten,
)

SAMPLE_IDS = [
    "8bab7e0c-0380-491c-b66f-b2bef75657c2",
    "25f8fc70-b6c6-424f-bc85-d25cf2b79cd4",
    "e9ec654c-97a2-4787-9325-e6a10375219a",
    "00000000-0000-0000-0000-000000000000",
    "ffffffff-ffff-ffff-ffff-ffffffffffff",
]


class TestShorten:
    def test_known_value(self):
        assert shorten("8bab7e0c-0380-491c-b66f-b2bef75657c2") == "8bab74MA4BJHLZvsr73VlfC"

    def test_prefix_kept_verbatim(self):
        short = shorten("e9ec654c-97a2-4787-9325-e6a10375219a")
        assert len(short) == 23
        assert short.startswith("e9ec6")

    def test_uppercase_input_lowercased(self):
        assert shorten("8BAB7E0C-0380-491C-B66F-B2BEF75657C2") == "8bab74MA4BJHLZvsr73VlfC"

    def test_legacy_form(self):
        short = shorten("fc991dd7-0033-4b80-9d41-c8a86a702e59", legacy=True)
        assert short == "fcmR3XADNLgJ1ByKhqcC5Z"
        assert len(short) == 22

    def test_all_zero(self):
        assert shorten("00000000-0000-0000-0000-000000000000") == "00000" + "A" * 18

    def test_deterministic(self):
        uuid = SAMPLE_IDS[2]
        assert shorten(uuid) == shorten(uuid)

    @pytest.mark.parametrize("value", [
        "",
        "not-a-uuid",
        "8bab7e0c0380491cb66fb2bef75657c2",
        "8bab7e0c-0380-491c-b66f-b2bef75657cz",
        "cc.Sprite",
    ])
    def test_invalid_passes_through(self, value):
        assert shorten(value) == value

    def test_non_string_passes_through(self):
        assert shorten(None) is None


class TestLengthen:
    def test_known_value(self):
        assert lengthen("25f8fxwtsZCT7yF0lzyt5zU") == "25f8fc70-b6c6-424f-bc85-d25cf2b79cd4"

    def test_legacy_form(self):
        assert lengthen("fcmR3XADNLgJ1ByKhqcC5Z") == "fc991dd7-0033-4b80-9d41-c8a86a702e59"

    @pytest.mark.parametrize("uuid", SAMPLE_IDS)
    def test_round_trip(self, uuid):
        assert lengthen(shorten(uuid)) == uuid

    @pytest.mark.parametrize("uuid", SAMPLE_IDS)
    def test_round_trip_legacy(self, uuid):
        assert lengthen(shorten(uuid, legacy=True)) == uuid

    def test_unrecognized_length_passes_through(self):
        assert lengthen("abc") == "abc"
        assert lengthen("Sprite") == "Sprite"

    def test_symbol_outside_alphabet_passes_through(self):
        value = "8bab74MA4BJHLZvsr73Vl!C"
        assert lengthen(value) == value

    def test_padding_symbol_is_a_decode_miss(self):
        value = "8bab74MA4BJHLZvsr73Vl=C"
        assert BASE64_KEYS[64] == "="
        assert lengthen(value) == value

    def test_non_hex_prefix_passes_through(self):
        value = "Label" + "A" * 18
        assert lengthen(value) == value


class TestPredicates:
    def test_is_long(self):
        assert is_long(SAMPLE_IDS[0])
        assert not is_long("8bab74MA4BJHLZvsr73VlfC")
        assert not is_long("x" * 36)

    def test_is_short_means_legacy_length(self):
        assert is_short("fcmR3XADNLgJ1ByKhqcC5Z")
        assert not is_short("8bab74MA4BJHLZvsr73VlfC")


class TestNormalize:
    def test_normalize_to_short_idempotent(self):
        assert normalize_to_short("fcmR3XADNLgJ1ByKhqcC5Z") == "fcmR3XADNLgJ1ByKhqcC5Z"

    def test_normalize_to_short_from_long(self):
        assert normalize_to_short(SAMPLE_IDS[0]) == "8bab74MA4BJHLZvsr73VlfC"

    def test_normalize_to_long_idempotent(self):
        assert normalize_to_long(SAMPLE_IDS[1]) == SAMPLE_IDS[1]

    def test_normalize_to_long_from_legacy(self):
        assert normalize_to_long("fcmR3XADNLgJ1ByKhqcC5Z") == "fc991dd7-0033-4b80-9d41-c8a86a702e59"

    def test_normalize_leaves_names_alone(self):
        assert normalize_to_short("Sprite") == "Sprite"
        assert normalize_to_long("Sprite") == "Sprite"


class TestCanonicalShort:
    def test_all_forms_agree(self):
        uuid = "fc991dd7-0033-4b80-9d41-c8a86a702e59"
        expected = shorten(uuid)
        assert canonical_short(uuid) == expected
        assert canonical_short(shorten(uuid, legacy=True)) == expected
        assert canonical_short(expected) == expected

    def test_component_names_unchanged(self):
        assert canonical_short("Label") == "Label"
        assert canonical_short("cc.Sprite") == "cc.Sprite"
