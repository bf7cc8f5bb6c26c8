from mavrikan.services.identity_service import (
    ContactAddress,
    format_chat_address,
    format_display_phone,
    mask_phone,
    normalize_address,
    resolve_display_name,
)


class TestNormalizeAddress:
    def test_classic_suffix(self):
        assert normalize_address("972501234567@c.us") == ContactAddress("972501234567", "972501234567@c.us")

    def test_lid_and_classic_share_phone(self):
        lid = normalize_address("972501234567@lid")
        classic = normalize_address("972501234567@c.us")
        assert lid.phone == classic.phone
        assert lid.chat_address == "972501234567@lid"

    def test_multi_device_suffix_stripped(self):
        address = normalize_address("972501234567:12@s.whatsapp.net")
        assert address.phone == "972501234567"
        assert address.chat_address == "972501234567@s.whatsapp.net"

    def test_bare_digits_get_default_suffix(self):
        assert normalize_address("972501234567").chat_address == "972501234567@c.us"

    def test_group_rejected(self):
        assert normalize_address("120363000000000000@g.us") is None

    def test_broadcast_rejected(self):
        assert normalize_address("status@broadcast") is None

    def test_newsletter_rejected(self):
        assert normalize_address("1203630000@newsletter") is None

    def test_empty_and_non_string(self):
        assert normalize_address("") is None
        assert normalize_address(None) is None
        assert normalize_address(12345) is None

    def test_no_digits_rejected(self):
        assert normalize_address("abc@c.us") is None


class TestFormatting:
    def test_format_chat_address(self):
        assert format_chat_address("+972-54-499-4417") == "972544994417@c.us"

    def test_display_phone_local_prefix(self):
        assert format_display_phone("972544994417") == "0544994417"

    def test_display_phone_other_country_untouched(self):
        assert format_display_phone("15551234567") == "15551234567"

    def test_mask_phone(self):
        assert mask_phone("972544994417") == "***4417"
        assert mask_phone("12") == "***"
        assert mask_phone(None) == "***"


class TestResolveDisplayName:
    def test_push_name_first(self):
        assert resolve_display_name({"pushName": "Dana", "_data": {"notifyName": "Other"}}, "x") == "Dana"

    def test_nested_notify_name(self):
        assert resolve_display_name({"_data": {"notifyName": "Avi"}}, "x") == "Avi"

    def test_fallback_when_missing(self):
        assert resolve_display_name({"pushName": "   "}, "972500000000") == "972500000000"
