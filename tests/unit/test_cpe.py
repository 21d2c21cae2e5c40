"""Unit tests for CPE name parsing."""

from nvd_matcher.cpe import (
    parse_cpe23,
    parse_vendor_product,
    parse_version,
    split_cpe,
)

ANALOGX = "cpe:2.3:a:analogx:proxy:4.13:*:*:*:*:*:*:*"


class TestParseVendorProduct:
    """Tests for vendor/product extraction."""

    def test_analogx(self):
        assert parse_vendor_product(ANALOGX) == ("analogx", "proxy")

    def test_too_few_fields(self):
        assert parse_vendor_product("cpe:2.3:a:analogx") == ("", "")

    def test_empty_string(self):
        assert parse_vendor_product("") == ("", "")

    def test_exactly_five_fields(self):
        assert parse_vendor_product("cpe:2.3:a:vendor:product") == ("vendor", "product")

    def test_escaped_colon_stays_in_field(self):
        cpe = "cpe:2.3:a:acme:web\\:server:1.0:*:*:*:*:*:*:*"
        assert parse_vendor_product(cpe) == ("acme", "web\\:server")


class TestParseVersion:
    """Tests for the version+update pair."""

    def test_wildcard_update(self):
        assert parse_version(ANALOGX) == "4.13"

    def test_na_update(self):
        assert parse_version("cpe:2.3:o:cisco:ios:12.2:-:*:*:*:*:*:*") == "12.2"

    def test_update_appended(self):
        assert parse_version("cpe:2.3:o:cisco:ios:12.2:sr1:*:*:*:*:*:*") == "12.2.sr1"

    def test_missing_update_field(self):
        assert parse_version("cpe:2.3:a:vendor:product:1.0") == "1.0"

    def test_missing_version_field(self):
        assert parse_version("cpe:2.3:a:vendor:product") == ""


class TestParseCpe23:
    """Tests for full component parsing."""

    def test_components(self):
        name = parse_cpe23("cpe:2.3:a:apache:http_server:2.4.49:*:*:*:*:*:*:*")
        assert name.part == "a"
        assert name.vendor == "apache"
        assert name.product == "http_server"
        assert name.version == "2.4.49"
        assert name.update == "*"
        assert name.is_valid

    def test_unescapes_colons(self):
        name = parse_cpe23("cpe:2.3:a:acme:web\\:server:1.0:*:*:*:*:*:*:*")
        assert name.product == "web:server"

    def test_not_cpe23(self):
        name = parse_cpe23("cpe:/a:apache:http_server:2.4")
        assert not name.is_valid
        assert name.vendor == ""

    def test_to_dict(self):
        data = parse_cpe23(ANALOGX).to_dict()
        assert data["cpe"] == ANALOGX
        assert data["vendor"] == "analogx"
        assert data["target_hw"] == "*"

    def test_split_count(self):
        assert len(split_cpe(ANALOGX)) == 13
