"""Tests for time-series identifiers and parameter pattern transforms."""

import pytest

from compdepends.core.exceptions import BadPatternError
from compdepends.tsdb.computation import DbCompParm
from compdepends.tsdb.tsid import (
    TimeSeriesIdentifier,
    transform_unique_string,
    tsid_from_parm,
)


# ---------------------------------------------------------------------------
# Unique strings
# ---------------------------------------------------------------------------
class TestUniqueString:
    def test_trailing_empty_parts_dropped(self):
        tsid = TimeSeriesIdentifier(key=1, site="SiteA", data_type="Stage")
        assert tsid.unique_string == "SiteA.Stage"

    def test_all_parts(self):
        tsid = TimeSeriesIdentifier(1, "BASIN1", "Flow", "Inst", "1Hour", "0", "raw")
        assert tsid.unique_string == "BASIN1.Flow.Inst.1Hour.0.raw"
        assert tsid.unique_name == tsid.unique_string

    def test_parse_round_trip(self):
        tsid = TimeSeriesIdentifier.from_unique_string("SiteA.Stage.Inst.15Minutes.0.rev", key=7)
        assert tsid.key == 7
        assert tsid.site == "SiteA"
        assert tsid.interval == "15Minutes"
        assert tsid.version == "rev"

    def test_parse_short_string_pads_empty_parts(self):
        tsid = TimeSeriesIdentifier.from_unique_string("SiteA.Stage")
        assert tsid.param_type == ""
        assert tsid.version == ""

    @pytest.mark.parametrize("bad", ["SiteA", "a.b.c.d.e.f.g", ".Stage", ""])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(BadPatternError):
            TimeSeriesIdentifier.from_unique_string(bad)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
class TestEquality:
    def test_keyed_compare_by_key(self):
        a = TimeSeriesIdentifier(5, "SiteA", "Stage")
        b = TimeSeriesIdentifier(5, "Other", "Flow")
        assert a == b
        assert hash(a) == hash(b)

    def test_keyed_and_keyless_differ(self):
        keyed = TimeSeriesIdentifier(5, "SiteA", "Stage")
        assert keyed != keyed.copy_no_key()

    def test_keyless_compare_case_insensitive(self):
        a = TimeSeriesIdentifier(None, "SiteA", "Stage")
        b = TimeSeriesIdentifier(None, "SITEA", "stage")
        assert a == b
        assert len({a, b}) == 1

    def test_with_key(self):
        tsid = TimeSeriesIdentifier(None, "SiteA", "Stage").with_key(3)
        assert tsid.key == 3
        assert str(tsid) == "3:SiteA.Stage"


# ---------------------------------------------------------------------------
# Pattern transforms
# ---------------------------------------------------------------------------
class TestTransform:
    def test_empty_fields_keep_member_parts(self):
        member = TimeSeriesIdentifier(1, "SiteA", "Stage", "Inst", "1Hour", "0", "raw")
        result = transform_unique_string(member, DbCompParm("in"))
        assert result.key is None
        assert result.unique_string == member.unique_string

    def test_fields_replace_member_parts(self):
        member = TimeSeriesIdentifier(1, "SiteA", "Stage", "Inst", "1Hour", "0", "raw")
        parm = DbCompParm("in", data_type="Flow", interval="1Day")
        assert transform_unique_string(member, parm).unique_string == "SiteA.Flow.Inst.1Day.0.raw"

    def test_wildcard_substitutes_original_part(self):
        member = TimeSeriesIdentifier(1, "SiteA", "Stage", "Inst", "1Hour", "0", "raw")
        parm = DbCompParm("in", version="*-rev", site="*_up")
        result = transform_unique_string(member, parm)
        assert result.site == "SiteA_up"
        assert result.version == "raw-rev"

    def test_member_left_untouched(self):
        member = TimeSeriesIdentifier(1, "SiteA", "Stage")
        transform_unique_string(member, DbCompParm("in", data_type="Flow"))
        assert member.data_type == "Stage"
        assert member.key == 1

    def test_bad_interval_raises(self):
        member = TimeSeriesIdentifier(1, "SiteA", "Stage", "Inst", "1Hour")
        with pytest.raises(BadPatternError):
            transform_unique_string(member, DbCompParm("in", interval="1Fortnight"))


class TestTsidFromParm:
    def test_fully_specified(self):
        parm = DbCompParm("in", site="SiteA", data_type="Stage", interval="1Hour")
        assert tsid_from_parm(parm).unique_string == "SiteA.Stage..1Hour"

    @pytest.mark.parametrize(
        "fields",
        [{"data_type": "Stage"}, {"site": "SiteA"}, {"site": "Site*", "data_type": "Stage"}],
    )
    def test_incomplete_returns_none(self, fields):
        assert tsid_from_parm(DbCompParm("in", **fields)) is None


class TestMatchesParm:
    def test_key_mode_compares_sdi(self):
        tsid = TimeSeriesIdentifier(9, "SiteA", "Stage")
        assert tsid.matches_parm(DbCompParm("in", site_datatype_id=9))
        assert not tsid.matches_parm(DbCompParm("in", site_datatype_id=8))
        assert not tsid.matches_parm(DbCompParm("in"))

    def test_name_mode_compares_set_fields(self):
        tsid = TimeSeriesIdentifier(9, "SiteA", "Stage", "Inst", "1Hour")
        parm = DbCompParm("in", site="sitea", data_type="STAGE", interval="1Hour")
        assert tsid.matches_parm(parm, key_is_sdi=False)
        parm.interval = "1Day"
        assert not tsid.matches_parm(parm, key_is_sdi=False)
