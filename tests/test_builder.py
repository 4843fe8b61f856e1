from __future__ import annotations

import pytest

from dashboard_core.builder import (
    UNKNOWN_LABEL,
    ChartPoint,
    GroupBucket,
    InvalidCallError,
    filter_records,
    group_by,
    mean,
    percentage_of,
    rank,
    records_of,
    to_chart_point,
    total,
    truncate_label,
)
from dashboard_core.numbers import LAKH, MILLION


LONG_NAME = "International School of Advanced Computing"


class TestGroupBy:
    def test_sums_in_first_seen_order(self):
        records = [{"channel": "A", "leads": 10}, {"channel": "B", "leads": 5}, {"channel": "A", "leads": 3}]
        buckets = group_by(records, "channel", {"leads": ("leads", "sum")})
        assert [b.to_dict() for b in buckets] == [
            {"key": "A", "count": 2, "leads": 13.0},
            {"key": "B", "count": 1, "leads": 5.0},
        ]

    def test_partition_counts_cover_every_record(self, campaigns):
        buckets = group_by(campaigns, "lead_channel", {"leads": ("total_leads", "sum")})
        assert sum(b.count for b in buckets) == len(campaigns)
        assert sum(b.values["leads"] for b in buckets) == sum(c["total_leads"] for c in campaigns)

    def test_is_deterministic(self, campaigns):
        first = group_by(campaigns, "lead_channel", {"leads": ("total_leads", "sum")})
        second = group_by(campaigns, "lead_channel", {"leads": ("total_leads", "sum")})
        assert first == second

    def test_non_numeric_value_counts_as_zero(self):
        records = [{"channel": "A", "leads": "not-a-number"}, {"channel": "A", "leads": 4}]
        buckets = group_by(records, "channel", {"leads": ("leads", "sum")})
        assert buckets == [GroupBucket(key="A", count=2, values={"leads": 4.0})]

    def test_numeric_strings_are_parsed(self):
        records = [{"k": "x", "v": " 1,200 "}, {"k": "x", "v": "12.5%"}]
        buckets = group_by(records, "k", {"v": ("v", "sum")})
        assert buckets[0].values["v"] == pytest.approx(1212.5)

    def test_missing_keys_group_under_unknown(self):
        records = [{"channel": None, "n": 1}, {"n": 2}, {"channel": "", "n": 3}, {"channel": "Web", "n": 4}]
        buckets = group_by(records, "channel", {"n": ("n", "sum")})
        assert [(b.key, b.count, b.values["n"]) for b in buckets] == [(UNKNOWN_LABEL, 3, 6.0), ("Web", 1, 4.0)]

    def test_nan_key_groups_under_unknown(self):
        buckets = group_by([{"k": float("nan")}, {"k": "a"}], "k")
        assert [b.key for b in buckets] == [UNKNOWN_LABEL, "a"]

    def test_keys_of_different_types_stay_separate(self):
        records = [{"k": 1}, {"k": True}, {"k": 1.0}, {"k": "1"}, {"k": 1}]
        buckets = group_by(records, "k")
        assert [(type(b.key), b.count) for b in buckets] == [(int, 2), (bool, 1), (float, 1), (str, 1)]

    def test_mean_and_count_skip_unreadable_values(self):
        records = [{"k": "a", "v": "10"}, {"k": "a", "v": "x"}, {"k": "a", "v": 20}, {"k": "a"}]
        bucket = group_by(records, "k", {"avg": ("v", "mean"), "seen": ("v", "count"), "sum": ("v", "sum")})[0]
        assert bucket.count == 4
        assert bucket.values == {"avg": 15.0, "seen": 2, "sum": 30.0}

    def test_mean_without_values_is_none(self):
        bucket = group_by([{"k": "a", "v": None}], "k", {"avg": ("v", "average")})[0]
        assert bucket.values["avg"] is None

    def test_callable_key(self):
        records = [{"first": "a"}, {"first": "B"}, {"first": "A"}]
        buckets = group_by(records, lambda r: r["first"].lower())
        assert [(b.key, b.count) for b in buckets] == [("a", 2), ("b", 1)]

    def test_empty_input(self):
        assert group_by([], "k", {"v": ("v", "sum")}) == []
        assert group_by(None, "k") == []

    @pytest.mark.parametrize(
        "key, aggregators",
        [
            (None, None),
            ("", None),
            (42, None),
            ("k", {"v": ("v", "median")}),
            ("k", {"count": ("v", "sum")}),
            ("k", {"key": ("v", "sum")}),
            ("k", {"v": "sum"}),
        ],
    )
    def test_invalid_calls(self, key, aggregators):
        with pytest.raises(InvalidCallError):
            group_by([{"k": 1, "v": 2}], key, aggregators)

    def test_invalid_call_raises_even_for_empty_input(self):
        with pytest.raises(InvalidCallError):
            group_by([], None)


class TestRank:
    def _buckets(self, totals):
        return [GroupBucket(key=name, count=1, values={"total": t}) for name, t in zip("abcd", totals)]

    def test_ties_keep_input_order(self):
        ranked = rank(self._buckets([10, 50, 30, 50]), "total", "desc", 3)
        assert [(b.key, b.values["total"]) for b in ranked] == [("b", 50), ("d", 50), ("c", 30)]

    def test_ascending(self):
        ranked = rank(self._buckets([10, 50, 30, 50]), "total", "asc")
        assert [b.key for b in ranked] == ["a", "c", "b", "d"]

    def test_records_with_string_numbers(self):
        rows = [{"n": "9"}, {"n": "10"}, {"n": "2"}]
        assert [r["n"] for r in rank(rows, "n", "desc")] == ["10", "9", "2"]

    def test_unreadable_values_go_last(self):
        rows = [{"id": 1, "n": None}, {"id": 2, "n": 5}, {"id": 3, "n": "x"}, {"id": 4, "n": 7}]
        assert [r["id"] for r in rank(rows, "n", "desc")] == [4, 2, 1, 3]
        assert [r["id"] for r in rank(rows, "n", "asc")] == [2, 4, 1, 3]

    def test_limit_larger_than_input(self):
        assert len(rank(self._buckets([1, 2]), "total", limit=10)) == 2

    def test_rank_by_count(self):
        buckets = [GroupBucket("a", 1), GroupBucket("b", 3)]
        assert [b.key for b in rank(buckets, "count")] == ["b", "a"]

    @pytest.mark.parametrize("limit", [0, -1, 1.5, True])
    def test_bad_limit(self, limit):
        with pytest.raises(InvalidCallError):
            rank(self._buckets([1, 2]), "total", "desc", limit)

    def test_bad_direction(self):
        with pytest.raises(InvalidCallError):
            rank(self._buckets([1]), "total", "down")

    def test_does_not_mutate_input(self):
        buckets = self._buckets([1, 3, 2])
        rank(buckets, "total")
        assert [b.key for b in buckets] == ["a", "b", "c"]


class TestToChartPoint:
    def test_truncates_long_label(self):
        point = to_chart_point({"name": LONG_NAME, "v": 1}, "name", 25, values=["v"])
        assert len(point.label) == 25
        assert point.label == "International School o..."
        assert point.full_label == LONG_NAME

    def test_short_label_untouched(self):
        point = to_chart_point({"name": "MBA", "v": 1}, "name", 9, values=["v"])
        assert point.label == point.full_label == "MBA"

    def test_label_exactly_at_limit_untouched(self):
        assert truncate_label("abcdefghi", 9) == "abcdefghi"
        assert truncate_label("abcdefghij", 9) == "abcdef..."

    def test_no_limit(self):
        point = to_chart_point({"name": LONG_NAME}, "name", values={})
        assert point.label == LONG_NAME

    def test_missing_label_is_unknown(self):
        assert to_chart_point({"v": 1}, "name", values=["v"]).label == UNKNOWN_LABEL

    def test_callable_label(self):
        point = to_chart_point({"ModeId": 4, "amt": 1}, lambda r: f"ModeId {r['ModeId']}", values=["amt"])
        assert point.full_label == "ModeId 4"

    def test_bucket_defaults_to_all_values(self):
        bucket = GroupBucket(key="Google", count=2, values={"leads": 13.0})
        point = to_chart_point(bucket, "key")
        assert point == ChartPoint(label="Google", full_label="Google", values={"count": 2.0, "leads": 13.0})

    def test_record_requires_values(self):
        with pytest.raises(InvalidCallError):
            to_chart_point({"name": "x"}, "name")

    def test_unit_conversion_rounds_half_up(self):
        record = {"name": "x", "a": 2_450_000, "b": 2_350_000, "n": 7}
        point = to_chart_point(record, "name", values=["a", "b", "n"], divisor={"a": LAKH, "b": MILLION}, decimals=1)
        assert point.values == {"a": 24.5, "b": 2.4, "n": 7.0}
        whole = to_chart_point(record, "name", values=["a"], divisor=LAKH, decimals=0)
        assert whole.values["a"] == 25.0

    def test_unreadable_value_is_zero(self):
        point = to_chart_point({"name": "x", "v": "n/a"}, "name", values={"value": "v"}, divisor=LAKH)
        assert point.values == {"value": 0.0}

    @pytest.mark.parametrize("max_len", [0, -5, 3, 2.5])
    def test_bad_max_length(self, max_len):
        with pytest.raises(InvalidCallError):
            to_chart_point({"name": "x"}, "name", max_len, values=[])

    def test_bad_divisor(self):
        with pytest.raises(InvalidCallError):
            to_chart_point({"name": "x", "v": 1}, "name", values=["v"], divisor=0)

    def test_to_dict_shape(self):
        point = to_chart_point({"name": LONG_NAME, "v": "3"}, "name", 9, values=["v"])
        assert point.to_dict() == {"label": "Intern...", "fullLabel": LONG_NAME, "values": {"v": 3.0}}


class TestPercentageOf:
    @pytest.mark.parametrize("part", [0, 5, -3, 1e9, "abc", None])
    def test_zero_whole(self, part):
        assert percentage_of(part, 0) == 0

    def test_unreadable_whole(self):
        assert percentage_of(5, None) == 0.0
        assert percentage_of(5, "n/a") == 0.0

    def test_not_rounded(self):
        assert percentage_of(1, 4) == 25.0
        assert percentage_of(1, 3) == pytest.approx(33.3333333)
        assert percentage_of(1, 3) != 33.33

    def test_string_inputs(self):
        assert percentage_of("30", "120") == 25.0


class TestColumnHelpers:
    def test_total_and_mean(self, campaigns):
        assert total(campaigns, "total_leads") == 410.0
        assert mean(campaigns, "conversion_rate") == pytest.approx(25.0 / 3)
        assert mean([], "x") is None
        assert total(None, "x") == 0.0

    def test_filter_records(self, campaigns):
        kept = filter_records(campaigns, "conversion_rate", lambda v: v > 0)
        assert [c["campaign_name"] for c in kept] == ["Summer Intake MBA", "Winter Executive Programmes"]

    def test_filter_records_without_predicate_drops_unreadable(self):
        rows = [{"amount": "1,000"}, {"amount": "n/a"}, {"amount": 0}, {}]
        assert filter_records(rows, "amount") == [{"amount": "1,000"}, {"amount": 0}]

    def test_records_of(self):
        assert records_of({"rows": [{"a": 1}, "junk", None]}, "rows") == [{"a": 1}]
        assert records_of({"rows": "nope"}, "rows") == []
        assert records_of(None, "rows") == []
