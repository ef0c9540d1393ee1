import unittest

from gcusage.metrics import (
    build_point,
    extract_metric_points,
    iter_token_usage_data_points,
    read_attributes,
    read_number_value,
    read_timestamp_ms,
)

METRIC = "gemini_cli.token.usage"


def _otlp_attrs(**values: str) -> list[dict]:
    return [{"key": k.replace("__", "."), "value": {"stringValue": v}} for k, v in values.items()]


class ExtractorTests(unittest.TestCase):
    def test_finds_blocks_by_name_and_descriptor_name_at_any_depth(self) -> None:
        doc = {
            "resourceMetrics": [
                {
                    "scopeMetrics": [
                        {
                            "metrics": [
                                {"name": METRIC, "dataPoints": [{"id": 1}, {"id": 2}]},
                                {"name": "gemini_cli.api.request.count", "dataPoints": [{"id": 99}]},
                            ]
                        }
                    ]
                }
            ],
            "wrapper": {"deep": [[{"descriptor": {"name": METRIC}, "dataPoints": [{"id": 3}]}]]},
        }

        points = iter_token_usage_data_points(doc)

        self.assertEqual([p["id"] for p in points], [1, 2, 3])

    def test_descends_into_matched_blocks_and_skips_non_dict_points(self) -> None:
        doc = {
            "name": METRIC,
            "dataPoints": [{"id": 1}, "junk", 7, None],
            "children": {"name": METRIC, "dataPoints": [{"id": 2}]},
        }
        self.assertEqual([p["id"] for p in iter_token_usage_data_points(doc)], [1, 2])

    def test_block_without_data_point_list_is_ignored(self) -> None:
        self.assertEqual(iter_token_usage_data_points({"name": METRIC, "dataPoints": {"id": 1}}), [])

    def test_scalars_and_empty_roots(self) -> None:
        for root in (None, 0, "text", [], {}):
            self.assertEqual(iter_token_usage_data_points(root), [])

    def test_deep_nesting_does_not_recurse(self) -> None:
        doc: dict = {"name": METRIC, "dataPoints": [{"id": "leaf"}]}
        for _ in range(5000):
            doc = {"child": [doc]}
        self.assertEqual(iter_token_usage_data_points(doc), [{"id": "leaf"}])

    def test_extract_numbers_points_from_start_seq(self) -> None:
        doc = {
            "name": METRIC,
            "dataPoints": [
                {"asInt": 1, "timeUnixNano": 1_700_000_000_000},
                {"timeUnixNano": 1_700_000_000_000},
                {"asInt": 2, "timeUnixNano": 1_700_000_000_001},
            ],
        }
        points = extract_metric_points(doc, start_seq=10)
        self.assertEqual([(p.value, p.seq) for p in points], [(1, 10), (2, 11)])


class ValueTests(unittest.TestCase):
    def test_priority_int_then_double_then_value(self) -> None:
        self.assertEqual(read_number_value({"asInt": 5, "asDouble": 6.5, "value": 7}), 5)
        self.assertEqual(read_number_value({"asDouble": 6.5, "value": 7}), 6.5)
        self.assertEqual(read_number_value({"value": 7}), 7)

    def test_numeric_string_int(self) -> None:
        self.assertEqual(read_number_value({"asInt": "1234"}), 1234)
        self.assertEqual(read_number_value({"asInt": "12.5"}), 12.5)

    def test_unusable_values(self) -> None:
        self.assertIsNone(read_number_value({}))
        self.assertIsNone(read_number_value({"asInt": "abc"}))
        self.assertIsNone(read_number_value({"asInt": True}))
        self.assertIsNone(read_number_value({"value": "12"}))


class TimestampTests(unittest.TestCase):
    def test_end_time_pair(self) -> None:
        self.assertEqual(read_timestamp_ms({"endTime": [1_709_712_000, 123_456_789]}), 1_709_712_000_123)

    def test_start_time_pair_used_when_end_time_missing(self) -> None:
        self.assertEqual(read_timestamp_ms({"startTime": [1_709_712_000, 5_000_000]}), 1_709_712_000_005)

    def test_end_time_pair_wins_over_scalars(self) -> None:
        dp = {"endTime": [1_709_712_000, 0], "timeUnixNano": "1"}
        self.assertEqual(read_timestamp_ms(dp), 1_709_712_000_000)

    def test_pair_elements_may_be_strings(self) -> None:
        self.assertEqual(read_timestamp_ms({"endTime": ["1709712000", "999999999"]}), 1_709_712_000_999)

    def test_scalar_magnitude_heuristic(self) -> None:
        # above 1e15: nanoseconds
        self.assertEqual(read_timestamp_ms({"timeUnixNano": "1709712000123456789"}), 1_709_712_000_123)
        # above 1e12: microseconds
        self.assertEqual(read_timestamp_ms({"timeUnix": 999_999_999_999_999}), 999_999_999_999)
        self.assertEqual(read_timestamp_ms({"timeUnix": 1_709_712_000_123}), 1_709_712_000)
        # otherwise milliseconds
        self.assertEqual(read_timestamp_ms({"time": 1_000_000_000_000}), 1_000_000_000_000)
        self.assertEqual(read_timestamp_ms({"time": 1_709_712_000.9}), 1_709_712_000)

    def test_scalar_field_order(self) -> None:
        dp = {"time": 1, "timeUnix": 2, "endTimeUnixNano": 3, "timeUnixNano": 4}
        self.assertEqual(read_timestamp_ms(dp), 4)
        del dp["timeUnixNano"]
        self.assertEqual(read_timestamp_ms(dp), 3)

    def test_pair_and_nanosecond_scalar_agree(self) -> None:
        sec, nsec = 1_709_712_345, 678_901_234
        from_pair = read_timestamp_ms({"endTime": [sec, nsec]})
        from_scalar = read_timestamp_ms({"timeUnixNano": str(sec * 1_000_000_000 + nsec)})
        self.assertEqual(from_pair, from_scalar)

    def test_unusable_timestamps(self) -> None:
        self.assertIsNone(read_timestamp_ms({}))
        self.assertIsNone(read_timestamp_ms({"endTime": [1]}))
        self.assertIsNone(read_timestamp_ms({"timeUnixNano": "soon"}))
        self.assertIsNone(read_timestamp_ms({"time": 10**30}))


class AttributeTests(unittest.TestCase):
    def test_otlp_key_value_list(self) -> None:
        attrs = [
            {"key": "model", "value": {"stringValue": "gemini-2.5-pro"}},
            {"key": "count", "value": {"intValue": "42"}},
            {"key": "ratio", "value": {"doubleValue": 0.5}},
            {"key": "flag", "value": {"boolValue": True}},
            {"key": "plain", "value": "text"},
            {"value": {"stringValue": "no key"}},
            "junk",
        ]
        self.assertEqual(
            read_attributes(attrs),
            {"model": "gemini-2.5-pro", "count": "42", "ratio": "0.5", "plain": "text"},
        )

    def test_flat_mapping(self) -> None:
        self.assertEqual(
            read_attributes({"model": "m", "n": 3, "nested": {"stringValue": "s"}, "none": None}),
            {"model": "m", "n": "3", "nested": "s"},
        )

    def test_other_shapes_give_empty_mapping(self) -> None:
        for attrs in (None, "x", 3):
            self.assertEqual(read_attributes(attrs), {})


class BuildPointTests(unittest.TestCase):
    def test_builds_canonical_point(self) -> None:
        dp = {
            "asInt": "120",
            "endTime": [1_709_712_000, 0],
            "attributes": _otlp_attrs(model="gemini-2.5-pro", type="input", session__id="abc"),
        }
        point = build_point(dp, seq=3)

        self.assertEqual(point.timestamp_ms, 1_709_712_000_000)
        self.assertEqual(point.model, "gemini-2.5-pro")
        self.assertEqual(point.type, "input")
        self.assertEqual(point.session_id, "abc")
        self.assertEqual(point.value, 120)
        self.assertEqual(point.seq, 3)

    def test_defaults_and_session_fallback(self) -> None:
        point = build_point({"value": 1, "time": 1000, "attributes": {"session_id": "s-legacy", "model": ""}})
        self.assertEqual(point.model, "unknown")
        self.assertEqual(point.type, "unknown")
        self.assertEqual(point.session_id, "s-legacy")

        point = build_point({"value": 1, "time": 1000, "attributes": {"session.id": "a", "session_id": "b"}})
        self.assertEqual(point.session_id, "a")

        self.assertIsNone(build_point({"value": 1, "time": 1000}).session_id)

    def test_unusable_points(self) -> None:
        self.assertIsNone(build_point({"time": 1000}))
        self.assertIsNone(build_point({"value": 1}))
        self.assertIsNone(build_point(["not", "a", "dict"]))


if __name__ == "__main__":
    unittest.main()
