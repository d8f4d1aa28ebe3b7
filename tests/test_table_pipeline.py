import unittest
from datetime import date

from crm_tables.schemas.table import FilterCondition, SortDescriptor
from crm_tables.services.entities import DEAL, ENTITIES, INVOICE
from crm_tables.services.table_pipeline import (
    build_table_page,
    compare_values,
    evaluate_condition,
    filter_records,
    page_count,
    paginate,
    sort_records,
    stringify,
    visible_page,
)


def _deals():
    return [
        {"_id": "d1", "companyName": "Acme Corp", "customerName": "Ravi", "amount": 500, "status": "New"},
        {"_id": "d2", "companyName": "Globex", "customerName": "Meera", "amount": 1500, "status": "Demo"},
        {"_id": "d3", "companyName": "Initech", "customerName": "Arjun", "amount": 250, "status": "New"},
        {"_id": "d4", "companyName": "Umbrella", "customerName": "Priya", "amount": 900, "status": "Decided"},
        {"_id": "d5", "companyName": "Acme Labs", "customerName": "Kiran", "amount": 1200, "status": ""},
        {"_id": "d6", "companyName": "Hooli", "customerName": "Sana", "amount": 50, "status": "Proposal"},
        {"_id": "d7", "companyName": "Vandelay", "customerName": "Dev"},
    ]


class StringifyTests(unittest.TestCase):
    def test_missing_values_become_empty(self):
        self.assertEqual(stringify(None), "")

    def test_numbers_and_dates(self):
        self.assertEqual(stringify(900.0), "900")
        self.assertEqual(stringify(12.5), "12.5")
        self.assertEqual(stringify(7), "7")
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(date(2025, 3, 1)), "2025-03-01")


class FreeTextFilterTests(unittest.TestCase):
    def test_empty_query_and_conditions_only_paginate(self):
        records = _deals()
        rows = visible_page(records, "", {}, SortDescriptor(), page=2, rows_per_page=3)
        self.assertEqual([row["_id"] for row in rows], ["d4", "d5", "d6"])

    def test_query_is_case_insensitive_over_every_field(self):
        rows = filter_records(_deals(), "acme")
        self.assertEqual([row["_id"] for row in rows], ["d1", "d5"])
        rows = filter_records(_deals(), "MEERA")
        self.assertEqual([row["_id"] for row in rows], ["d2"])

    def test_exact_field_value_always_matches_its_record(self):
        records = _deals()
        for record in records:
            for value in record.values():
                text = stringify(value)
                if not text:
                    continue
                ids = [row["_id"] for row in filter_records(records, text.upper())]
                self.assertIn(record["_id"], ids)

    def test_numbers_are_matched_by_their_text(self):
        rows = filter_records(_deals(), "150")
        self.assertEqual([row["_id"] for row in rows], ["d2"])

    def test_source_records_are_not_mutated(self):
        records = _deals()
        snapshot = [dict(row) for row in records]
        visible_page(
            records,
            "a",
            {"status": FilterCondition(operator="is not empty")},
            SortDescriptor(column="amount", direction="descending"),
            page=1,
            rows_per_page=2,
        )
        self.assertEqual(records, snapshot)


class ConditionTests(unittest.TestCase):
    def test_each_operator(self):
        self.assertTrue(evaluate_condition("Globex", "is", "globex"))
        self.assertFalse(evaluate_condition("Globex", "isn't", "GLOBEX"))
        self.assertTrue(evaluate_condition("Globex Corp", "contains", "EX c"))
        self.assertTrue(evaluate_condition("Globex", "doesn't contain", "acme"))
        self.assertTrue(evaluate_condition("Globex", "starts with", "glo"))
        self.assertTrue(evaluate_condition("Globex", "ends with", "BEX"))
        self.assertTrue(evaluate_condition(None, "is empty"))
        self.assertTrue(evaluate_condition("", "is empty", "ignored"))
        self.assertTrue(evaluate_condition("x", "is not empty"))
        self.assertFalse(evaluate_condition(None, "is not empty"))

    def test_unknown_operator_does_not_filter(self):
        self.assertTrue(evaluate_condition("Globex", "sounds like", "glowbex"))

    def test_is_and_isnt_are_complements(self):
        for raw in ("New", "new", "", None, 12, "Demo"):
            for value in ("new", "", "12", None):
                self.assertNotEqual(evaluate_condition(raw, "is", value), evaluate_condition(raw, "isn't", value))

    def test_contains_keeps_record_for_any_substring(self):
        value = "Umbrella"
        records = _deals()
        for start in range(len(value)):
            for end in range(start + 1, len(value) + 1):
                rows = filter_records(records, conditions={"companyName": {"operator": "contains", "value": value[start:end]}})
                self.assertIn("d4", [row["_id"] for row in rows])

    def test_conditions_are_anded_with_each_other_and_with_query(self):
        conditions = {
            "status": FilterCondition(operator="is", value="new"),
            "companyName": FilterCondition(operator="starts with", value="acme"),
        }
        self.assertEqual([row["_id"] for row in filter_records(_deals(), "", conditions)], ["d1"])
        self.assertEqual(filter_records(_deals(), "initech", conditions), [])

    def test_missing_field_counts_as_empty(self):
        rows = filter_records(_deals(), conditions={"status": FilterCondition(operator="is empty")})
        self.assertEqual([row["_id"] for row in rows], ["d5", "d7"])


class SortTests(unittest.TestCase):
    def test_null_column_or_direction_keeps_input_order(self):
        records = _deals()
        self.assertEqual(sort_records(records, SortDescriptor()), records)
        self.assertEqual(sort_records(records, SortDescriptor(column="amount")), records)

    def test_descending_reverses_natural_order(self):
        records = _deals()[:6]
        asc = sort_records(records, SortDescriptor(column="amount", direction="ascending"))
        desc = sort_records(records, SortDescriptor(column="amount", direction="descending"))
        self.assertEqual([row["amount"] for row in asc], [50, 250, 500, 900, 1200, 1500])
        self.assertEqual([row["amount"] for row in desc], [1500, 1200, 900, 500, 250, 50])

    def test_mixed_types_do_not_raise(self):
        records = [{"v": 10}, {"v": "abc"}, {"v": None}, {"v": 2}]
        rows = sort_records(records, SortDescriptor(column="v", direction="ascending"))
        self.assertEqual(len(rows), 4)
        self.assertEqual(compare_values(None, 5), 1)
        self.assertEqual(compare_values(5, None), -1)
        self.assertEqual(compare_values(None, None), 0)
        self.assertEqual(compare_values(10, "9"), -1)
        self.assertEqual(compare_values("9", 10), 1)

    def test_mixed_types_have_one_consistent_order(self):
        records = [{"v": "b"}, {"v": 10}, {"v": "a"}, {"v": 9.5}, {"v": "9"}, {"v": 2}]
        rows = sort_records(records, SortDescriptor(column="v", direction="ascending"))
        self.assertEqual([row["v"] for row in rows], [2, 9.5, 10, "9", "a", "b"])
        shuffled = sort_records(list(reversed(records)), SortDescriptor(column="v", direction="ascending"))
        self.assertEqual(shuffled, rows)

    def test_missing_value_does_not_stop_ordering(self):
        records = [{"amount": 1500}, {"amount": None}, {"amount": 250}]
        asc = sort_records(records, SortDescriptor(column="amount", direction="ascending"))
        desc = sort_records(records, SortDescriptor(column="amount", direction="descending"))
        self.assertEqual([row["amount"] for row in asc], [250, 1500, None])
        self.assertEqual([row["amount"] for row in desc], [1500, 250, None])

    def test_record_without_sort_column_goes_last_in_global_sort(self):
        rows = visible_page(_deals(), sort=SortDescriptor(column="amount", direction="ascending"), page=1, rows_per_page=7)
        self.assertEqual([row["_id"] for row in rows], ["d6", "d3", "d1", "d4", "d5", "d2", "d7"])
        rows = visible_page(_deals(), sort=SortDescriptor(column="amount", direction="descending"), page=2, rows_per_page=4)
        self.assertEqual([row["_id"] for row in rows], ["d3", "d6", "d7"])

    def test_equal_values_keep_input_order(self):
        records = [{"id": 1, "s": "New"}, {"id": 2, "s": "Demo"}, {"id": 3, "s": "New"}]
        desc = sort_records(records, SortDescriptor(column="s", direction="descending"))
        self.assertEqual([row["id"] for row in desc], [1, 3, 2])

    def test_entity_sort_keys_order_amounts_numerically(self):
        records = [{"amount": "1,200"}, {"amount": "90"}, {"amount": 300}, {"amount": ""}, {"amount": "1,00,000"}]
        rows = sort_records(records, SortDescriptor(column="amount", direction="ascending"), DEAL.accessors, DEAL.sort_keys)
        self.assertEqual([row["amount"] for row in rows], ["90", 300, "1,200", "1,00,000", ""])

    def test_table_page_uses_sort_keys(self):
        records = [{"_id": "a", "amount": "1,200"}, {"_id": "b", "amount": "90"}]
        page = build_table_page(
            records,
            sort=SortDescriptor(column="amount", direction="descending"),
            accessors=DEAL.accessors,
            sort_keys=DEAL.sort_keys,
        )
        self.assertEqual([row["_id"] for row in page.rows], ["a", "b"])


class EntityConditionTests(unittest.TestCase):
    def _ids(self, records, conditions, entity, query=""):
        return [row["_id"] for row in filter_records(records, query, conditions, entity.accessors)]

    def test_string_amount_is_compared_as_stored(self):
        records = [{"_id": "d1", "amount": "500.50"}, {"_id": "d2", "amount": "500.5"}]
        self.assertEqual(self._ids(records, {"amount": {"operator": "contains", "value": "500.50"}}, DEAL), ["d1"])
        self.assertEqual(self._ids(records, {"amount": {"operator": "is", "value": "500.5"}}, DEAL), ["d2"])
        self.assertEqual(self._ids(records, {"amount": {"operator": "ends with", "value": ".50"}}, DEAL), ["d1"])

    def test_grouped_amount_matches_itself(self):
        records = [{"_id": "i1", "totalWithGst": "1,000"}, {"_id": "i2", "totalWithGst": "1"}]
        self.assertEqual(self._ids(records, {"totalWithGst": {"operator": "is", "value": "1,000"}}, INVOICE), ["i1"])
        self.assertEqual(self._ids(records, {"totalWithGst": {"operator": "isn't", "value": "1,000"}}, INVOICE), ["i2"])

    def test_contains_is_reflexive_for_every_entity_column(self):
        record = {
            "_id": "r1",
            "amount": "1,250.75",
            "discount": 7.5,
            "gstRate": "18",
            "totalWithGst": 1062.0,
            "paidAmount": "0.00",
            "remainingAmount": 562,
            "companyName": "Acme Corp",
            "status": "Unpaid",
        }
        for entity in ENTITIES.values():
            for column in entity.columns:
                text = stringify(record.get(column.uid))
                if not text:
                    continue
                for start in range(len(text)):
                    for end in range(start + 1, len(text) + 1):
                        conditions = {column.uid: {"operator": "contains", "value": text[start:end].upper()}}
                        self.assertEqual(self._ids([record], conditions, entity), ["r1"], (entity.name, column.uid))

    def test_missing_numeric_field_is_empty(self):
        records = [{"_id": "i1", "paidAmount": "0"}, {"_id": "i2"}, {"_id": "i3", "paidAmount": None}]
        self.assertEqual(self._ids(records, {"paidAmount": {"operator": "is empty"}}, INVOICE), ["i2", "i3"])
        self.assertEqual(self._ids(records, {"paidAmount": {"operator": "is not empty"}}, INVOICE), ["i1"])

    def test_conditions_agree_with_free_text(self):
        records = [{"_id": "i1", "amount": "1,000"}, {"_id": "i2", "amount": "2,500"}]
        by_query = self._ids(records, None, INVOICE, query="1,000")
        by_condition = self._ids(records, {"amount": {"operator": "contains", "value": "1,000"}}, INVOICE)
        self.assertEqual(by_query, ["i1"])
        self.assertEqual(by_condition, by_query)


class PaginationTests(unittest.TestCase):
    def test_page_count(self):
        self.assertEqual(page_count(0, 5), 0)
        self.assertEqual(page_count(7, 5), 2)
        self.assertEqual(page_count(10, 5), 2)

    def test_pages_concatenate_to_filtered_set(self):
        records = _deals()
        filtered = filter_records(records, "a")
        for rows_per_page in range(1, len(records) + 2):
            pages = page_count(len(filtered), rows_per_page)
            joined = []
            for page in range(1, pages + 1):
                joined.extend(paginate(filtered, page, rows_per_page))
            self.assertEqual(joined, filtered)

    def test_page_past_the_end_is_empty(self):
        self.assertEqual(paginate(_deals(), 9, 5), [])


class SortScopeTests(unittest.TestCase):
    def test_global_scope_sorts_before_slicing(self):
        rows = visible_page(
            _deals()[:6], sort=SortDescriptor(column="amount", direction="descending"), page=1, rows_per_page=2
        )
        self.assertEqual([row["_id"] for row in rows], ["d2", "d5"])

    def test_page_scope_only_reorders_current_page(self):
        rows = visible_page(
            _deals()[:6],
            sort=SortDescriptor(column="amount", direction="descending"),
            page=1,
            rows_per_page=2,
            sort_scope="page",
        )
        self.assertEqual([row["_id"] for row in rows], ["d2", "d1"])

    def test_table_page_metadata(self):
        page = build_table_page(_deals(), "", {}, None, page=2, rows_per_page=3)
        self.assertEqual(page.total, 7)
        self.assertEqual(page.pages, 3)
        self.assertTrue(page.has_previous)
        self.assertTrue(page.has_next)
        self.assertEqual([row["_id"] for row in page.rows], ["d4", "d5", "d6"])


if __name__ == "__main__":
    unittest.main()
