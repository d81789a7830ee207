from query_tools.blocklist import (
    BlocklistFilter,
    ColumnRule,
    WholeTableRule,
    rules_from_rows,
)


def test_rules_from_rows_maps_star_to_whole_table():
    rules = rules_from_rows([("secrets", "*"), ("users", "ssn")])
    assert rules == [WholeTableRule("secrets"), ColumnRule("users", "ssn")]


def test_column_rule_builds_restriction_clause():
    """A blocked column keeps its table searchable and is named in the clause"""
    result = BlocklistFilter().classify(["users"], [ColumnRule("users", "ssn")])
    assert result.searchable == ["users"]
    assert result.restriction_clause == "ssn from the users table"


def test_whole_table_rule_excludes_table():
    result = BlocklistFilter().classify(
        ["users", "blocked_table"],
        [WholeTableRule("blocked_table")]
    )
    assert result.searchable == ["users"]
    assert result.restriction_clause == ""


def test_whole_table_rule_wins_over_column_rules():
    rules = [ColumnRule("payroll", "salary"), WholeTableRule("payroll")]
    result = BlocklistFilter().classify(["payroll"], rules)
    assert result.searchable == []


def test_clause_groups_columns_per_table_in_requested_order():
    rules = [
        ColumnRule("users", "ssn"),
        ColumnRule("orders", "card_number"),
        ColumnRule("users", "dob"),
    ]
    result = BlocklistFilter().classify(["orders", "users"], rules)
    assert result.restriction_clause == "card_number from the orders table, ssn, dob from the users table"


def test_rules_for_unrequested_tables_are_ignored():
    result = BlocklistFilter().classify(["orders"], [ColumnRule("users", "ssn")])
    assert result.searchable == ["orders"]
    assert result.restriction_clause == ""


def test_empty_blocklist_leaves_everything_open():
    result = BlocklistFilter().classify(["users", "orders"], [])
    assert result.searchable == ["users", "orders"]
    assert result.restriction_clause == ""


def test_duplicate_requests_and_rules_collapse():
    rules = [ColumnRule("users", "ssn"), ColumnRule("users", "ssn")]
    result = BlocklistFilter().classify(["users", "users"], rules)
    assert result.searchable == ["users"]
    assert result.restriction_clause == "ssn from the users table"
