"""Tests for selector optimization."""

from cy2pw.core.mapping.selectors import optimize_selector, parse_compound, strategy_names


class TestSelectorStrategies:
    def test_test_id(self):
        expression, note, strategy = optimize_selector('[data-testid="submit"]')
        assert expression == "page.getByTestId('submit')"
        assert note is None
        assert strategy == "test-id"

    def test_data_cy_needs_config_note(self):
        expression, note, _ = optimize_selector("[data-cy=submit]")
        assert expression == "page.getByTestId('submit')"
        assert "data-cy" in note

    def test_test_id_beats_role(self):
        expression, _, strategy = optimize_selector('button[role="button"][data-testid="x"]')
        assert expression == "page.getByTestId('x')"
        assert strategy == "test-id"

    def test_role(self):
        expression, _, _ = optimize_selector("[role='dialog']")
        assert expression == "page.getByRole('dialog')"

    def test_aria_label(self):
        expression, _, _ = optimize_selector('[aria-label="Close"]')
        assert expression == "page.getByLabel('Close')"

    def test_placeholder(self):
        expression, _, _ = optimize_selector('input[placeholder="Email"]')
        assert expression == "page.getByPlaceholder('Email')"

    def test_combinator_falls_back_to_locator(self):
        expression, _, strategy = optimize_selector('form [data-testid="x"]')
        assert expression == "page.locator('form [data-testid=\"x\"]')"
        assert strategy == "locator"

    def test_contains_pseudo_class(self):
        expression, _, _ = optimize_selector("button:contains('Save')")
        assert expression == "page.locator('button:has-text(\\'Save\\')')"

    def test_custom_handle(self):
        expression, _, _ = optimize_selector("#name", "this.page")
        assert expression == "this.page.locator('#name')"

    def test_priority_order(self):
        names = strategy_names()
        assert names["test-id"] < names["role"] < names["aria-label"] < names["placeholder"]


class TestCompoundParsing:
    def test_compound(self):
        compound = parse_compound('input.big#main[name="q"]')
        assert compound.tag == "input"
        assert compound.simple == (".big", "#main")
        assert compound.exact("name") == "q"

    def test_prefix_match_is_not_exact(self):
        compound = parse_compound('[data-testid^="row-"]')
        assert compound.exact("data-testid") is None

    def test_selector_list(self):
        assert parse_compound("a, b") is None
