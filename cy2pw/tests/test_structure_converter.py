"""Tests for suite/case/hook conversion."""

from cy2pw.core.ast_parser import parse_source
from cy2pw.core.ast_parser.models import HookNode, SuiteNode
from cy2pw.core.constants import MARKER_PREFIX, TARGET_IMPORT
from cy2pw.core.exceptions import WarningCategory
from cy2pw.core.structure import ConversionOptions, TestStructureConverter, convert_test_structure


SIMPLE_SPEC = '''
describe('Login', () => {
  it('logs in', () => {
    cy.visit('/login');
    cy.get('[data-testid="u"]').type('bob');
    cy.get('[data-testid="go"]').click();
  });
});
'''

SIMPLE_EXPECTED = """import { test, expect } from '@playwright/test';

test.describe('Login', () => {
  test('logs in', async ({ page }) => {
    await page.goto('/login');
    await page.getByTestId('u').fill('bob');
    await page.getByTestId('go').click();
  });
});
"""

HOOKS_SPEC = '''
describe('Hooks', () => {
  before(() => {
    cy.request('POST', '/api/reset');
  });
  beforeEach(() => {
    cy.visit('/');
  });
  afterEach(() => {
    cy.clearCookies();
  });
  it('works', () => {
    cy.get('h1').should('be.visible');
  });
  describe('inner', () => {
    it('nested', () => {});
  });
});
'''

PARTIAL_SPEC = '''
describe('Partial', () => {
  it('clicks', () => {
    cy.get('#btn').frobnicate().click();
  });
});
'''

MIXED_SPEC = '''
it('root case', () => {
  cy.visit('/');
});

describe.only('Focused', () => {
  it.skip('skipped', () => {
    cy.visit('/skip');
  });
  it('pending');
  it('case three', () => {});
  it('case four', () => {});
});
'''

FIXTURE_SPEC = '''
describe('Fixtures', () => {
  it('loads', () => {
    cy.fixture('user').as('user');
  });
});
'''

CONTROL_FLOW_SPEC = '''
describe('Cart', () => {
  it('adds items', () => {
    cy.intercept('POST', '/api/cart').as('add');
    ['a', 'b'].forEach((sku) => {
      cy.contains(sku).click();
    });
    if (mobile) {
      cy.get('#checkout').click();
    }
    cy.wait('@add');
  });
});
'''


class TestStructureConversion:
    def test_simple_spec(self):
        result = convert_test_structure(parse_source(SIMPLE_SPEC))
        assert result.code == SIMPLE_EXPECTED
        assert result.case_count == 1
        assert result.warnings == []

    def test_hooks_precede_cases_and_nested_suites(self):
        code = convert_test_structure(parse_source(HOOKS_SPEC)).code
        before_all = code.index("test.beforeAll(async ({ browser }) => {")
        before_each = code.index("test.beforeEach(async ({ page }) => {")
        after_each = code.index("test.afterEach(async ({ page }) => {")
        case = code.index("test('works'")
        inner = code.index("test.describe('inner'")
        assert before_all < before_each < after_each < case < inner

    def test_worker_hook_opens_page(self):
        code = convert_test_structure(parse_source(HOOKS_SPEC)).code
        assert "    const page = await browser.newPage();\n    await page.request.post('/api/reset');\n    await page.close();" in code

    def test_empty_case(self):
        code = convert_test_structure(parse_source(HOOKS_SPEC)).code
        assert "test('nested', async ({ page }) => {});" in code

    def test_case_count_matches_source(self):
        result = convert_test_structure(parse_source(MIXED_SPEC))
        assert result.case_count == 5
        assert result.code.count("test(") + result.code.count("test.skip(") == 5

    def test_anonymous_root_and_modifiers(self):
        code = convert_test_structure(parse_source(MIXED_SPEC)).code
        assert code.startswith(TARGET_IMPORT + "\n\ntest('root case', async ({ page }) => {")
        assert "test.describe.only('Focused', () => {" in code
        assert "  test.skip('skipped', async ({ page }) => {" in code
        assert "  test.skip('pending', async () => {});" in code

    def test_partial_conversion(self):
        result = convert_test_structure(parse_source(PARTIAL_SPEC))
        markers = [line for line in result.code.split("\n") if MARKER_PREFIX in line]
        assert len(markers) == 1
        review = [w for w in result.warnings if w.category == WarningCategory.MANUAL_REVIEW]
        assert len(review) == 1
        assert review[0].line == 4
        assert "await page.locator('#btn').click();" in result.code

    def test_collected_imports(self):
        result = convert_test_structure(parse_source(FIXTURE_SPEC))
        assert result.imports == ["import fs from 'fs';"]
        assert result.code.split("\n")[1] == "import fs from 'fs';"

    def test_assertions_disabled(self):
        options = ConversionOptions(convert_assertions=False)
        result = TestStructureConverter(options).convert(parse_source(HOOKS_SPEC))
        assert "toBeVisible" not in result.code
        assert any(w.category == WarningCategory.MANUAL_REVIEW for w in result.warnings)

    def test_hooks_omitted(self):
        options = ConversionOptions(preserve_hooks=False)
        result = TestStructureConverter(options).convert(parse_source(HOOKS_SPEC))
        assert "beforeEach" not in result.code
        assert any(w.category == WarningCategory.NOTE for w in result.warnings)

    def test_unknown_hook_kind(self):
        suite = SuiteNode(name="S", hooks=(HookNode(kind="around", line=3),))
        result = convert_test_structure([suite])
        assert any(w.category == WarningCategory.UNMAPPED_HOOK for w in result.warnings)
        assert MARKER_PREFIX in result.code

    def test_custom_command_helpers(self):
        source = "it('x', () => {\n  cy.login('bob');\n});\n"
        options = ConversionOptions(custom_commands=("login",))
        result = TestStructureConverter(options).convert(parse_source(source))
        assert "await login(page, 'bob');" in result.code
        assert result.helpers == ["login"]

    def test_deterministic(self):
        first = convert_test_structure(parse_source(HOOKS_SPEC)).code
        second = convert_test_structure(parse_source(HOOKS_SPEC)).code
        assert first == second

    def test_control_flow_is_indented_with_the_case(self):
        result = convert_test_structure(parse_source(CONTROL_FLOW_SPEC))
        assert (
            "    ['a', 'b'].forEach(async (sku) => {\n"
            "      await page.getByText(sku).click();\n"
            "    });\n"
            "    if (mobile) {\n"
            "      await page.locator('#checkout').click();\n"
            "    }\n"
            "    await addResponse;\n"
        ) in result.code
        assert result.code.index("const addResponse = page.waitForResponse(") < result.code.index("forEach")
        review = [w for w in result.warnings if w.category == WarningCategory.MANUAL_REVIEW]
        assert [w.line for w in review] == [5]
