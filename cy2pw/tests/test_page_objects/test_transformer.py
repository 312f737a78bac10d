"""Tests for page object transformation."""

from cy2pw.core.constants import MARKER_PREFIX
from cy2pw.core.exceptions import WarningCategory
from cy2pw.core.page_objects import (
    MethodDescriptor,
    MethodKind,
    PageObjectAnalysis,
    PageObjectTransformer,
    TransformOptions,
    analyze_page_object,
    apply_rules,
    transform_page_object,
)


LOGIN_PAGE = '''import { BasePage } from './BasePage';

export class LoginPage extends BasePage {
  get username() {
    return cy.get('[data-testid="u"]');
  }

  visit() {
    cy.visit('/login');
  }

  typeUsername(name) {
    this.username.type(name);
  }

  submitForm() {
    cy.get('[data-testid="go"]').click();
  }

  login(name) {
    this.visit();
    this.typeUsername(name);
    this.submitForm();
  }

  mockUsers() {
    cy.log('mocking');
    cy.intercept('GET', '/api/users', { fixture: 'users.json' });
  }
}
'''

TS_PAGE = '''export default class CartPage {
  checkoutButton = cy.get('#checkout');

  constructor(private readonly region: string) {
    this.region = region;
  }

  async checkout(): Promise<void> {
    this.checkoutButton.click();
  }
}
'''

SEARCH_PAGE = '''export class SearchPage {
  open() {
    cy.visit('/search');
  }

  mockResults() {
    cy.intercept('/api/search', { fixture: 'results.json' }); cy.log('mocked');
  }

  fill(text) {
    cy.get('#q').type(text);
    return text;
  }

  search(text) {
    this.open();
    const typed = this.fill(text);
    console.log(this.fill(text).length);
    ['a', 'b'].forEach((t) => this.fill(t));
    return this.fill(typed);
  }
}
'''

INSTANCE_EXPORT = '''class HomePage {
  open() {
    cy.visit('/');
  }
}

export default new HomePage();
'''


def _transform(source: str, path: str = "LoginPage.js", **options):
    return transform_page_object(analyze_page_object(source, path), TransformOptions(**options))


class TestLoginPage:
    def test_constructor_calls_super(self):
        code = _transform(LOGIN_PAGE).code
        assert "  constructor(page) {\n    super(page);\n    this.page = page;\n  }" in code

    def test_element_getter(self):
        code = _transform(LOGIN_PAGE).code
        assert "  get username() {\n    return this.page.getByTestId('u');\n  }" in code

    def test_visit_method(self):
        code = _transform(LOGIN_PAGE).code
        assert "  async visit() {\n    await this.page.goto('/login');\n  }" in code

    def test_getter_chain(self):
        code = _transform(LOGIN_PAGE).code
        assert "  async typeUsername(name) {\n    await this.username.fill(name);\n  }" in code

    def test_click_method(self):
        code = _transform(LOGIN_PAGE).code
        assert "await this.page.getByTestId('go').click();" in code

    def test_composite_awaits_siblings(self):
        code = _transform(LOGIN_PAGE).code
        assert (
            "  async login(name) {\n"
            "    await this.visit();\n"
            "    await this.typeUsername(name);\n"
            "    await this.submitForm();\n"
            "  }"
        ) in code

    def test_mocking_preserved(self):
        result = _transform(LOGIN_PAGE)
        assert "  mockUsers() {\n    // cy.log('mocking');\n    cy.intercept(" in result.code
        outcome = next(o for o in result.outcomes if o.name == "mockUsers")
        assert outcome.classification == MethodKind.MOCKING
        assert "mocking method preserved verbatim" in outcome.notes

    def test_mocking_converted_when_not_preserved(self):
        code = _transform(LOGIN_PAGE, preserve_mocking=False).code
        assert "cy.intercept" not in code
        assert "async mockUsers()" in code

    def test_preamble_and_outcomes(self):
        result = _transform(LOGIN_PAGE)
        assert result.code.startswith("import { BasePage } from './BasePage';\n\nexport class LoginPage extends BasePage {")
        assert result.is_valid
        assert [o.name for o in result.outcomes] == [
            "username", "visit", "typeUsername", "submitForm", "login", "mockUsers",
        ]

    def test_converted_output_has_no_cypress_calls(self):
        code = _transform(LOGIN_PAGE, preserve_mocking=False).code
        assert "cy." not in code.replace("// cy.log", "")


class TestTypeScriptPage:
    def test_typed_constructor(self):
        code = _transform(TS_PAGE, "CartPage.ts").code
        assert code.startswith("import type { Page } from '@playwright/test';\n")
        assert "  readonly page: Page;" in code
        assert (
            "  constructor(page: Page, private readonly region: string) {\n"
            "    this.page = page;\n"
            "    this.region = region;\n"
            "  }"
        ) in code

    def test_property_becomes_locator_getter(self):
        code = _transform(TS_PAGE, "CartPage.ts").code
        assert "  get checkoutButton() {\n    return this.page.locator('#checkout');\n  }" in code

    def test_async_return_type(self):
        code = _transform(TS_PAGE, "CartPage.ts").code
        assert "  async checkout(): Promise<void> {\n    await this.checkoutButton.click();\n  }" in code

    def test_without_page_injection(self):
        code = _transform(TS_PAGE, "CartPage.ts", inject_page=False).code
        assert "readonly page: Page;" not in code
        assert "constructor(private readonly region: string)" in code


class TestFailures:
    def test_instance_export(self):
        result = _transform(INSTANCE_EXPORT, "home.js")
        assert "export default HomePage;" in result.code
        assert "new HomePage()" not in result.code
        assert any(w.category == WarningCategory.MANUAL_REVIEW for w in result.warnings)

    def test_method_failure_is_isolated(self):
        analysis = PageObjectAnalysis(
            is_page_object=True,
            class_name="BrokenPage",
            header="class BrokenPage",
            methods=(
                MethodDescriptor("broken", (), "\n    cy.get('a'.click();\n  ", MethodKind.CLICK, line=2),
                MethodDescriptor("open", (), "\n    cy.visit('/');\n  ", MethodKind.VISIT, line=5),
            ),
        )
        result = PageObjectTransformer().transform(analysis)
        assert not result.is_valid
        broken, opened = result.outcomes
        assert not broken.success
        assert opened.success
        assert MARKER_PREFIX + " method conversion failed" in result.code
        assert "    // cy.get('a'.click();" in result.code
        assert "await this.page.goto('/');" in result.code
        assert any(w.category == WarningCategory.METHOD_FAILURE for w in result.warnings)


class TestCompositeMethods:
    def test_every_sibling_call_is_awaited(self):
        code = _transform(SEARCH_PAGE, "SearchPage.js").code
        assert "    await this.open();\n" in code
        assert "    const typed = await this.fill(text);\n" in code
        assert "    console.log((await this.fill(text)).length);\n" in code
        assert "    return await this.fill(typed);\n" in code

    def test_callback_calling_sibling_is_marked(self):
        result = _transform(SEARCH_PAGE, "SearchPage.js")
        assert (
            f"    {MARKER_PREFIX} callback now awaits; its caller does not wait for it\n"
            "    ['a', 'b'].forEach(async (t) => await this.fill(t));\n"
        ) in result.code
        assert any("callback now awaits" in w.message for w in result.warnings)


class TestDebugCallRules:
    def test_call_after_statement_on_same_line(self):
        text, applied = apply_rules("    cy.intercept('/api'); cy.log('x');\n")
        assert text == "    cy.intercept('/api'); /* cy.log('x'); */\n"
        assert applied == ["inline-debug-call"]

    def test_rules_are_idempotent(self):
        body = "  cy.log('a'); cy.debug();\n  foo(); debugger;\n  cy.pause();\n"
        once, _ = apply_rules(body)
        twice, applied = apply_rules(once)
        assert twice == once
        assert applied == []
        assert "foo(); /* debugger; */" in once

    def test_inline_call_in_preserved_mocking_method(self):
        code = _transform(SEARCH_PAGE, "SearchPage.js").code
        assert "cy.intercept('/api/search', { fixture: 'results.json' }); /* cy.log('mocked'); */" in code
