"""Tests for command, chain and assertion mapping."""

import pytest

from cy2pw.core.ast_parser import parse_source
from cy2pw.core.constants import MARKER_PREFIX
from cy2pw.core.exceptions import UnmappedConstruct
from cy2pw.core.mapping import CommandMapper
from cy2pw.core.mapping.assertions import build_assertion
from cy2pw.core.mapping.commands import CommandKind
from cy2pw.core.ast_parser.models import Argument, ArgumentKind


def _commands(body: str):
    """Parse `body` as the body of a single top-level test."""
    source = "it('case', () => {\n" + body + "\n});\n"
    return parse_source(source)[0].cases[0].commands


def _map_all(body: str, mapper: CommandMapper = None):
    mapper = mapper or CommandMapper()
    statements, markers, notes = [], [], []
    commands = _commands(body)
    mapper.begin_body(commands)
    for invocation in commands:
        mapped = mapper.map(invocation)
        statements.extend(mapped.statements)
        markers.extend(mapped.markers)
        notes.extend(mapped.notes)
    return statements, markers, notes


def _string(value: str) -> Argument:
    return Argument(ArgumentKind.STRING, value, repr(value))


# =========================================================================
# Tests: Navigation and actions
# =========================================================================

class TestActions:
    def test_login_flow(self):
        statements, markers, _ = _map_all(
            "cy.visit('/login');\n"
            "cy.get('[data-testid=\"u\"]').type('bob');\n"
            "cy.get('[data-testid=\"go\"]').click();"
        )
        assert statements == [
            "await page.goto('/login');",
            "await page.getByTestId('u').fill('bob');",
            "await page.getByTestId('go').click();",
        ]
        assert markers == []

    def test_type_with_special_keys(self):
        statements, _, _ = _map_all("cy.get('#q').type('hello{enter}');")
        assert statements == [
            "await page.locator('#q').fill('hello');",
            "await page.locator('#q').press('Enter');",
        ]

    def test_type_after_key_uses_press_sequentially(self):
        statements, _, _ = _map_all("cy.get('#q').type('a{tab}b');")
        assert statements[-1] == "await page.locator('#q').pressSequentially('b');"

    def test_contains(self):
        statements, _, _ = _map_all("cy.contains('Save').click();")
        assert statements == ["await page.getByText('Save').click();"]

    def test_locator_mutators(self):
        statements, _, _ = _map_all("cy.get('li').eq(2).find('a').click();")
        assert statements == ["await page.locator('li').nth(2).locator('a').click();"]

    def test_submit(self):
        statements, _, _ = _map_all("cy.get('form').submit();")
        assert statements == ["await page.locator('form').evaluate((form) => form.requestSubmit());"]

    def test_trigger_hover(self):
        statements, _, _ = _map_all("cy.get('.menu').trigger('mouseover');")
        assert statements == ["await page.locator('.menu').hover();"]

    def test_bare_lookup_waits_for_element(self):
        statements, _, _ = _map_all("cy.get('.loaded');")
        assert statements == ["await page.locator('.loaded').first().waitFor({ state: 'attached' });"]

    def test_within_scopes_lookups(self):
        statements, _, _ = _map_all("cy.get('form').within(() => {\n  cy.get('input').type('x');\n});")
        assert statements == ["await page.locator('form').locator('input').fill('x');"]

    def test_fixed_wait(self):
        statements, _, notes = _map_all("cy.wait(500);")
        assert statements == ["await page.waitForTimeout(500);"]
        assert notes

    def test_fixture_imports_fs(self):
        mapper = CommandMapper()
        invocation = _commands("cy.fixture('user').as('user');")[0]
        mapped = mapper.map(invocation)
        assert mapped.statements == [
            "const user = JSON.parse(fs.readFileSync('tests/fixtures/user.json', 'utf-8'));"
        ]
        assert mapped.imports == ["import fs from 'fs';"]


# =========================================================================
# Tests: Assertions
# =========================================================================

class TestAssertions:
    def test_visible(self):
        statements, _, _ = _map_all("cy.get('.msg').should('be.visible');")
        assert statements == ["await expect(page.locator('.msg')).toBeVisible();"]

    def test_text_and_chained_and(self):
        statements, _, _ = _map_all("cy.get('h1').should('have.text', 'Hi').and('have.class', 'big');")
        assert statements == [
            "await expect(page.locator('h1')).toHaveText('Hi');",
            "await expect(page.locator('h1')).toHaveClass(/(^|\\s)big(\\s|$)/);",
        ]

    def test_negated_exist(self):
        statements, _, _ = _map_all("cy.get('.gone').should('not.exist');")
        assert statements == ["await expect(page.locator('.gone')).toHaveCount(0);"]

    def test_url_include(self):
        statements, _, _ = _map_all("cy.url().should('include', '/dashboard');")
        assert statements == ["await expect(page).toHaveURL(/\\/dashboard/);"]

    def test_value_assertion_is_not_awaited(self):
        assertion = build_assertion("value", "x", [_string("eq"), Argument(ArgumentKind.NUMBER, 3, "3")])
        assert assertion == "expect(x).toBe(3);"

    def test_unknown_chainer_raises(self):
        with pytest.raises(UnmappedConstruct):
            build_assertion("locator", "page.locator('a')", [_string("be.shiny")])

    def test_assertions_disabled(self):
        statements, markers, _ = _map_all("cy.get('a').should('be.visible');", CommandMapper(convert_assertions=False))
        assert len(markers) == 1
        assert statements == markers


# =========================================================================
# Tests: Unmapped constructs
# =========================================================================

class TestUnmapped:
    def test_unknown_chain_link_keeps_going(self):
        statements, markers, _ = _map_all("cy.get('#btn').frobnicate().click();")
        assert len(markers) == 1
        assert markers[0].startswith(MARKER_PREFIX)
        assert "frobnicate" in markers[0]
        assert statements[-1] == "await page.locator('#btn').click();"

    def test_unknown_command(self):
        statements, markers, _ = _map_all("cy.doSomethingOdd('x');")
        assert len(markers) == 1
        assert "cy.doSomethingOdd" in markers[0]

    def test_manual_command(self):
        _, markers, _ = _map_all("cy.task('seed');")
        assert "has no Playwright equivalent" in markers[0]

    def test_callback_link(self):
        statements, markers, _ = _map_all("cy.get('li').each(($li) => {\n  cy.visit('/x');\n});")
        assert len(markers) == 1
        assert "await page.goto('/x');" in statements

    def test_chai_expect_is_marked(self):
        _, markers, _ = _map_all("expect(total).to.equal(3);")
        assert len(markers) == 1

    def test_raw_statement_passes_through(self):
        statements, markers, _ = _map_all("const name = 'bob';")
        assert statements == ["const name = 'bob';"]
        assert markers == []


# =========================================================================
# Tests: Aliases, intercepts and custom commands
# =========================================================================

class TestAliases:
    def test_locator_alias_is_inlined(self):
        statements, _, notes = _map_all("cy.get('#save').as('save');\ncy.get('@save').click();")
        assert statements == ["await page.locator('#save').click();"]
        assert any("@save" in n for n in notes)

    def test_intercept_alias_wait(self):
        statements, markers, _ = _map_all("cy.intercept('GET', '/api/users').as('users');\ncy.wait('@users');")
        assert markers == []
        assert statements == [
            "const usersResponse = page.waitForResponse((response) => /.*\\/api\\/users/.test(response.url())"
            " && response.request().method() === 'GET');",
            "await usersResponse;",
        ]

    def test_response_promise_starts_before_the_action(self):
        statements, markers, _ = _map_all(
            "cy.intercept('/api/users').as('users');\n"
            "cy.get('#load').click();\n"
            "cy.wait('@users');"
        )
        assert markers == []
        assert statements[0].startswith("const usersResponse = page.waitForResponse(")
        assert statements[1:] == ["await page.locator('#load').click();", "await usersResponse;"]

    def test_wait_on_alias_from_another_body_is_marked(self):
        mapper = CommandMapper()
        setup, _, _ = _map_all("cy.intercept('/api/users').as('users');", mapper)
        assert setup == []
        statements, markers, _ = _map_all("cy.get('#load').click();\ncy.wait('@users');", mapper)
        assert len(markers) == 1
        assert "starts after the action that triggers it" in markers[0]
        assert statements[-1] == "await page.waitForResponse((response) => /.*\\/api\\/users/.test(response.url()));"

    def test_promise_name_from_dashed_alias(self):
        statements, _, _ = _map_all("cy.intercept('/api/a').as('get-users');\ncy.wait('@get-users');")
        assert statements[0].startswith("const getUsersResponse = ")
        assert statements[1] == "await getUsersResponse;"

    def test_intercept_with_static_response(self):
        statements, markers, notes = _map_all("cy.intercept('/api/items', { fixture: 'items.json' });")
        assert statements == [
            "await page.route('**/api/items', (route) => route.fulfill({ path: 'tests/fixtures/items.json' }));"
        ]
        assert markers == []
        assert notes == []

    def test_unknown_alias_is_marked(self):
        _, markers, _ = _map_all("cy.wait('@missing');")
        assert len(markers) == 1

    def test_custom_command(self):
        mapper = CommandMapper(custom_commands=("login",))
        mapped = mapper.map(_commands("cy.login('bob', secret);")[0])
        assert mapped.statements == ["await login(page, 'bob', secret);"]
        assert mapped.helpers == ["login"]

    def test_classify(self):
        mapper = CommandMapper(custom_commands=("login",))
        assert mapper.classify("visit") == CommandKind.VISIT
        assert mapper.classify("login") == CommandKind.CUSTOM
        assert mapper.classify("wrap") == CommandKind.MANUAL
        assert mapper.classify("nope") == CommandKind.UNKNOWN

    def test_page_object_handle(self):
        mapper = CommandMapper(page_handle="this.page")
        mapped = mapper.map(_commands("cy.visit('/');")[0])
        assert mapped.statements == ["await this.page.goto('/');"]


# =========================================================================
# Tests: Static responses
# =========================================================================

class TestStaticResponses:
    def test_status_and_json_body(self):
        statements, markers, _ = _map_all("cy.intercept('POST', '/api/items', { statusCode: 201, body: { id: 1 } });")
        assert markers == []
        assert statements == [
            "await page.route('**/api/items', (route) => route.request().method() === 'POST'"
            " ? route.fulfill({ status: 201, json: { id: 1 } }) : route.continue());"
        ]

    def test_string_body_and_headers(self):
        statements, _, _ = _map_all(
            "cy.intercept('/api/text', { body: 'ok', headers: { 'x-a': '1' } });"
        )
        assert statements == [
            "await page.route('**/api/text', (route) => route.fulfill({ headers: { 'x-a': '1' }, body: 'ok' }));"
        ]

    def test_plain_object_is_json_body(self):
        statements, _, _ = _map_all("cy.intercept('/api/me', { name: 'bob' });")
        assert statements == ["await page.route('**/api/me', (route) => route.fulfill({ json: { name: 'bob' } }));"]

    def test_array_is_json_body(self):
        statements, _, _ = _map_all("cy.intercept('/api/list', [{ id: 1 }]);")
        assert statements == ["await page.route('**/api/list', (route) => route.fulfill({ json: [{ id: 1 }] }));"]

    def test_network_error_aborts(self):
        statements, _, _ = _map_all("cy.intercept('/api/items', { forceNetworkError: true });")
        assert statements == ["await page.route('**/api/items', (route) => route.abort());"]

    def test_untranslated_option_is_marked(self):
        statements, markers, _ = _map_all("cy.intercept('/api/items', { body: 'ok', delay: 500 });")
        assert len(markers) == 1
        assert markers[0].endswith("not translated: delay")
        assert statements[-1] == "await page.route('**/api/items', (route) => route.fulfill({ body: 'ok' }));"

    def test_response_from_variable_is_marked(self):
        statements, markers, _ = _map_all("cy.intercept('/api/items', response);")
        assert len(markers) == 1
        assert statements == markers


# =========================================================================
# Tests: then() callbacks and request values
# =========================================================================

class TestThenCallbacks:
    def test_value_is_bound_to_parameter(self):
        statements, markers, _ = _map_all(
            "cy.get('.count').invoke('text').then((text) => {\n  cy.get('#q').type(text);\n});"
        )
        assert markers == []
        assert statements == [
            "const text = (await page.locator('.count').textContent());",
            "await page.locator('#q').fill(text);",
        ]

    def test_locator_is_bound_to_parameter(self):
        statements, markers, notes = _map_all("cy.get('a').then(($a) => {\n  cy.visit('/x');\n});")
        assert markers == []
        assert statements == ["const $a = page.locator('a');", "await page.goto('/x');"]
        assert any("$a is a Locator" in n for n in notes)

    def test_callback_without_parameter_is_inlined(self):
        statements, markers, _ = _map_all("cy.visit('/').then(() => {\n  cy.get('#a').click();\n});")
        assert markers == []
        assert statements == ["await page.goto('/');", "await page.locator('#a').click();"]

    def test_repeated_parameter_gets_its_own_block(self):
        statements, _, _ = _map_all(
            "cy.url().then((value) => {\n  cy.log(value);\n});\n"
            "cy.title().then((value) => {\n  cy.log(value);\n});"
        )
        assert statements == [
            "const value = page.url();",
            "console.log(value);",
            "{\n  const value = await page.title();\n  console.log(value);\n}",
        ]

    def test_destructured_parameter_is_marked(self):
        statements, markers, _ = _map_all("cy.get('a').then(({ length }) => {\n  cy.log(length);\n});")
        assert len(markers) == 1
        assert "console.log(length);" in statements

    def test_request_yields_response_value(self):
        statements, markers, _ = _map_all("cy.request('/api/health').its('status').should('eq', 200);")
        assert markers == []
        (statement,) = statements
        assert statement.startswith("expect((await page.request.get('/api/health').then(async (response) => ({ status: ")
        assert statement.endswith("))).status).toBe(200);")

    def test_request_response_in_then(self):
        statements, markers, _ = _map_all(
            "cy.request('POST', '/api/users', { name: 'a' }).then((response) => {\n"
            "  cy.visit(`/users/${response.body.id}`);\n"
            "});"
        )
        assert markers == []
        assert statements[0].startswith(
            "const response = (await page.request.post('/api/users', { data: { name: 'a' } }).then("
        )
        assert statements[1] == "await page.goto(`/users/${response.body.id}`);"

    def test_unused_request_still_runs(self):
        statements, _, notes = _map_all("cy.request('DELETE', '/api/session');")
        assert statements == ["await page.request.delete('/api/session');"]
        assert notes == []


# =========================================================================
# Tests: Control flow and bindings
# =========================================================================

class TestControlFlow:
    def test_if_else_bodies_are_mapped_in_place(self):
        statements, markers, _ = _map_all(
            "if (admin) {\n  cy.visit('/admin');\n} else {\n  cy.get('#login').click();\n}"
        )
        assert markers == []
        assert statements == [
            "if (admin) {\n"
            "  await page.goto('/admin');\n"
            "} else {\n"
            "  await page.locator('#login').click();\n"
            "}"
        ]

    def test_for_of_loop(self):
        statements, markers, _ = _map_all("for (const path of paths) {\n  cy.visit(path);\n}")
        assert markers == []
        assert statements == ["for (const path of paths) {\n  await page.goto(path);\n}"]

    def test_foreach_callback_is_marked(self):
        statements, markers, _ = _map_all("['a', 'b'].forEach((item) => {\n  cy.contains(item).click();\n});")
        assert len(markers) == 1
        assert "callback now awaits; its caller does not wait for it" in markers[0]
        assert statements[1] == "['a', 'b'].forEach(async (item) => {\n  await page.getByText(item).click();\n});"

    def test_cypress_api_in_condition_is_marked(self):
        statements, markers, _ = _map_all("if (Cypress.env('MOBILE')) {\n  cy.viewport(375, 667);\n}")
        assert len(markers) == 1
        assert "Cypress API call" in markers[0]
        assert statements[1] == "if (Cypress.env('MOBILE')) {\n  await page.setViewportSize({ width: 375, height: 667 });\n}"

    def test_chain_bound_to_variable(self):
        statements, markers, notes = _map_all("const button = cy.get('#save');\nconst address = cy.url();")
        assert markers == []
        assert statements == ["const button = page.locator('#save');", "const address = page.url();"]
        assert any("button now holds a Locator" in n for n in notes)

    def test_binding_without_value_is_marked(self):
        statements, markers, _ = _map_all("const done = cy.visit('/');")
        assert statements[0] == "await page.goto('/');"
        assert len(markers) == 1
        assert "yields nothing to assign to done" in markers[0]

    def test_chain_inside_expression_is_commented_out(self):
        statements, markers, _ = _map_all("helper(cy.get('#a'));")
        assert len(markers) == 1
        assert statements == [markers[0], "// helper(cy.get('#a'));"]

    def test_cypress_api_in_raw_statement_is_marked(self):
        statements, markers, _ = _map_all("const token = Cypress.env('TOKEN');")
        assert len(markers) == 1
        assert statements == [markers[0], "const token = Cypress.env('TOKEN');"]
