"""Tests for the Cypress source parser."""

import pytest

from cy2pw.core.ast_parser import (
    ArgumentKind,
    detect_language,
    extract_custom_commands,
    is_test_file,
    parse_source,
)
from cy2pw.core.exceptions import SourceSyntaxError


# =========================================================================
# Sample Cypress sources
# =========================================================================

LOGIN_SPEC = '''
describe('Login', () => {
  beforeEach(() => {
    cy.visit('/login');
  });

  it('logs in', () => {
    cy.get('[data-testid="u"]').type('bob');
    cy.get('[data-testid="go"]').click();
  });

  context('errors', () => {
    it('shows message', () => {
      cy.contains('Invalid').should('be.visible');
    });
  });
});
'''

TOP_LEVEL_CASES = '''
before(() => {
  cy.visit('/');
});

it('first', () => {
  cy.get('h1').should('have.text', 'Home');
});

describe('nested', () => {
  it('second', () => {});
});
'''

MODIFIERS = '''
describe.only('focused', () => {
  it.skip('skipped', () => {});
  xit('also skipped', () => {});
  it('pending');
});
'''

ARGUMENTS = '''
it('args', () => {
  cy.wait(500);
  cy.get(selector, { timeout: 1000 });
  cy.get(`#plain`).check(true);
  cy.clearCookies(null);
});
'''

RAW_STATEMENTS = '''
it('mixed', () => {
  const user = { name: 'bob' };
  cy.get('#name').type(user.name);
});
'''

WITHIN = '''
it('scoped', () => {
  cy.get('form').within(() => {
    cy.get('input').type('x');
  });
});
'''

COMMANDS_FILE = '''
Cypress.Commands.add('login', (user, pass) => {
  cy.get('#user').type(user);
  cy.get('#pass').type(pass);
});

Cypress.Commands.overwrite('visit', (originalFn, url) => originalFn(url));
'''

BROKEN = '''
describe('broken', () => {
  it('x', () => {
    cy.get('a'.click();
  });
'''

CONTROL_FLOW = '''
it('branches', () => {
  const button = cy.get('#save');
  if (admin) {
    cy.visit('/admin');
  } else if (guest) cy.visit('/guest');
  else {
    cy.get('#login').click();
  }
  items.forEach((item) => cy.contains(item).click());
  helper(cy.get('#a'));
  cy.get('li').then(($li) => {
    cy.log('x');
  });
});
'''

INTERCEPTS = '''
it('mocks', () => {
  cy.intercept('/api', { statusCode: 500, 'x-key': 1, body });
  cy.intercept('/api', { [key]: 1 });
});
'''


# =========================================================================
# Tests: Language detection
# =========================================================================

class TestLanguageDetection:
    def test_javascript(self):
        assert detect_language("cypress/e2e/login.cy.js") == "javascript"

    def test_typescript(self):
        assert detect_language("login.cy.ts") == "typescript"

    def test_tsx(self):
        assert detect_language("component.cy.tsx") == "tsx"

    def test_unknown(self):
        assert detect_language("fixture.json") is None

    def test_test_file_patterns(self):
        assert is_test_file("cypress/e2e/login.cy.js")
        assert not is_test_file("cypress/support/commands.js")


# =========================================================================
# Tests: Suite structure
# =========================================================================

class TestSuiteStructure:
    def test_nested_suites(self):
        suites = parse_source(LOGIN_SPEC)
        assert len(suites) == 1
        login = suites[0]
        assert login.name == "Login"
        assert [h.kind for h in login.hooks] == ["beforeEach"]
        assert [c.name for c in login.cases] == ["logs in"]
        assert [s.name for s in login.suites] == ["errors"]
        assert login.suites[0].cases[0].name == "shows message"

    def test_case_count(self):
        suites = parse_source(LOGIN_SPEC)
        assert sum(s.case_count() for s in suites) == 2

    def test_top_level_cases_use_anonymous_root(self):
        suites = parse_source(TOP_LEVEL_CASES)
        assert len(suites) == 1
        root = suites[0]
        assert root.is_anonymous
        assert [c.name for c in root.cases] == ["first"]
        assert [h.kind for h in root.hooks] == ["before"]
        assert [s.name for s in root.suites] == ["nested"]
        assert root.case_count() == 2

    def test_modifiers_and_pending(self):
        suite = parse_source(MODIFIERS)[0]
        assert suite.modifier == "only"
        skipped, prefixed, pending = suite.cases
        assert skipped.modifier == "skip"
        assert prefixed.modifier == "skip"
        assert prefixed.name == "also skipped"
        assert pending.pending
        assert pending.commands == ()

    def test_empty_source(self):
        assert parse_source("") == []

    def test_syntax_error(self):
        with pytest.raises(SourceSyntaxError) as excinfo:
            parse_source(BROKEN, "broken.cy.js")
        assert excinfo.value.file_path == "broken.cy.js"
        assert excinfo.value.line >= 1

    def test_typescript_source(self):
        source = "describe('typed', () => {\n  it('t', () => {\n    const n: number = 1;\n    cy.visit('/');\n  });\n});\n"
        suites = parse_source(source, "typed.cy.ts")
        case = suites[0].cases[0]
        assert case.commands[0].is_raw
        assert case.commands[1].command == "visit"


# =========================================================================
# Tests: Command chains
# =========================================================================

class TestCommandChains:
    def test_chain_order(self):
        case = parse_source(LOGIN_SPEC)[0].cases[0]
        first, second = case.commands
        assert first.command == "get"
        assert first.args[0].value == '[data-testid="u"]'
        assert [c.method for c in first.chained_calls] == ["type"]
        assert first.chained_calls[0].args[0].value == "bob"
        assert second.chained_calls[0].method == "click"

    def test_line_numbers(self):
        case = parse_source(LOGIN_SPEC)[0].cases[0]
        assert case.commands[0].line == 8
        assert case.commands[1].line == 9

    def test_argument_kinds(self):
        commands = parse_source(ARGUMENTS)[0].cases[0].commands
        wait, get, check, clear = commands
        assert wait.args[0].kind == ArgumentKind.NUMBER
        assert wait.args[0].value == 500
        assert get.args[0].kind == ArgumentKind.IDENTIFIER
        assert get.args[1].kind == ArgumentKind.RAW
        assert get.args[1].text == "{ timeout: 1000 }"
        assert check.args[0].kind == ArgumentKind.STRING
        assert check.args[0].value == "#plain"
        assert check.chained_calls[0].args[0].kind == ArgumentKind.BOOLEAN
        assert clear.args[0].kind == ArgumentKind.NULL

    def test_raw_statements_pass_through(self):
        commands = parse_source(RAW_STATEMENTS)[0].cases[0].commands
        assert commands[0].is_raw
        assert commands[0].raw == "const user = { name: 'bob' };"
        assert commands[1].command == "get"
        assert commands[1].chained_calls[0].args[0].kind == ArgumentKind.RAW

    def test_callback_commands(self):
        command = parse_source(WITHIN)[0].cases[0].commands[0]
        within = command.chained_calls[0]
        assert within.method == "within"
        assert [c.command for c in within.callback_commands] == ["get"]

    def test_object_literal_properties(self):
        first, second = parse_source(INTERCEPTS)[0].cases[0].commands
        properties = first.args[1].properties
        assert [key for key, _ in properties] == ["statusCode", "x-key", "body"]
        assert properties[0][1].value == 500
        assert properties[2][1].kind == ArgumentKind.IDENTIFIER
        # computed keys cannot be read statically
        assert second.args[1].properties is None


class TestControlFlow:
    def _commands(self):
        return parse_source(CONTROL_FLOW)[0].cases[0].commands

    def test_statement_kinds(self):
        bound, branch, loop, embedded, then = self._commands()
        assert bound.command == "get"
        assert bound.binding == "const button"
        assert branch.is_compound and loop.is_compound
        assert embedded.is_raw and embedded.embedded
        assert embedded.raw == "helper(cy.get('#a'));"
        assert then.chained_calls[0].callback_params == ("$li",)

    def test_branches_keep_their_structure(self):
        branch = self._commands()[1]
        assert [s.header for s in branch.sections] == ["if (admin) {", "} else if (guest) {", "}\nelse {"]
        assert branch.tail == "}"
        assert [c.command for s in branch.sections for c in s.commands] == ["visit", "visit", "get"]
        assert not any(s.callback for s in branch.sections)

    def test_callback_body_becomes_async(self):
        loop = self._commands()[2]
        (section,) = loop.sections
        assert section.header == "items.forEach(async (item) => {"
        assert section.callback
        assert [c.command for c in section.commands] == ["contains"]
        assert loop.tail == "});"


# =========================================================================
# Tests: Custom commands
# =========================================================================

class TestCustomCommands:
    def test_registrations(self):
        commands = extract_custom_commands(COMMANDS_FILE)
        assert [c.name for c in commands] == ["login", "visit"]
        login, visit = commands
        assert login.kind == "add"
        assert login.parameters == ("user", "pass")
        assert [c.command for c in login.commands] == ["get", "get"]
        assert visit.kind == "overwrite"
        assert visit.parameters == ("originalFn", "url")
