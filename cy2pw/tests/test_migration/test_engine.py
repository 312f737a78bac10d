"""Tests for project conversion."""

import json

from cy2pw.core.migration import ConversionEngine, FileKind, FileStatus
from cy2pw.setting import ConversionSettings


LOGIN_SPEC = '''import { LoginPage } from '../pages/LoginPage';

describe('Login', () => {
  it('logs in', () => {
    cy.login('bob');
    cy.get('[data-testid="go"]').click();
  });
});
'''

COMMANDS = '''Cypress.Commands.add('login', (user) => {
  cy.visit('/login');
  cy.get('#user').type(user);
});
'''

LOGIN_PAGE = '''export class LoginPage {
  open() {
    cy.visit('/login');
  }
}
'''

BROKEN_SPEC = '''describe('broken', () => {
  it('x', () => {
    cy.get('a'.click();
  });
'''

PARTIAL_SPEC = '''const users = ['a', 'b'];

describe('Partial', () => {
  it('clicks', () => {
    cy.get('#btn').frobnicate().click();
  });
});
'''

EXPECTED_LOGIN = """import { test, expect } from '@playwright/test';

import { LoginPage } from './pages/LoginPage';
import { login } from './support/commands';

test.describe('Login', () => {
  test('logs in', async ({ page }) => {
    await login(page, 'bob');
    await page.getByTestId('go').click();
  });
});
"""

EXPECTED_COMMANDS = """export async function login(page, user) {
  await page.goto('/login');
  await page.locator('#user').fill(user);
}
"""


def _project(tmp_path):
    source = tmp_path / "src"
    files = {
        "cypress/e2e/login.cy.js": LOGIN_SPEC,
        "cypress/e2e/broken.cy.js": BROKEN_SPEC,
        "cypress/e2e/partial.cy.js": PARTIAL_SPEC,
        "cypress/support/commands.js": COMMANDS,
        "cypress/pages/LoginPage.js": LOGIN_PAGE,
        "cypress/fixtures/user.json": '{"name": "bob"}',
        "node_modules/lib/index.js": "cy.visit('/');",
        "README.md": "# project",
    }
    for rel, text in files.items():
        path = source / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return source, tmp_path / "out"


class TestConvertProject:
    def test_reports(self, tmp_path):
        source, output = _project(tmp_path)
        report = ConversionEngine().convert_project(str(source), str(output))
        by_path = {f.source_path: f for f in report.files}

        assert "node_modules/lib/index.js" not in by_path
        assert by_path["README.md"].status == FileStatus.SKIPPED
        assert by_path["cypress/e2e/login.cy.js"].status == FileStatus.SUCCESS
        assert by_path["cypress/e2e/partial.cy.js"].status == FileStatus.PARTIAL
        assert by_path["cypress/e2e/broken.cy.js"].status == FileStatus.FAILED
        assert by_path["cypress/support/commands.js"].kind == FileKind.COMMANDS.value
        assert by_path["cypress/pages/LoginPage.js"].kind == FileKind.PAGE_OBJECT.value

    def test_spec_output(self, tmp_path):
        source, output = _project(tmp_path)
        ConversionEngine().convert_project(str(source), str(output))
        assert (output / "tests/login.spec.js").read_text() == EXPECTED_LOGIN

    def test_helper_module(self, tmp_path):
        source, output = _project(tmp_path)
        ConversionEngine().convert_project(str(source), str(output))
        assert (output / "tests/support/commands.js").read_text() == EXPECTED_COMMANDS

    def test_page_object_output(self, tmp_path):
        source, output = _project(tmp_path)
        ConversionEngine().convert_project(str(source), str(output))
        code = (output / "tests/pages/LoginPage.js").read_text()
        assert "constructor(page) {" in code
        assert "await this.page.goto('/login');" in code

    def test_fixture_copied(self, tmp_path):
        source, output = _project(tmp_path)
        ConversionEngine().convert_project(str(source), str(output))
        assert json.loads((output / "tests/fixtures/user.json").read_text()) == {"name": "bob"}

    def test_failed_file_writes_nothing(self, tmp_path):
        source, output = _project(tmp_path)
        report = ConversionEngine().convert_project(str(source), str(output))
        broken = next(f for f in report.files if f.source_path == "cypress/e2e/broken.cy.js")
        assert broken.output_path is None
        assert "broken.cy.js" in broken.error
        assert not (output / "tests/broken.spec.js").exists()

    def test_partial_markers_and_declarations(self, tmp_path):
        source, output = _project(tmp_path)
        report = ConversionEngine().convert_project(str(source), str(output))
        partial = next(f for f in report.files if f.source_path == "cypress/e2e/partial.cy.js")
        assert len(partial.markers) == 1
        code = (output / "tests/partial.spec.js").read_text()
        assert code.split("\n")[partial.markers[0].line - 1].strip() == partial.markers[0].text
        assert "const users = ['a', 'b'];" in code
        assert code.index("const users") < code.index("test.describe")

    def test_report_json(self, tmp_path):
        source, output = _project(tmp_path)
        report = ConversionEngine().convert_project(str(source), str(output))
        report_file = tmp_path / "report.json"
        report.write_json(str(report_file))
        data = json.loads(report_file.read_text())
        assert data["summary"]["failed"] == 1
        assert data["summary"]["markers"] == report.marker_count
        assert {f["status"] for f in data["files"]} >= {"success", "partial", "failed"}


class TestConvertFile:
    def test_unknown_custom_command_without_project(self, tmp_path):
        source, output = _project(tmp_path)
        spec = source / "cypress/e2e/login.cy.js"
        report = ConversionEngine().convert_file(str(spec), str(source), str(output))
        assert report.status == FileStatus.PARTIAL
        assert any("cy.login" in m.text for m in report.markers)

    def test_already_playwright_is_skipped(self, tmp_path):
        spec = tmp_path / "done.spec.ts"
        spec.write_text("import { test } from '@playwright/test';\n\ntest('x', async () => {});\n")
        report = ConversionEngine().convert_file(str(spec), str(tmp_path), str(tmp_path / "out"))
        assert report.status == FileStatus.SKIPPED

    def test_settings_disable_renames(self, tmp_path):
        source, output = _project(tmp_path)
        settings = ConversionSettings()
        settings.output.rename_spec_suffix = False
        settings.output.remap_directories = False
        spec = source / "cypress/e2e/partial.cy.js"
        report = ConversionEngine(settings).convert_file(str(spec), str(source), str(output))
        assert report.output_path == "cypress/e2e/partial.cy.js"
        assert (output / "cypress/e2e/partial.cy.js").exists()

    def test_spec_source_is_parsed_once(self, monkeypatch):
        from cy2pw.core.ast_parser.base import BaseSourceParser

        calls = []
        original = BaseSourceParser.parse_tree

        def counting(self, text, path=""):
            calls.append(path)
            return original(self, text, path)

        monkeypatch.setattr(BaseSourceParser, "parse_tree", counting)
        code, _ = ConversionEngine().convert_test_source(
            "const base = '/';\n\ndescribe('s', () => {\n  it('t', () => {\n    cy.visit(base);\n  });\n});\n",
            "cypress/e2e/s.cy.js",
            "tests/s.spec.js",
        )
        assert calls == ["cypress/e2e/s.cy.js"]
        assert "await page.goto(base);" in code
        assert "const base = '/';" in code
