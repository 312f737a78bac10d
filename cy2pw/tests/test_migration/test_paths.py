"""Tests for output path layout."""

from cy2pw.core.migration import output_path_for, remap_import_specifier
from cy2pw.core.migration.paths import rename_spec


class TestRenames:
    def test_spec_suffix(self):
        assert rename_spec("login.cy.ts") == "login.spec.ts"
        assert rename_spec("login.cy.jsx") == "login.spec.jsx"
        assert rename_spec("commands.js") == "commands.js"

    def test_e2e_folder(self):
        assert output_path_for("cypress/e2e/auth/login.cy.js") == "tests/auth/login.spec.js"

    def test_integration_folder(self):
        assert output_path_for("cypress/integration/login.cy.js") == "tests/login.spec.js"

    def test_support_and_pages(self):
        assert output_path_for("cypress/support/commands.js") == "tests/support/commands.js"
        assert output_path_for("cypress/page-objects/Login.js") == "tests/pages/Login.js"
        assert output_path_for("cypress/fixtures/user.json") == "tests/fixtures/user.json"

    def test_source_root_is_cypress_folder(self):
        assert output_path_for("e2e/login.cy.js") == "tests/login.spec.js"

    def test_disabled(self):
        path = output_path_for("cypress/e2e/login.cy.js", rename_spec_suffix=False, remap_directories=False)
        assert path == "cypress/e2e/login.cy.js"

    def test_unrelated_path(self):
        assert output_path_for("src/utils/date.js") == "src/utils/date.js"


class TestImportRemapping:
    def test_page_object_import(self):
        result = remap_import_specifier("../pages/LoginPage", "cypress/e2e/login.cy.js")
        assert result == "./pages/LoginPage"

    def test_nested_spec(self):
        result = remap_import_specifier("../../support/utils", "cypress/e2e/auth/login.cy.js")
        assert result == "../support/utils"

    def test_bare_specifier_untouched(self):
        assert remap_import_specifier("lodash", "cypress/e2e/login.cy.js") is None

    def test_outside_project_untouched(self):
        assert remap_import_specifier("../../../shared/x", "cypress/e2e/login.cy.js") is None
