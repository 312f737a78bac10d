"""cy2pw: Cypress to Playwright test converter."""

__version__ = "0.1.0"
