"""Command/selector mapping.

Translates one `cy.<command>(...)` invocation plus its chained calls into
Playwright statements. Dispatch is table driven: top-level commands go
through CommandKind (with an explicit UNKNOWN variant) and chained links
through a method-name table. Anything without an entry becomes an inline
manual-conversion marker and processing moves on to the next link.
"""

import logging
import re
import textwrap
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from ..ast_parser.models import Argument, ArgumentKind, ChainedCall, CommandInvocation
from ..constants import DEFAULT_PAGE_HANDLE, marker
from ..exceptions import UnmappedConstruct
from .assertions import build_assertion
from .models import Alias, MappedCommand, SubjectKind
from .render import (
    glob_to_js_regex,
    is_function_literal,
    js_string,
    one_line,
    render_arg,
    render_args,
    render_chained,
    render_invocation,
)
from .selectors import locator_for

logger = logging.getLogger(__name__)


class CommandKind(str, Enum):
    VISIT = "visit"
    GET = "get"
    CONTAINS = "contains"
    URL = "url"
    TITLE = "title"
    LOCATION = "location"
    HASH = "hash"
    FOCUSED = "focused"
    WAIT = "wait"
    INTERCEPT = "intercept"
    RELOAD = "reload"
    GO = "go"
    VIEWPORT = "viewport"
    CLEAR_COOKIES = "clearCookies"
    SET_COOKIE = "setCookie"
    GET_COOKIE = "getCookie"
    CLEAR_LOCAL_STORAGE = "clearLocalStorage"
    FIXTURE = "fixture"
    LOG = "log"
    SCREENSHOT = "screenshot"
    SCROLL_TO = "scrollTo"
    REQUEST = "request"
    PAUSE = "pause"
    CLOCK = "clock"
    TICK = "tick"
    MANUAL = "manual"
    CUSTOM = "custom"
    UNKNOWN = "unknown"


COMMAND_KINDS: Dict[str, CommandKind] = {
    kind.value: kind
    for kind in CommandKind
    if kind not in (CommandKind.MANUAL, CommandKind.CUSTOM, CommandKind.UNKNOWN)
}

# Known Cypress commands that have no mechanical Playwright translation
MANUAL_COMMANDS = frozenset({
    "window", "document", "wrap", "task", "exec", "readFile", "writeFile",
    "session", "origin", "then", "stub", "spy", "debug", "server", "route",
    "clearAllCookies", "clearAllLocalStorage", "clearAllSessionStorage",
})

SPECIAL_KEYS: Dict[str, str] = {
    "enter": "Enter",
    "esc": "Escape",
    "tab": "Tab",
    "backspace": "Backspace",
    "del": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "pagedown": "PageDown",
    "uparrow": "ArrowUp",
    "downarrow": "ArrowDown",
    "leftarrow": "ArrowLeft",
    "rightarrow": "ArrowRight",
    "movetostart": "Home",
    "movetoend": "End",
    "selectall": "ControlOrMeta+A",
}

HOVER_EVENTS = frozenset({"mouseover", "mouseenter"})
HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})

_KEY_RE = re.compile(r"\{\{\}|\{([^{}]+)\}")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_PAGE_OBJECT_NEW_RE = re.compile(r"\bnew\s+([A-Z][\w$]*(?:Page|PageObject|PO))\(\s*\)")
_PAGE_OBJECT_CALL_RE = re.compile(r"^(?:this\.)?[A-Za-z_$][\w$]*(?:Page|PageObject|PO)\.[\w$]+\(")
_CHAI_EXPECT_RE = re.compile(r"^(?:expect|assert)\b.*\.(?:to|should)\.")
_CYPRESS_API_RE = re.compile(r"\bCypress\.")
_ALIAS_WORD_RE = re.compile(r"[^\w$]+(\w?)")

_INDENT = "  "

# Cypress StaticResponse keys with a route.fulfill() counterpart
_FULFILL_KEYS = ("statusCode", "headers", "fixture", "body", "forceNetworkError")
_STATIC_RESPONSE_KEYS = frozenset(_FULFILL_KEYS + ("delay", "delayMs", "throttleKbps"))


@dataclass
class _Chain:
    """Per-invocation interpreter state."""

    subject: SubjectKind
    target: str
    result: MappedCommand
    consumed: bool = False
    request: Optional[Alias] = None
    # Statement that keeps a VALUE chain's side effect when the value goes unused
    effect: Optional[str] = None


@dataclass
class CommandMapper:
    """Maps CommandInvocations to Playwright statements.

    One mapper is meant to live for one file: `.as()` aliases registered by
    earlier commands are resolved by later `cy.get('@x')` / `cy.wait('@x')`.

    Args:
        page_handle: expression for the Page object ("page" or "this.page")
        convert_assertions: when False, `.should()` links become markers
        custom_commands: names registered with Cypress.Commands.add
        scope: element root for lookups; differs from page_handle inside `.within()`

    `waited`, `promises` and `declared` describe the body being mapped (see
    begin_body) and are shared with child mappers.
    """

    page_handle: str = DEFAULT_PAGE_HANDLE
    convert_assertions: bool = True
    custom_commands: Iterable[str] = ()
    scope: Optional[str] = None
    aliases: Dict[str, Alias] = field(default_factory=dict)
    waited: Set[str] = field(default_factory=set)
    promises: Dict[str, str] = field(default_factory=dict)
    declared: Set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.custom_commands = frozenset(self.custom_commands)
        if self.scope is None:
            self.scope = self.page_handle
        self._commands: Dict[CommandKind, Callable[[CommandInvocation, MappedCommand], _Chain]] = {
            CommandKind.VISIT: self._visit,
            CommandKind.GET: self._get,
            CommandKind.CONTAINS: self._contains,
            CommandKind.URL: self._url,
            CommandKind.TITLE: self._title,
            CommandKind.LOCATION: self._location,
            CommandKind.HASH: self._hash,
            CommandKind.FOCUSED: self._focused,
            CommandKind.WAIT: self._wait,
            CommandKind.INTERCEPT: self._intercept,
            CommandKind.RELOAD: self._reload,
            CommandKind.GO: self._go,
            CommandKind.VIEWPORT: self._viewport,
            CommandKind.CLEAR_COOKIES: self._clear_cookies,
            CommandKind.SET_COOKIE: self._set_cookie,
            CommandKind.GET_COOKIE: self._get_cookie,
            CommandKind.CLEAR_LOCAL_STORAGE: self._clear_local_storage,
            CommandKind.FIXTURE: self._fixture,
            CommandKind.LOG: self._log,
            CommandKind.SCREENSHOT: self._screenshot,
            CommandKind.SCROLL_TO: self._scroll_to,
            CommandKind.REQUEST: self._request,
            CommandKind.PAUSE: self._pause,
            CommandKind.CLOCK: self._clock,
            CommandKind.TICK: self._tick,
            CommandKind.CUSTOM: self._custom,
        }
        self._links: Dict[str, Callable[[_Chain, ChainedCall], None]] = {
            "find": self._find,
            "get": self._chained_get,
            "first": self._first,
            "last": self._last,
            "eq": self._eq,
            "filter": self._filter,
            "not": self._not,
            "contains": self._chained_contains,
            "parent": self._parent,
            "parents": self._parents,
            "closest": self._closest,
            "children": self._children,
            "siblings": self._siblings,
            "next": self._next,
            "prev": self._prev,
            "within": self._within,
            "click": self._click,
            "dblclick": self._simple_action("dblclick"),
            "rightclick": self._rightclick,
            "type": self._type,
            "clear": self._simple_action("clear"),
            "check": self._check("check"),
            "uncheck": self._check("uncheck"),
            "select": self._select,
            "focus": self._simple_action("focus"),
            "blur": self._simple_action("blur"),
            "submit": self._submit,
            "scrollIntoView": self._scroll_into_view,
            "trigger": self._trigger,
            "selectFile": self._select_file,
            "should": self._should,
            "and": self._should,
            "as": self._as,
            "wait": self._chained_wait,
            "invoke": self._invoke,
            "its": self._its,
            "then": self._then,
            "each": self._callback_link,
            "spread": self._callback_link,
            "pause": self._chained_pause,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, name: str) -> CommandKind:
        if name in MANUAL_COMMANDS:
            return CommandKind.MANUAL
        kind = COMMAND_KINDS.get(name)
        if kind is not None:
            return kind
        if name in self.custom_commands:
            return CommandKind.CUSTOM
        return CommandKind.UNKNOWN

    def begin_body(self, commands: Iterable[CommandInvocation]) -> None:
        """Reset per-body state before mapping one test, hook or helper body.

        Route aliases that the body later waits on have their response
        promise started where the alias is registered, so the wait cannot
        miss a response triggered by an action in between.
        """
        self.waited.clear()
        self.waited.update(_waited_aliases(commands))
        self.promises.clear()
        self.declared.clear()

    def map(self, invocation: CommandInvocation) -> MappedCommand:
        """Map one invocation. Never raises for unmapped constructs."""
        result = MappedCommand()
        if invocation.is_compound:
            self._map_compound(invocation, result)
            return result
        if invocation.is_raw:
            self._map_raw(invocation, result)
            return result

        kind = self.classify(invocation.command)
        handler = self._commands.get(kind)
        if handler is None:
            reason = "has no Playwright equivalent" if kind == CommandKind.MANUAL else "is not a known command"
            logger.debug(f"Unmapped command cy.{invocation.command} at line {invocation.line}")
            self._mark(result, f"cy.{invocation.command}() {reason}: {render_invocation(invocation)}")
            return result

        try:
            chain = handler(invocation, result)
        except UnmappedConstruct as e:
            self._mark(result, f"{e}: {render_invocation(invocation)}")
            return result

        self._run_chain(chain, invocation.chained_calls)
        self._finish(chain, invocation)
        return result

    def map_chain(self, base_locator: str, chained_calls: Iterable[ChainedCall]) -> MappedCommand:
        """Apply chained calls to an already resolved locator expression."""
        result = MappedCommand()
        chain = _Chain(SubjectKind.LOCATOR, base_locator, result)
        self._run_chain(chain, chained_calls)
        return result

    def locator_expression(self, invocation: CommandInvocation) -> Optional[str]:
        """Locator expression for a chain that only looks elements up.

        Returns None when the chain performs an action, asserts, or cannot
        be fully mapped, i.e. whenever it is more than a lookup.
        """
        if invocation.is_raw or self.classify(invocation.command) not in (
            CommandKind.GET, CommandKind.CONTAINS, CommandKind.FOCUSED,
        ):
            return None
        result = MappedCommand()
        try:
            chain = self._commands[self.classify(invocation.command)](invocation, result)
        except UnmappedConstruct:
            return None
        self._run_chain(chain, invocation.chained_calls)
        if result.statements or chain.consumed or chain.subject != SubjectKind.LOCATOR:
            return None
        return chain.target

    def child(self, scope: Optional[str] = None) -> "CommandMapper":
        """Mapper sharing this one's aliases, optionally scoped to a locator."""
        return CommandMapper(
            page_handle=self.page_handle,
            convert_assertions=self.convert_assertions,
            custom_commands=self.custom_commands,
            scope=scope or self.page_handle,
            aliases=self.aliases,
            waited=self.waited,
            promises=self.promises,
            declared=self.declared,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _mark(result: MappedCommand, reason: str) -> None:
        line = marker(reason)
        result.statements.append(line)
        result.markers.append(line)

    def _run_chain(self, chain: _Chain, links: Iterable[ChainedCall]) -> None:
        for link in links:
            handler = self._links.get(link.method)
            if handler is None:
                logger.debug(f"Unmapped chained call .{link.method}() at line {link.line}")
                self._mark(chain.result, f"unmapped chained call {one_line(render_chained(link))}")
                continue
            try:
                handler(chain, link)
            except UnmappedConstruct as e:
                self._mark(chain.result, f"{e}: {one_line(render_chained(link))}")

    def _finish(self, chain: _Chain, invocation: CommandInvocation) -> None:
        if invocation.binding:
            self._bind(chain, invocation)
            return
        if chain.consumed:
            return
        if chain.subject == SubjectKind.LOCATOR:
            # A bare lookup still asserts that the element exists
            chain.result.statements.append(f"await {chain.target}.first().waitFor({{ state: 'attached' }});")
        elif chain.subject == SubjectKind.VALUE and chain.effect:
            chain.result.statements.append(chain.effect)
        elif chain.subject == SubjectKind.VALUE:
            chain.result.notes.append(f"result of cy.{invocation.command}() is not used")
        elif chain.subject == SubjectKind.REQUEST:
            chain.result.notes.append("cy.intercept() without a response or alias has no effect")

    def _subject_value(self, chain: _Chain) -> Optional[str]:
        """Expression for what the chain yields, or None when it yields nothing usable."""
        if chain.subject in (SubjectKind.LOCATOR, SubjectKind.VALUE):
            return chain.target
        if chain.subject == SubjectKind.URL:
            return f"{self.page_handle}.url()"
        if chain.subject == SubjectKind.TITLE:
            return f"await {self.page_handle}.title()"
        return None

    def _bind(self, chain: _Chain, invocation: CommandInvocation) -> None:
        name = invocation.binding.split()[-1]
        value = self._subject_value(chain)
        if value is None:
            self._mark(chain.result, f"cy.{invocation.command}() yields nothing to assign to {name}: "
                                     f"{render_invocation(invocation)}")
            return
        chain.result.statements.append(f"{invocation.binding} = {value};")
        self.declared.add(name)
        if chain.subject == SubjectKind.LOCATOR:
            chain.result.notes.append(f"{name} now holds a Locator; calls on it need await")

    def _declare(self, name: str) -> str:
        """Reserve a variable name in the current body."""
        variable, suffix = name, 2
        while variable in self.declared:
            variable, suffix = f"{name}{suffix}", suffix + 1
        self.declared.add(variable)
        return variable

    @staticmethod
    def _require(chain: _Chain, link: ChainedCall, *subjects: SubjectKind) -> None:
        if chain.subject not in subjects:
            raise UnmappedConstruct("chained call", f".{link.method}() on {chain.subject.value} subject")

    def _act(self, chain: _Chain, call: str) -> None:
        chain.result.statements.append(f"await {chain.target}.{call};")
        chain.consumed = True

    def _map_nested(self, chain: _Chain, commands: Iterable[CommandInvocation], scope: Optional[str]) -> None:
        child = self.child(scope)
        for nested in commands:
            chain.result.extend(child.map(nested))
        chain.consumed = True

    def _map_raw(self, invocation: CommandInvocation, result: MappedCommand) -> None:
        """Pass through statements that are not command chains."""
        lines = invocation.raw.split("\n")
        text = lines[0]
        if len(lines) > 1:
            text += "\n" + textwrap.dedent("\n".join(lines[1:]))
        if invocation.embedded:
            # Kept as comments; `cy` does not exist in the converted file
            self._mark(result, f"Cypress chain inside an expression needs manual conversion: "
                               f"{render_invocation(invocation)}")
            result.statements.append("\n".join(f"// {line}" for line in text.split("\n")))
            return
        if _CYPRESS_API_RE.search(text):
            self._mark(result, f"Cypress API call needs manual conversion: {render_invocation(invocation)}")
        if _CHAI_EXPECT_RE.match(text):
            self._mark(result, f"chai assertion needs a Playwright expect: {render_invocation(invocation)}")
            return
        text = _PAGE_OBJECT_NEW_RE.sub(lambda m: f"new {m.group(1)}({self.page_handle})", text)
        if _PAGE_OBJECT_CALL_RE.match(text):
            text = f"await {text}"
        result.statements.append(text)

    def _map_compound(self, invocation: CommandInvocation, result: MappedCommand) -> None:
        """Rebuild a branch, loop or callback statement around its mapped bodies."""
        if any(section.callback for section in invocation.sections):
            self._mark(result, f"callback now awaits; its caller does not wait for it: {render_invocation(invocation)}")
        framing = [s.header for s in invocation.sections] + [invocation.tail]
        if any(_CYPRESS_API_RE.search(text) for text in framing):
            self._mark(result, f"Cypress API call needs manual conversion: {render_invocation(invocation)}")

        child = self.child(self.scope)
        # Promises started inside a block are not visible after it
        child.promises = dict(self.promises)
        lines: List[str] = []
        for section in invocation.sections:
            lines.append(section.header)
            body = MappedCommand()
            for nested in section.commands:
                body.extend(child.map(nested))
            statements, body.statements = body.statements, []
            result.extend(body)
            lines.extend(f"{_INDENT}{line}" if line else "" for s in statements for line in s.split("\n"))
        lines.append(invocation.tail)
        result.statements.append("\n".join(lines))

    def _locator(self, arg: Argument, handle: str, result: MappedCommand) -> str:
        expression, note = locator_for(arg, handle)
        if note and note not in result.notes:
            result.notes.append(note)
        return expression

    # ------------------------------------------------------------------
    # Top-level commands
    # ------------------------------------------------------------------

    def _visit(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "visit() without url")
        if len(inv.args) > 1:
            result.notes.append("cy.visit() options are not translated")
        result.statements.append(f"await {self.page_handle}.goto({render_arg(inv.args[0])});")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _get(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "get() without selector")
        selector = inv.args[0]
        if len(inv.args) > 1:
            result.notes.append("cy.get() options are not translated")
        if selector.is_string and selector.value.startswith("@"):
            return self._resolve_alias(selector.value[1:], result)
        return _Chain(SubjectKind.LOCATOR, self._locator(selector, self.scope, result), result)

    def _resolve_alias(self, name: str, result: MappedCommand) -> _Chain:
        alias = self.aliases.get(name)
        if alias is None:
            raise UnmappedConstruct("alias", f"@{name}")
        if alias.kind == SubjectKind.REQUEST:
            raise UnmappedConstruct("alias", f"@{name} (intercepted request)")
        return _Chain(alias.kind, alias.expression, result)

    def _text_locator(self, args, handle: str, result: MappedCommand) -> str:
        if len(args) == 1 or (len(args) == 2 and args[1].kind == ArgumentKind.RAW and args[1].text.startswith("{")):
            if len(args) == 2:
                result.notes.append("cy.contains() options are not translated")
            return f"{handle}.getByText({render_arg(args[0])})"
        base = self._locator(args[0], handle, result)
        return f"{base}.filter({{ hasText: {render_arg(args[1])} }})"

    def _contains(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "contains() without text")
        return _Chain(SubjectKind.LOCATOR, self._text_locator(inv.args, self.scope, result), result)

    def _url(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        return _Chain(SubjectKind.URL, self.page_handle, result)

    def _title(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        return _Chain(SubjectKind.TITLE, self.page_handle, result)

    def _location(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if inv.args and inv.args[0].is_string:
            return _Chain(SubjectKind.VALUE, f"new URL({self.page_handle}.url()).{inv.args[0].value}", result)
        return _Chain(SubjectKind.VALUE, f"new URL({self.page_handle}.url())", result)

    def _hash(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        return _Chain(SubjectKind.VALUE, f"new URL({self.page_handle}.url()).hash", result)

    def _focused(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        return _Chain(SubjectKind.LOCATOR, f"{self.page_handle}.locator(':focus')", result)

    def _wait(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "wait() without argument")
        arg = inv.args[0]
        if arg.kind == ArgumentKind.NUMBER or arg.kind == ArgumentKind.IDENTIFIER:
            result.statements.append(f"await {self.page_handle}.waitForTimeout({render_arg(arg)});")
            result.notes.append("fixed cy.wait() converted to waitForTimeout; prefer waiting on a condition")
            return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)
        if arg.is_string and arg.value.startswith("@"):
            alias = self.aliases.get(arg.value[1:])
            if alias is None or alias.kind != SubjectKind.REQUEST:
                raise UnmappedConstruct("alias", arg.value)
            promise = self.promises.pop(alias.name, None)
            if promise is not None:
                result.statements.append(f"await {promise};")
            else:
                self._mark(result, f"waitForResponse for @{alias.name} starts after the action that triggers it; "
                                   "start it before that action")
                result.statements.append(f"await {self.page_handle}.waitForResponse({_response_predicate(alias)});")
            return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)
        raise UnmappedConstruct("command", f"wait({arg.text})")

    def _intercept(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        args = list(inv.args)
        method = None
        if len(args) >= 2 and args[0].is_string and args[0].value.upper() in HTTP_METHODS:
            method = args.pop(0).value.upper()
        if not args:
            raise UnmappedConstruct("command", "intercept() without url")
        url = args[0]
        if not url.is_string:
            raise UnmappedConstruct("command", f"intercept({url.text})")

        pattern = url.value if not url.value.startswith("/") else f"**{url.value}"
        alias = Alias(name="", kind=SubjectKind.REQUEST, url_pattern=pattern, method=method)
        chain = _Chain(SubjectKind.REQUEST, self.page_handle, result, request=alias)

        if len(args) > 1:
            response = args[1]
            if is_function_literal(response):
                raise UnmappedConstruct("command", "intercept() with a request handler")
            handler = self._route_handler(response, result)
            if method:
                handler = f"route.request().method() === {js_string(method)} ? {handler} : route.continue()"
            result.statements.append(f"await {self.page_handle}.route({js_string(pattern)}, (route) => {handler});")
            chain.consumed = True
        return chain

    def _route_handler(self, response: Argument, result: MappedCommand) -> str:
        """Translate a cy.intercept() static response into a route call.

        A string is the response body. An object is a StaticResponse when it
        uses any StaticResponse key, otherwise it is the JSON body itself.
        """
        if response.is_string:
            return f"route.fulfill({{ body: {render_arg(response)} }})"
        if response.kind == ArgumentKind.RAW and response.text.startswith("["):
            return f"route.fulfill({{ json: {response.text} }})"
        if response.properties is None:
            raise UnmappedConstruct("command", f"intercept() response {one_line(response.text)}")
        values = dict(response.properties)
        if not any(key in _STATIC_RESPONSE_KEYS for key in values):
            return f"route.fulfill({{ json: {response.text} }})"

        network_error = values.get("forceNetworkError")
        if network_error is not None and network_error.value is True:
            return "route.abort()"
        options = []
        if "statusCode" in values:
            options.append(f"status: {render_arg(values['statusCode'])}")
        if "headers" in values:
            options.append(f"headers: {render_arg(values['headers'])}")
        if "fixture" in values:
            fixture = values["fixture"]
            if not fixture.is_string:
                raise UnmappedConstruct("command", "intercept() fixture with a non-literal name")
            options.append(f"path: {js_string(_fixture_path(fixture.value))}")
        if "body" in values:
            body = values["body"]
            options.append(f"body: {render_arg(body)}" if body.is_string else f"json: {render_arg(body)}")

        unmapped = [key for key in values if key not in _FULFILL_KEYS]
        if unmapped:
            self._mark(result, f"cy.intercept() response options not translated: {', '.join(unmapped)}")
        return f"route.fulfill({{ {', '.join(options)} }})" if options else "route.fulfill()"

    def _reload(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        result.statements.append(f"await {self.page_handle}.reload();")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _go(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        direction = inv.args[0].value if inv.args else None
        if direction in ("back", -1):
            call = "goBack()"
        elif direction in ("forward", 1):
            call = "goForward()"
        else:
            raise UnmappedConstruct("command", f"go({inv.args[0].text if inv.args else ''})")
        result.statements.append(f"await {self.page_handle}.{call};")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _viewport(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if len(inv.args) < 2 or inv.args[0].is_string:
            raise UnmappedConstruct("command", "viewport preset")
        width, height = render_arg(inv.args[0]), render_arg(inv.args[1])
        result.statements.append(f"await {self.page_handle}.setViewportSize({{ width: {width}, height: {height} }});")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _clear_cookies(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        result.statements.append(f"await {self.page_handle}.context().clearCookies();")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _set_cookie(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if len(inv.args) < 2:
            raise UnmappedConstruct("command", "setCookie() without name and value")
        name, value = render_arg(inv.args[0]), render_arg(inv.args[1])
        result.statements.append(
            f"await {self.page_handle}.context().addCookies([{{ name: {name}, value: {value}, url: {self.page_handle}.url() }}]);"
        )
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _get_cookie(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "getCookie() without name")
        expression = f"(await {self.page_handle}.context().cookies()).find((c) => c.name === {render_arg(inv.args[0])})"
        return _Chain(SubjectKind.VALUE, expression, result)

    def _clear_local_storage(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        result.statements.append(f"await {self.page_handle}.evaluate(() => localStorage.clear());")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _fixture(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args or not inv.args[0].is_string:
            raise UnmappedConstruct("command", "fixture() with a non-literal path")
        if "import fs from 'fs';" not in result.imports:
            result.imports.append("import fs from 'fs';")
        expression = f"JSON.parse(fs.readFileSync({js_string(_fixture_path(inv.args[0].value))}, 'utf-8'))"
        return _Chain(SubjectKind.VALUE, expression, result)

    def _log(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        result.statements.append(f"console.log({render_args(inv.args)});")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _screenshot(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if inv.args and inv.args[0].is_string:
            path = js_string(f"screenshots/{inv.args[0].value}.png")
            result.statements.append(f"await {self.page_handle}.screenshot({{ path: {path} }});")
        else:
            result.statements.append(f"await {self.page_handle}.screenshot();")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _scroll_to(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        positions = {"top": "0, 0", "bottom": "0, document.body.scrollHeight"}
        if len(inv.args) >= 2 and all(a.kind == ArgumentKind.NUMBER for a in inv.args[:2]):
            coordinates = f"{inv.args[0].text}, {inv.args[1].text}"
        elif inv.args and inv.args[0].is_string and inv.args[0].value in positions:
            coordinates = positions[inv.args[0].value]
        else:
            raise UnmappedConstruct("command", f"scrollTo({render_args(inv.args)})")
        result.statements.append(f"await {self.page_handle}.evaluate(() => window.scrollTo({coordinates}));")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _request(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        args = list(inv.args)
        method = "GET"
        if len(args) >= 2 and args[0].is_string and args[0].value.upper() in HTTP_METHODS:
            method = args.pop(0).value.upper()
        if not args or not (args[0].is_string or args[0].kind == ArgumentKind.IDENTIFIER) or len(args) > 2:
            raise UnmappedConstruct("command", "request() with an options object")
        if len(args) == 2 and method == "GET":
            raise UnmappedConstruct("command", "request() with a body but no method")
        call = f"{self.page_handle}.request.{method.lower()}({render_arg(args[0])}"
        if len(args) == 2:
            call += f", {{ data: {render_arg(args[1])} }}"
        call += ")"
        # Yields the shape of a Cypress response: status, headers and a parsed body
        expression = (
            f"(await {call}.then(async (response) => ({{ status: response.status(), headers: response.headers(), "
            f"body: await response.json().catch(() => response.text()) }})))"
        )
        return _Chain(SubjectKind.VALUE, expression, result, effect=f"await {call};")

    def _pause(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        result.statements.append(f"await {self.page_handle}.pause();")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _clock(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if inv.args:
            result.statements.append(f"await {self.page_handle}.clock.install({{ time: {render_arg(inv.args[0])} }});")
        else:
            result.statements.append(f"await {self.page_handle}.clock.install();")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _tick(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        if not inv.args:
            raise UnmappedConstruct("command", "tick() without duration")
        result.statements.append(f"await {self.page_handle}.clock.runFor({render_arg(inv.args[0])});")
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    def _custom(self, inv: CommandInvocation, result: MappedCommand) -> _Chain:
        args = ", ".join([self.page_handle] + [render_arg(a) for a in inv.args])
        result.statements.append(f"await {inv.command}({args});")
        if inv.command not in result.helpers:
            result.helpers.append(inv.command)
        return _Chain(SubjectKind.NONE, self.page_handle, result, consumed=True)

    # ------------------------------------------------------------------
    # Chained calls: locator mutators
    # ------------------------------------------------------------------

    def _find(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "find() without selector")
        chain.target = self._locator(link.args[0], chain.target, chain.result)

    def _chained_get(self, chain: _Chain, link: ChainedCall) -> None:
        # A chained cy.get() queries from the scope root, not from the subject
        if not link.args:
            raise UnmappedConstruct("chained call", "get() without selector")
        chain.subject = SubjectKind.LOCATOR
        chain.target = self._locator(link.args[0], self.scope, chain.result)
        chain.consumed = False

    def _first(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".first()"

    def _last(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".last()"

    def _eq(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "eq() without index")
        chain.target += f".nth({render_arg(link.args[0])})"

    def _filter(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("chained call", "filter() with a callback")
        chain.target += f".and({self.page_handle}.locator({js_string(link.args[0].value)}))"

    def _not(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("chained call", "not() with a non-literal selector")
        chain.target += f".and({self.page_handle}.locator({js_string(':not(' + link.args[0].value + ')')}))"

    def _chained_contains(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "contains() without text")
        chain.target = self._text_locator(link.args, chain.target, chain.result)

    def _parent(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".locator('xpath=..')"

    def _parents(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args or not link.args[0].is_string:
            chain.target += ".locator('xpath=ancestor::*')"
            return
        chain.target = f"{self.page_handle}.locator({js_string(link.args[0].value)}).filter({{ has: {chain.target} }})"

    def _closest(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("chained call", "closest() without selector")
        chain.target = (
            f"{self.page_handle}.locator({js_string(link.args[0].value)}).filter({{ has: {chain.target} }}).last()"
        )

    def _children(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if link.args and link.args[0].is_string:
            chain.target += f".locator({js_string(':scope > ' + link.args[0].value)})"
        else:
            chain.target += ".locator(':scope > *')"

    def _siblings(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".locator('xpath=preceding-sibling::* | following-sibling::*')"

    def _next(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".locator('xpath=following-sibling::*[1]')"

    def _prev(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        chain.target += ".locator('xpath=preceding-sibling::*[1]')"

    def _within(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        self._map_nested(chain, link.callback_commands, scope=chain.target)

    # ------------------------------------------------------------------
    # Chained calls: actions
    # ------------------------------------------------------------------

    def _simple_action(self, method: str) -> Callable[[_Chain, ChainedCall], None]:
        def action(chain: _Chain, link: ChainedCall) -> None:
            self._require(chain, link, SubjectKind.LOCATOR)
            options = render_args(a for a in link.args if a.kind == ArgumentKind.RAW)
            self._act(chain, f"{method}({options})")
        return action

    def _check(self, method: str) -> Callable[[_Chain, ChainedCall], None]:
        def action(chain: _Chain, link: ChainedCall) -> None:
            self._require(chain, link, SubjectKind.LOCATOR)
            if link.args and link.args[0].kind != ArgumentKind.RAW:
                raise UnmappedConstruct("chained call", f"{method}() with values")
            self._act(chain, f"{method}({render_args(link.args)})")
        return action

    def _click(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        args = link.args
        if len(args) >= 2 and args[0].kind == ArgumentKind.NUMBER and args[1].kind == ArgumentKind.NUMBER:
            self._act(chain, f"click({{ position: {{ x: {args[0].text}, y: {args[1].text} }} }})")
            return
        if args and args[0].is_string:
            chain.result.notes.append(f"click position '{args[0].value}' is not translated")
            args = args[1:]
        self._act(chain, f"click({render_args(args)})")

    def _rightclick(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        self._act(chain, "click({ button: 'right' })")

    def _type(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "type() without text")
        if len(link.args) > 1:
            chain.result.notes.append("type() options are not translated")
        text = link.args[0]
        if not text.is_string:
            self._act(chain, f"fill({render_arg(text)})")
            return

        calls: List[str] = []
        position = 0
        for match in _KEY_RE.finditer(text.value):
            if match.start() > position:
                calls.append(self._typed_text(text.value[position:match.start()], first=not calls))
            if match.group(1) is None:
                calls.append(self._typed_text("{", first=not calls))
            else:
                key = SPECIAL_KEYS.get(match.group(1).lower())
                if key is None:
                    raise UnmappedConstruct("key sequence", "{" + match.group(1) + "}")
                calls.append(f"press({js_string(key)})")
            position = match.end()
        if position < len(text.value) or not calls:
            calls.append(self._typed_text(text.value[position:], first=not calls))
        for call in calls:
            self._act(chain, call)

    @staticmethod
    def _typed_text(value: str, first: bool) -> str:
        return f"fill({js_string(value)})" if first else f"pressSequentially({js_string(value)})"

    def _select(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "select() without value")
        self._act(chain, f"selectOption({render_arg(link.args[0])})")

    def _submit(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        self._act(chain, "evaluate((form) => form.requestSubmit())")

    def _scroll_into_view(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        self._act(chain, "scrollIntoViewIfNeeded()")

    def _trigger(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("chained call", "trigger() with a non-literal event")
        if len(link.args) > 1:
            chain.result.notes.append("trigger() event options are not translated")
        event = link.args[0].value
        if event in HOVER_EVENTS:
            self._act(chain, "hover()")
        else:
            self._act(chain, f"dispatchEvent({js_string(event)})")

    def _select_file(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        if not link.args:
            raise UnmappedConstruct("chained call", "selectFile() without file")
        self._act(chain, f"setInputFiles({render_arg(link.args[0])})")

    # ------------------------------------------------------------------
    # Chained calls: assertions, aliases, values
    # ------------------------------------------------------------------

    def _should(self, chain: _Chain, link: ChainedCall) -> None:
        if chain.subject in (SubjectKind.NONE, SubjectKind.REQUEST):
            raise UnmappedConstruct("assertion", f"on {chain.subject.value} subject")
        chain.consumed = True
        if not self.convert_assertions:
            self._mark(chain.result, f"assertion not converted: {one_line(render_chained(link))}")
            return
        statement = build_assertion(chain.subject.value, chain.target, link.args)
        chain.result.statements.append(statement)

    def _as(self, chain: _Chain, link: ChainedCall) -> None:
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("alias", "as() with a non-literal name")
        name = link.args[0].value
        if chain.subject == SubjectKind.REQUEST and chain.request is not None:
            alias = Alias(name, SubjectKind.REQUEST, url_pattern=chain.request.url_pattern,
                          method=chain.request.method)
            self.aliases[name] = alias
            if name in self.waited:
                promise = self._declare(_promise_name(name))
                chain.result.statements.append(
                    f"const {promise} = {self.page_handle}.waitForResponse({_response_predicate(alias)});"
                )
                self.promises[name] = promise
            chain.consumed = True
            return
        if chain.subject == SubjectKind.LOCATOR:
            self.aliases[name] = Alias(name, SubjectKind.LOCATOR, expression=chain.target)
            chain.result.notes.append(f"alias @{name} is inlined as a locator")
            chain.consumed = True
            return
        if chain.subject == SubjectKind.VALUE and _IDENTIFIER_RE.match(name):
            chain.result.statements.append(f"const {name} = {chain.target};")
            self.aliases[name] = Alias(name, SubjectKind.VALUE, expression=name)
            chain.consumed = True
            return
        raise UnmappedConstruct("alias", f"@{name} on {chain.subject.value} subject")

    def _chained_wait(self, chain: _Chain, link: ChainedCall) -> None:
        if not link.args or link.args[0].kind != ArgumentKind.NUMBER:
            raise UnmappedConstruct("chained call", "wait() without a duration")
        chain.result.statements.append(f"await {self.page_handle}.waitForTimeout({link.args[0].text});")

    def _invoke(self, chain: _Chain, link: ChainedCall) -> None:
        self._require(chain, link, SubjectKind.LOCATOR)
        name = link.args[0].value if link.args and link.args[0].is_string else None
        if name == "text":
            expression = f"await {chain.target}.textContent()"
        elif name == "val":
            expression = f"await {chain.target}.inputValue()"
        elif name == "attr" and len(link.args) > 1:
            expression = f"await {chain.target}.getAttribute({render_arg(link.args[1])})"
        else:
            raise UnmappedConstruct("chained call", f"invoke({render_args(link.args)})")
        chain.subject = SubjectKind.VALUE
        chain.target = f"({expression})"
        chain.consumed = False

    def _its(self, chain: _Chain, link: ChainedCall) -> None:
        if not link.args or not link.args[0].is_string:
            raise UnmappedConstruct("chained call", "its() with a non-literal property")
        prop = link.args[0].value
        if chain.subject == SubjectKind.LOCATOR and prop == "length":
            chain.target = f"(await {chain.target}.count())"
        elif chain.subject == SubjectKind.VALUE and all(_IDENTIFIER_RE.match(p) for p in prop.split(".")):
            chain.target = f"{chain.target}.{prop}"
        else:
            raise UnmappedConstruct("chained call", f"its('{prop}') on {chain.subject.value} subject")
        chain.subject = SubjectKind.VALUE
        chain.consumed = False

    def _then(self, chain: _Chain, link: ChainedCall) -> None:
        """Inline a `.then()` callback, binding its parameter to the yielded subject."""
        params = link.callback_params
        value = self._subject_value(chain)
        if len(params) > 1 or (params and (value is None or not _IDENTIFIER_RE.match(params[0]))):
            self._callback_link(chain, link)
            return

        nested = MappedCommand()
        shadowed = False
        if params:
            name = params[0]
            shadowed = name in self.declared
            self.declared.add(name)
            nested.statements.append(f"const {name} = {value};")
            if chain.subject == SubjectKind.LOCATOR:
                nested.notes.append(f"{name} is a Locator here, not a jQuery element")
        child = self.child(self.scope)
        for command in link.callback_commands:
            nested.extend(child.map(command))

        if shadowed:
            lines = [line for statement in nested.statements for line in statement.split("\n")]
            nested.statements = ["\n".join(["{"] + [f"{_INDENT}{line}" if line else "" for line in lines] + ["}"])]
        chain.result.extend(nested)
        chain.consumed = True

    def _callback_link(self, chain: _Chain, link: ChainedCall) -> None:
        # Cypress yields a jQuery/wrapped value here; only the nested commands are mechanical
        self._mark(chain.result, f"callback needs manual conversion: {one_line(render_chained(link))}")
        chain.consumed = True
        self._map_nested(chain, link.callback_commands, scope=None)

    def _chained_pause(self, chain: _Chain, link: ChainedCall) -> None:
        chain.result.statements.append(f"await {self.page_handle}.pause();")


def _waited_aliases(commands: Iterable[CommandInvocation]) -> Set[str]:
    """Names of the aliases a body waits on with `cy.wait('@name')`, nested bodies included."""
    names: Set[str] = set()
    for invocation in commands:
        if invocation.command == CommandKind.WAIT.value:
            names.update(a.value[1:] for a in invocation.args if a.is_string and a.value.startswith("@"))
        for section in invocation.sections:
            names |= _waited_aliases(section.commands)
        for link in invocation.chained_calls:
            names |= _waited_aliases(link.callback_commands)
    return names


def _response_predicate(alias: Alias) -> str:
    predicate = f"{glob_to_js_regex(alias.url_pattern)}.test(response.url())" if alias.url_pattern else "true"
    if alias.method:
        predicate += f" && response.request().method() === {js_string(alias.method)}"
    return f"(response) => {predicate}"


def _promise_name(alias: str) -> str:
    """`get-users` -> `getUsersResponse`."""
    name = _ALIAS_WORD_RE.sub(lambda m: m.group(1).upper(), alias)
    if not name or name[0].isdigit():
        name = "_" + name
    return name + "Response"


def _fixture_path(name: str) -> str:
    if "." not in name.rsplit("/", 1)[-1]:
        name += ".json"
    return "tests/fixtures/" + name
