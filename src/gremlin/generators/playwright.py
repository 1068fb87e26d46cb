"""
Playwright Emitter

Renders fuzz tests as one Playwright TypeScript test file. This is a
mechanical template over the step list; all decisions about what to test
are made by the fuzz generator.
"""

import logging
from typing import List, Optional

from ..core.spec.types import ElementRef, Spec, utc_now_iso
from .fuzz import FuzzStep, FuzzTest, StepType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
LONG_PRESS_MS = 800
SCROLL_DELTA = 500
WAIT_MS = 1000

_JS_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def escape_js_string(value: str) -> str:
    """Escape a value for a single-quoted JavaScript string literal."""
    escaped = []
    for char in value:
        if char in _JS_ESCAPES:
            escaped.append(_JS_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7f:
            escaped.append(f"\\x{ord(char):02x}")
        else:
            escaped.append(char)
    return "".join(escaped)


def comment_text(value: str) -> str:
    """Flatten a value onto one line that cannot close a block comment."""
    for terminator in ("\r\n", "\r", "\n", "\u2028", "\u2029"):
        value = value.replace(terminator, " ")
    return value.replace("*/", "* /")


def locator_for(element: Optional[ElementRef], target: Optional[str] = None) -> str:
    """
    Best Playwright locator for an element.

    Priority: test id, accessibility label, role + text for buttons and
    links, text, CSS selector, XPath. A bare target string is treated as a
    test id; nothing at all falls back to the page body.
    """
    if element is not None:
        if element.test_id:
            return f"page.getByTestId('{escape_js_string(element.test_id)}')"
        if element.accessibility_label:
            return f"page.getByLabel('{escape_js_string(element.accessibility_label)}')"
        if element.text:
            text = escape_js_string(element.text)
            if element.type in ("button", "link"):
                return f"page.getByRole('{element.type}', {{ name: '{text}' }})"
            return f"page.getByText('{text}')"
        if element.css_selector:
            return f"page.locator('{escape_js_string(element.css_selector)}')"
        if element.xpath:
            return f"page.locator('xpath={escape_js_string(element.xpath)}')"

    if target:
        return f"page.getByTestId('{escape_js_string(target)}')"
    return "page.locator('body')"


def step_to_code(step: FuzzStep, spec: Spec, base_url: str) -> List[str]:
    """Playwright statements for one step."""
    locator = locator_for(step.element, step.target)

    if step.type is StepType.TAP:
        lines = [f"await {locator}.click();"]
    elif step.type is StepType.DOUBLE_TAP:
        lines = [f"await {locator}.dblclick();"]
    elif step.type is StepType.LONG_PRESS:
        lines = [f"await {locator}.click({{ delay: {LONG_PRESS_MS} }});"]
    elif step.type is StepType.SWIPE:
        lines = [f"await page.mouse.wheel({SCROLL_DELTA}, 0);"]
    elif step.type is StepType.SCROLL:
        lines = [f"await page.mouse.wheel(0, {SCROLL_DELTA});"]
    elif step.type is StepType.INPUT:
        lines = [f"await {locator}.fill('{escape_js_string(step.value or '')}');"]
    elif step.type is StepType.SUBMIT:
        if step.element is None and not step.target:
            lines = ["await page.keyboard.press('Enter');"]
        else:
            lines = [f"await {locator}.press('Enter');"]
    elif step.type is StepType.NAVIGATE:
        lines = [_navigate_code(step, spec, base_url)]
    elif step.type is StepType.BACK:
        lines = ["await page.goBack();"]
    elif step.type is StepType.WAIT:
        lines = [f"await page.waitForTimeout({step.delay_ms or WAIT_MS});"]
    else:
        lines = [f"// {comment_text(step.comment or 'unhandled step')}"]

    if step.delay_ms and step.type is not StepType.WAIT:
        lines.append(f"await page.waitForTimeout({step.delay_ms});")

    return lines


def _navigate_code(step: FuzzStep, spec: Spec, base_url: str) -> str:
    state = spec.get_state(step.state) if step.state else None
    route = state.metadata.route if state and state.metadata else None

    # Dynamic routes need concrete parameter values we do not have
    if route and "[" not in route:
        return f"await page.goto('{escape_js_string(base_url.rstrip('/') + route)}');"
    return f"// Navigate to {comment_text(step.state or 'unknown state')} (no route to open directly)"


def fuzz_test_to_playwright(test: FuzzTest, spec: Spec, base_url: str = DEFAULT_BASE_URL,
                            include_comments: bool = True) -> List[str]:
    """Lines of one ``test(...)`` block, unindented."""
    lines = []

    if include_comments:
        lines.append("/**")
        lines.append(f" * Fuzz Test: {comment_text(test.name)}")
        lines.append(f" * Strategy: {test.strategy.value}")
        lines.append(f" * Description: {comment_text(test.description)}")
        if test.bug_categories:
            lines.append(f" * May catch: {comment_text(', '.join(test.bug_categories))}")
        lines.append(" */")

    lines.append(f"test('{escape_js_string(test.name)}', async ({{ page }}) => {{")
    lines.append(f"  await page.goto('{escape_js_string(base_url)}');")
    lines.append("")

    for index, step in enumerate(test.steps, start=1):
        if include_comments:
            lines.append(f"  // Step {index}: {comment_text(step.description)}")
            if step.comment and step.type is not StepType.UNHANDLED:
                lines.append(f"  // {comment_text(step.comment)}")
        for code in step_to_code(step, spec, base_url):
            lines.append(f"  {code}")
        lines.append("")

    lines.append("});")
    return lines


def fuzz_tests_to_playwright(spec: Spec, tests: List[FuzzTest],
                             base_url: str = DEFAULT_BASE_URL,
                             include_comments: bool = True,
                             generated_at: Optional[str] = None) -> str:
    """
    Render fuzz tests as a complete Playwright test file.

    Args:
        spec: Spec the tests were generated from
        tests: Generated fuzz tests
        base_url: URL opened before every test
        include_comments: Emit header and per-step comments (unhandled
            markers are always emitted)
        generated_at: Timestamp for the header; defaults to now

    Returns:
        The file contents
    """
    lines = ["import { test, expect } from '@playwright/test';", ""]

    if include_comments:
        strategies = list(dict.fromkeys(t.strategy.value for t in tests))
        lines.append("/**")
        lines.append(f" * Auto-generated Fuzz Tests from spec: {comment_text(spec.name)}")
        lines.append(f" * Generated at: {generated_at or utc_now_iso()}")
        lines.append(f" * Number of tests: {len(tests)}")
        lines.append(f" * Strategies: {', '.join(strategies)}")
        lines.append(" */")
        lines.append("")

    lines.append(f"test.describe('{escape_js_string(spec.name)} - Fuzz Tests', () => {{")
    lines.append("  test.beforeEach(async ({ page }) => {")
    lines.append(f"    await page.goto('{escape_js_string(base_url)}');")
    lines.append("  });")
    lines.append("")

    for test in tests:
        for line in fuzz_test_to_playwright(test, spec, base_url, include_comments):
            lines.append(f"  {line}" if line else "")
        lines.append("")

    lines.append("});")
    lines.append("")

    logger.debug(f"Rendered {len(tests)} fuzz tests for '{spec.name}'")
    return "\n".join(lines)
