"""
Login form discovery for the DRS login page.

The login page is not under our control, so fields and buttons are found
by ranked heuristics. Each heuristic is a (label, predicate) pair over an
ElementInfo; banks are evaluated in order and the first match wins.
"""
from typing import Callable, List, Optional, Sequence, Tuple
import logging
import re

from drs_sync.connectors.dom import ElementInfo

logger = logging.getLogger(__name__)

Predicate = Callable[[ElementInfo], bool]
Heuristic = Tuple[str, Predicate]

INPUT_SELECTOR = 'input'
CONTROL_SELECTOR = 'button, input[type="submit"], input[type="button"], [role="button"]'
LOGOUT_SELECTOR = 'a, button, [role="button"], [role="menuitem"]'

_LOGOUT_TEXT = re.compile(r'\b(log\s*-?\s*out|sign\s*-?\s*out|logoff|log\s+off)\b', re.I)


def _is_input(e: ElementInfo) -> bool:
    return e.tag == 'input'


def _typed(kind: str) -> Predicate:
    return lambda e: _is_input(e) and e.type == kind


def _attr_equals(attr: str, value: str) -> Predicate:
    return lambda e: _is_input(e) and getattr(e, attr).lower() == value.lower()


def _caption_contains(text: str) -> Predicate:
    return lambda e: e.tag in ('button', 'input', 'a') and text.lower() in e.caption.lower()


USERNAME_HEURISTICS: List[Heuristic] = [
    ('placeholder=Username', _attr_equals('placeholder', 'Username')),
    ('name=username', _attr_equals('name', 'username')),
    ('id=username', _attr_equals('id', 'username')),
    ('name=email', _attr_equals('name', 'email')),
    ('type=text', _typed('text')),
    ('type=email', _typed('email')),
]

PASSWORD_HEURISTICS: List[Heuristic] = [
    ('placeholder=Password', _attr_equals('placeholder', 'Password')),
    ('name=password', _attr_equals('name', 'password')),
    ('id=password', _attr_equals('id', 'password')),
    ('type=password', _typed('password')),
]

SUBMIT_HEURISTICS: List[Heuristic] = [
    ('caption~Sign in', _caption_contains('Sign in')),
    ('caption~Sign', _caption_contains('Sign')),
    ('caption~Log', _caption_contains('Log')),
    ('button[type=submit]', lambda e: e.tag == 'button' and e.type == 'submit'),
    ('input[type=submit]', _typed('submit')),
]


def first_match(
    heuristics: Sequence[Heuristic],
    elements: Sequence[ElementInfo],
) -> Optional[Tuple[str, ElementInfo]]:
    """
    Evaluate heuristics in rank order against elements in DOM order.

    Returns:
        (label, element) of the first heuristic that matches anything, or None
    """
    for label, predicate in heuristics:
        for element in elements:
            if predicate(element):
                return label, element
    return None


def has_password_field(inputs: Sequence[ElementInfo]) -> bool:
    """A password input is the sole signal that a login form is present."""
    return any(_is_input(e) and e.type == 'password' for e in inputs)


def has_logout_control(controls: Sequence[ElementInfo]) -> bool:
    return any(e.visible and _LOGOUT_TEXT.search(e.caption or '') for e in controls)


class LoginResolver:
    """
    Fills and submits a login form, then judges whether it worked.

    Success is heuristic: the password field is gone, or a logout-like
    control appeared. Either can be a false positive.
    """

    def __init__(
        self,
        username_heuristics: Sequence[Heuristic] = USERNAME_HEURISTICS,
        password_heuristics: Sequence[Heuristic] = PASSWORD_HEURISTICS,
        submit_heuristics: Sequence[Heuristic] = SUBMIT_HEURISTICS,
        settle_state: str = 'networkidle',
    ):
        self.username_heuristics = list(username_heuristics)
        self.password_heuristics = list(password_heuristics)
        self.submit_heuristics = list(submit_heuristics)
        self.settle_state = settle_state
        self.logger = logging.getLogger(f'{__name__}.LoginResolver')

    def login_form_present(self, browser) -> bool:
        return has_password_field(browser.describe_elements(INPUT_SELECTOR))

    def is_authenticated(self, browser) -> bool:
        if not self.login_form_present(browser):
            self.logger.debug('Password field gone')
            return True
        if has_logout_control(browser.describe_elements(LOGOUT_SELECTOR)):
            self.logger.debug('Logout control present')
            return True
        return False

    def resolve(self, browser, username: str, password: str) -> bool:
        """
        Attempt authentication on the current page.

        Args:
            browser: Browser capability set (WebScraperConnector or a fake)
            username: Login name
            password: Login password

        Returns:
            True if the page looks authenticated after submission
        """
        inputs = [e for e in browser.describe_elements(INPUT_SELECTOR) if e.visible]

        user_candidates = [e for e in inputs if e.type not in ('password', 'hidden')]
        user_match = first_match(self.username_heuristics, user_candidates)
        password_match = first_match(self.password_heuristics, inputs)

        if user_match is None or password_match is None:
            self.logger.warning(
                f'Login form incomplete (username={"found" if user_match else "missing"}, '
                f'password={"found" if password_match else "missing"})'
            )
            return False

        user_label, user_field = user_match
        password_label, password_field = password_match
        self.logger.info(f'Login fields: username via {user_label}, password via {password_label}')

        if not browser.fill(user_field, username):
            return False
        if not browser.fill(password_field, password):
            return False

        controls = [e for e in browser.describe_elements(CONTROL_SELECTOR) if e.visible]
        submit_match = first_match(self.submit_heuristics, controls)
        if submit_match is not None:
            self.logger.info(f'Submitting via {submit_match[0]}')
            submitted = browser.click(submit_match[1])
        else:
            self.logger.info('No submit control found, pressing Enter')
            submitted = browser.press(password_field, 'Enter')
        if not submitted:
            return False

        browser.wait_for_load(self.settle_state)

        authenticated = self.is_authenticated(browser)
        if authenticated:
            self.logger.info('Login looks successful')
        else:
            self.logger.warning('Password field still present after submit')
        return authenticated
