"""
AuthenticatedSession: one cookie-bearing HTTP identity against the OmniLogic web panel.

The login page is an ASP.NET WebForms page; its hidden state fields and the
names of the credential inputs are discovered from the page on every login.
"""
import logging
import threading
import time
from collections import namedtuple
from typing import Callable, Dict, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from poolmon.core.errors import AuthenticationError, NotAuthenticatedError, RequestTimeoutError
from poolmon.plugins.omnilogic.const import BROWSER_HEADERS, DEFAULT_BASE_URL, LOGIN_PATH

DEFAULT_TIMEOUT = 10
DEFAULT_MAX_IDLE_SECONDS = 24 * 60 * 60
LOGIN_ERROR_SELECTOR = ".error, .alert-danger, .validation-error"

AuthResult = namedtuple("AuthResult", ["success", "message"])

LoginForm = namedtuple(
    "LoginForm",
    [
        "action",          # form action, relative to the login page (None = post back to it)
        "hidden_fields",   # name -> value of every hidden input
        "username_field",  # discovered name of the user/login input
        "password_field",  # discovered name of the password input
        "submit_name",     # name of the submit control, or None
        "submit_value",    # value sent with the submit control
    ],
)

_USERNAME_HINTS = ("login", "user", "email", "name")


def discover_login_form(html: str) -> LoginForm:
    """Find the form around the password input and collect its field names.

    Raises AuthenticationError when no usable password/username input is present.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    password_input = soup.find("input", attrs={"type": "password", "name": True})
    if password_input is None:
        raise AuthenticationError("Could not find login form fields: no password input")
    form = password_input.find_parent("form") or soup

    hidden_fields: Dict[str, str] = {}
    text_inputs = []
    submit_name, submit_value = None, None
    for field in form.find_all("input", attrs={"name": True}):
        field_type = (field.get("type") or "text").lower()
        if field_type == "hidden":
            hidden_fields[field["name"]] = field.get("value", "")
        elif field_type in ("text", "email"):
            text_inputs.append(field["name"])
        elif field_type in ("submit", "image") and submit_name is None:
            submit_name, submit_value = field["name"], field.get("value") or "Login"
    if submit_name is None:
        button = form.find("button", attrs={"name": True})
        if button is not None:
            submit_name, submit_value = button["name"], button.get("value") or "Login"

    if not text_inputs:
        raise AuthenticationError("Could not find login form fields: no username input")
    username_field = next(
        (name for name in text_inputs if any(h in name.lower() for h in _USERNAME_HINTS)),
        text_inputs[0],
    )
    action = form.get("action") if getattr(form, "name", None) == "form" else None
    return LoginForm(action or None, hidden_fields, username_field, password_input["name"], submit_name, submit_value)


def login_succeeded(html: str) -> bool:
    """The panel answers a failed login with the login form again or an error box."""
    soup = BeautifulSoup(html or "", "html.parser")
    if soup.select(LOGIN_ERROR_SELECTOR):
        return False
    return soup.find("input", attrs={"type": "password"}) is None


class AuthenticatedSession:
    def __init__(
        self,
        session_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_idle_seconds: float = DEFAULT_MAX_IDLE_SECONDS,
        http: Optional[requests.Session] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.session_key = session_key
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.max_idle_seconds = max_idle_seconds
        self._clock = clock or time.time
        if http is None:
            http = requests.Session()
            http.headers.update(BROWSER_HEADERS)
        self.http = http
        self.authenticated = False
        self.last_activity = self._clock()
        self.logger = logging.getLogger(self.__class__.__name__)
        self._login_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"AuthenticatedSession({self.session_key!r}, authenticated={self.authenticated})"

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        started = time.monotonic()
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Request timed out after {time.monotonic() - started:.1f}s: {path}")
            raise RequestTimeoutError(path, self.timeout) from e
        self.last_activity = self._clock()
        self.logger.debug(f"{method} {path} -> {response.status_code} in {time.monotonic() - started:.2f}s")
        response.raise_for_status()
        return response

    def authenticate(self, username: str, password: str) -> AuthResult:
        """Log in with a form post built from the discovered login form.

        Returns AuthResult(False, ...) for rejected credentials. Raises
        AuthenticationError if the login page has no recognizable form, and
        transport errors (RequestTimeoutError, requests exceptions) as they come.
        """
        with self._login_lock:
            login_url = self._url(LOGIN_PATH)
            page = self._send("GET", LOGIN_PATH)
            form = discover_login_form(page.text)

            data = dict(form.hidden_fields)
            data[form.username_field] = username
            data[form.password_field] = password
            if form.submit_name:
                data[form.submit_name] = form.submit_value

            target = urljoin(login_url, form.action) if form.action else login_url
            response = self._send("POST", target, data=data, headers={"Referer": login_url})

            if login_succeeded(response.text):
                self.authenticated = True
                self.logger.info(f"Session {self.session_key}: authentication successful")
                return AuthResult(True, "Authentication successful")
            self.authenticated = False
            self.logger.warning(f"Session {self.session_key}: invalid credentials")
            return AuthResult(False, "Invalid credentials")

    def request(
        self,
        path: str,
        method: str = "GET",
        data=None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        if not self.authenticated:
            raise NotAuthenticatedError(f"Session {self.session_key} is not authenticated")
        return self._send(method, path, data=data, params=params, headers=headers)

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - self.last_activity > self.max_idle_seconds

    def logout(self) -> None:
        self.authenticated = False
        self.http.cookies.clear()
