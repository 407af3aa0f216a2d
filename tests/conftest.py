"""
Shared fixtures: a throwaway SQLite database, a scripted HTTP client and sample panel pages.
"""
from typing import Any, Dict, List, Optional, Tuple

import pytest
import requests

from poolmon.core import db as core_db

LOGIN_PAGE = """
<html><body>
<form method="post" action="./Login.aspx" id="form1">
  <input type="hidden" name="__VIEWSTATE" value="vs-123" />
  <input type="hidden" name="__VIEWSTATEGENERATOR" value="C2EE9ABB" />
  <input type="hidden" name="__EVENTVALIDATION" value="ev-456" />
  <input type="text" name="ctl00$ContentPlaceHolder1$txtLoginName" />
  <input type="password" name="ctl00$ContentPlaceHolder1$txtPassword" />
  <input type="submit" name="ctl00$ContentPlaceHolder1$btnLogin" value="Sign In" />
</form>
</body></html>
"""

LOGIN_FAILED_PAGE = """
<html><body>
<div class="alert-danger">Invalid user name or password</div>
<form method="post" action="./Login.aspx">
  <input type="text" name="ctl00$ContentPlaceHolder1$txtLoginName" />
  <input type="password" name="ctl00$ContentPlaceHolder1$txtPassword" />
</form>
</body></html>
"""

WELCOME_PAGE = "<html><body><h1>My Pool</h1><a href='/Logout.aspx'>Sign out</a></body></html>"

DASHBOARD_PAGE = """
<html><body>
<span id="ctl00_ContentPlaceHolder1_lblTempTarget">Target: 84 &deg;F</span>
<span id="ctl00_ContentPlaceHolder1_lblTempActual">82.5 &deg;F</span>
<span id="ctl00_ContentPlaceHolder1_lblAirTemp">Air 77&deg;F</span>
</body></html>
"""

FILTER_PAGE_ON = """
<html><body>
<div id="ctl00_ContentPlaceHolder1_divfilterStatus">Filter Pump is ON</div>
<div id="ctl00_ContentPlaceHolder1_divPump">Running at 65%</div>
</body></html>
"""

FILTER_PAGE_OFF = FILTER_PAGE_ON.replace("is ON", "is OFF").replace("Running at 65%", "Idle")

HEATER_PAGE = """
<html><body>
<span id="lblMinTargetTemp">65</span>
<span id="lblTemp">84</span>
<span id="lblMaxTargetTemp">104</span>
<span id="lblActualTemp">82</span>
<input type="radio" name="rdoHeaterOn" checked="checked" />
<input type="radio" name="rdoHeaterOff" />
</body></html>
"""

CHLORINATOR_PAGE = """
<html><body>
<div class="boxchlppm">salt level 2897 ppm</div>
<span id="lbAverageSalt">2900 ppm</span>
<span id="lbCellTemp">81.2 F</span>
<span id="lbCellVoltage">23.4 V</span>
<span id="lbCellCurrent">4.1 A</span>
<span id="lbCellType">T-CELL-15</span>
</body></html>
"""

LIGHTS_PAGE = """
<html><body>
<span id="lightstatus">On</span>
<span id="lightbrightness">80%</span>
<input type="checkbox" checked="checked" />
</body></html>
"""

SCHEDULES_PAGE = """
<html><body>
<table>
  <tr><th>Name</th><th>Start Time</th><th>End Time</th><th>Setting</th><th>Repeat</th><th>Status</th></tr>
  <tr><td>Filter Pump</td><td>08:00 AM</td><td>06:00 PM</td><td>65%</td><td>Daily</td><td>Enabled</td></tr>
  <tr><td>Pool Light</td><td>07:30 PM</td><td>10:00 PM</td><td>Blue</td><td>Weekends</td><td>Disabled</td></tr>
  <tr><td colspan="6">footer</td></tr>
</table>
</body></html>
"""

PANEL_PAGES = {
    "Dashboard.aspx": DASHBOARD_PAGE,
    "Filter_Setting.aspx": FILTER_PAGE_ON,
    "Heater_Setting.aspx": HEATER_PAGE,
    "Chlorinator_Setting.aspx": CHLORINATOR_PAGE,
    "Light_Setting.aspx": LIGHTS_PAGE,
    "Bow_Schedule_List.aspx": SCHEDULES_PAGE,
}


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200, json_data: Any = None, url: str = ""):
        self.text = text
        self.status_code = status_code
        self._json = json_data
        self.url = url

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error for {self.url}")


class FakeHttp:
    """Stands in for requests.Session: responses are chosen by URL substring, first match wins.

    A route value may be a FakeResponse, a str (HTML body), a dict (JSON body),
    an exception instance (raised), or a list of those consumed in order.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.headers: Dict[str, str] = {}
        self.cookies = requests.cookies.RequestsCookieJar()

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        for fragment, outcome in self.routes.items():
            if fragment in url:
                if isinstance(outcome, list):
                    outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
                if isinstance(outcome, Exception):
                    raise outcome
                if isinstance(outcome, FakeResponse):
                    outcome.url = url
                    return outcome
                if isinstance(outcome, dict):
                    return FakeResponse(json_data=outcome, url=url)
                return FakeResponse(text=outcome, url=url)
        return FakeResponse(status_code=404, url=url)

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self.request("GET", url, **kwargs)

    def calls_to(self, fragment: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [call for call in self.calls if fragment in call[1]]


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database per test."""
    core_db.dispose_db()
    core_db.init_db(db_url=f"sqlite:///{tmp_path / 'poolmon-test.db'}")
    yield
    core_db.dispose_db()


@pytest.fixture
def panel_http():
    """HTTP client serving a working login and every panel page."""
    routes = {"Login.aspx": [LOGIN_PAGE, WELCOME_PAGE]}
    routes.update(PANEL_PAGES)
    return FakeHttp(routes)
