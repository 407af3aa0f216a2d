"""
Extraction of panel values from the OmniLogic HTML pages.

Element ids are ASP.NET generated (ctl00_..._lblTempActual), so lookups match
on an id substring. Every extractor returns None for a value it cannot find.
"""
import re
from collections import namedtuple
from typing import List, Optional

from bs4 import BeautifulSoup

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_INTEGER = re.compile(r"\d+")

DashboardData = namedtuple("DashboardData", ["target_temp", "water_temp", "air_temp"], defaults=(None,) * 3)
FilterData = namedtuple("FilterData", ["pump_on", "diagnostic"], defaults=(None,) * 2)
HeaterData = namedtuple(
    "HeaterData",
    ["min_temp", "current_temp", "max_temp", "actual_temp", "status", "enabled"],
    defaults=(None,) * 5 + (False,),
)
ChlorinatorData = namedtuple(
    "ChlorinatorData",
    ["salt_instant", "salt_average", "cell_temp", "cell_voltage", "cell_current", "cell_type", "status", "enabled"],
    defaults=(None,) * 7 + (False,),
)
LightsData = namedtuple("LightsData", ["status", "brightness", "enabled"], defaults=(None, None, False))
Schedule = namedtuple("Schedule", ["name", "start_time", "end_time", "setting", "repeat", "status"])

AIR_TEMP_ID_HINTS = (
    "lblAirTemp", "AirTemp", "airTemp", "air_temp",
    "lblOutdoorTemp", "OutdoorTemp", "outdoorTemp",
    "lblAmbientTemp", "AmbientTemp", "ambientTemp",
)
SALT_ID_HINTS = ("boxchlppm", "lbInstantSalt", "InstantSalt", "chlppm", "SaltLevel")


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _text_by_id(soup: BeautifulSoup, fragment: str) -> Optional[str]:
    element = soup.select_one(f'[id*="{fragment}"]')
    if element is None:
        return None
    text = element.get_text(" ", strip=True)
    return text or None


def _number(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    match = _NUMBER.search(text)
    return float(match.group(0)) if match else None


def _checked_radio(soup: BeautifulSoup):
    return soup.select_one('input[type="radio"]:checked')


def parse_dashboard(html: str) -> DashboardData:
    soup = _soup(html)
    air_temp = None
    for hint in AIR_TEMP_ID_HINTS:
        air_temp = _number(_text_by_id(soup, hint))
        if air_temp is not None:
            break
    return DashboardData(
        target_temp=_number(_text_by_id(soup, "lblTempTarget")),
        water_temp=_number(_text_by_id(soup, "lblTempActual")),
        air_temp=air_temp,
    )


def parse_filter(html: str) -> FilterData:
    soup = _soup(html)
    status = _text_by_id(soup, "divfilterStatus")
    return FilterData(
        pump_on=("on" in status.lower()) if status else None,
        diagnostic=_text_by_id(soup, "divPump"),
    )


def parse_heater(html: str) -> HeaterData:
    soup = _soup(html)
    radio = _checked_radio(soup)
    return HeaterData(
        min_temp=_number(_text_by_id(soup, "lblMinTargetTemp")),
        current_temp=_number(_text_by_id(soup, "lblTemp")),
        max_temp=_number(_text_by_id(soup, "lblMaxTargetTemp")),
        actual_temp=_number(_text_by_id(soup, "lblActualTemp")),
        status=radio.get("name") if radio is not None else None,
        enabled=radio is not None,
    )


def parse_chlorinator(html: str) -> ChlorinatorData:
    soup = _soup(html)
    salt_text = None
    box = soup.select_one(".boxchlppm")
    if box is not None:
        salt_text = box.get_text(" ", strip=True)
    if not salt_text:
        salt_text = next((t for t in (_text_by_id(soup, h) for h in SALT_ID_HINTS) if t), None)
    salt_match = _INTEGER.search(salt_text) if salt_text else None
    radio = _checked_radio(soup)
    return ChlorinatorData(
        salt_instant=int(salt_match.group(0)) if salt_match else None,
        salt_average=_text_by_id(soup, "lbAverageSalt"),
        cell_temp=_number(_text_by_id(soup, "lbCellTemp")),
        cell_voltage=_number(_text_by_id(soup, "lbCellVoltage")),
        cell_current=_number(_text_by_id(soup, "lbCellCurrent")),
        cell_type=_text_by_id(soup, "lbCellType"),
        status=radio.get("name") if radio is not None else None,
        enabled=radio is not None,
    )


def parse_lights(html: str) -> LightsData:
    soup = _soup(html)
    return LightsData(
        status=_text_by_id(soup, "status"),
        brightness=_text_by_id(soup, "brightness"),
        enabled=soup.select_one('input[type="checkbox"]:checked') is not None,
    )


def parse_schedules(html: str) -> List[Schedule]:
    """Rows of any table whose headers mention name/time/setting; rows need six cells."""
    soup = _soup(html)
    schedules = []
    for table in soup.find_all("table"):
        headers = [th.get_text(strip=True).lower() for th in table.find_all("th")]
        if not any(word in h for h in headers for word in ("name", "time", "setting")):
            continue
        for row in table.find_all("tr"):
            cells = [td.get_text(" ", strip=True) or None for td in row.find_all("td")]
            if len(cells) < 6:
                continue
            schedule = Schedule(*cells[:6])
            if schedule.name and schedule.start_time:
                schedules.append(schedule)
    return schedules
