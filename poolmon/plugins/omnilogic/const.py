"""
Remote panel endpoints and the identifiers that select one installation.
"""
from collections import namedtuple
from typing import Any, Dict, Tuple

DEFAULT_BASE_URL = "https://haywardomnilogic.com"

LOGIN_PATH = "/Login.aspx"
DASHBOARD_PATH = "/Module/UserManagement/Dashboard.aspx"
FILTER_PATH = "/Module/UserManagement/Filter_Setting.aspx"
HEATER_PATH = "/Module/UserManagement/Heater_Setting.aspx"
CHLORINATOR_PATH = "/Module/UserManagement/Chlorinator_Setting.aspx"
LIGHTS_PATH = "/Module/UserManagement/Light_Setting.aspx"
SCHEDULES_PATH = "/Module/UserManagement/Bow_Schedule_List.aspx"

DASHBOARD = "dashboard"
FILTER = "filter"
HEATER = "heater"
CHLORINATOR = "chlorinator"
LIGHTS = "lights"
SCHEDULES = "schedules"
WEATHER = "weather"

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

PanelIds = namedtuple("PanelIds", ["msp_id", "bow_id", "bow_system_id"], defaults=("", "", ""))


def panel_ids_from_config(config: Dict[str, Any]) -> PanelIds:
    return PanelIds(
        msp_id=str(config.get("msp_id") or ""),
        bow_id=str(config.get("bow_id") or ""),
        bow_system_id=str(config.get("bow_system_id") or ""),
    )


def subsystem_requests(ids: PanelIds) -> Dict[str, Tuple[str, Dict[str, str]]]:
    """subsystem -> (path, query params) for every panel page fetched per poll."""
    system = {"mspID": ids.msp_id, "bowID": ids.bow_id, "bowSystemID": ids.bow_system_id}
    return {
        DASHBOARD: (DASHBOARD_PATH, {"mspID": ids.msp_id}),
        FILTER: (FILTER_PATH, dict(system)),
        HEATER: (HEATER_PATH, dict(system)),
        CHLORINATOR: (CHLORINATOR_PATH, dict(system)),
        LIGHTS: (LIGHTS_PATH, dict(system)),
        SCHEDULES: (SCHEDULES_PATH, {"mspID": ids.msp_id, "bowID": ids.bow_id}),
    }
