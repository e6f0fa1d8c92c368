"""
Controller behind the Firebase forecast CRUD page.

One instance serves one view of one signed-in user. Every operation makes at
most one round trip to the Realtime Database, records a user-facing message,
and returns an OperationResult instead of raising.
"""
import copy
import datetime
import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import requests
from faker import Faker

from firebase_rtdb import FirebaseRtdb, FirebaseSession, parse_collection
from models import FirebaseWeatherForecast

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
LOADED = "loaded"
EDITING = "editing"

SAMPLE_DESCRIPTIONS = [
    "Sunny", "Mainly clear", "Partly cloudy", "Overcast", "Foggy", "Light drizzle",
    "Rain", "Heavy rain", "Light snow", "Snow", "Blowing snow", "Freezing rain",
    "Showers", "Thunderstorm", "Windy", "Hail",
]

MIN_SAMPLE_CELSIUS = -20
MAX_SAMPLE_CELSIUS = 50


class Message(NamedTuple):
    category: str  # "info" | "error"
    text: str


@dataclass
class OperationResult:
    ok: bool
    message: str
    status_code: Optional[int] = None


# Builds sample values for a forecast without touching any record.
def generate_sample_values(faker=None, today=None):
    faker = faker or Faker()
    today = today or datetime.date.today()
    return {
        "city": faker.city(),
        "date": today + datetime.timedelta(days=faker.random_int(1, 5)),
        "temperature_celsius": faker.random_int(MIN_SAMPLE_CELSIUS, MAX_SAMPLE_CELSIUS),
        "description": faker.random_element(SAMPLE_DESCRIPTIONS),
    }


class ForecastCrudView:
    def __init__(self, session: FirebaseSession, base_url: str | None = None, timeout: float | None = None):
        self.session = session
        self.base_url = base_url
        self.timeout = timeout
        self.store: FirebaseRtdb | None = None

        self.forecasts: List[FirebaseWeatherForecast] = []
        self.selected: FirebaseWeatherForecast | None = None
        self.selected_id: str | None = None
        self.dialog_open = False
        self.state = UNINITIALIZED
        self.messages: List[Message] = []

    # ---------- messages ----------
    def _info(self, text, status_code=None, ok=True):
        self.messages.append(Message("info", text))
        return OperationResult(ok=ok, message=text, status_code=status_code)

    def _error(self, text, status_code=None):
        self.messages.append(Message("error", text))
        return OperationResult(ok=False, message=text, status_code=status_code)

    def _close_dialog(self):
        self.dialog_open = False
        self.state = LOADED

    # ---------- lifecycle ----------
    def init(self):
        """Bind the endpoints to the current user and load their forecasts."""
        try:
            kwargs = {"base_url": self.base_url}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self.store = FirebaseRtdb(self.session, **kwargs)
        except ValueError as e:
            logger.warning("Cannot initialize forecast view: %s", e)
            return self._error(f"Error initializing forecasts: {e}")
        result = self.fetch()
        self.state = LOADED
        return result

    def on_open_new(self):
        self.selected = FirebaseWeatherForecast()
        self.selected_id = None
        self.dialog_open = True
        self.state = EDITING
        return OperationResult(ok=True, message="")

    def on_select(self, key):
        for forecast in self.forecasts:
            if forecast.name == key:
                self.selected = copy.copy(forecast)
                self.selected_id = key
                self.dialog_open = True
                self.state = EDITING
                return OperationResult(ok=True, message="")
        return self._error(f"No forecast found with name {key}")

    def on_generate_data(self, faker=None):
        """Fill the selected forecast with random sample values."""
        try:
            if self.selected is None:
                raise ValueError("no forecast is selected")
            values = generate_sample_values(faker)
            for field, value in values.items():
                setattr(self.selected, field, value)
        except Exception as e:
            logger.exception("Sample data generation failed")
            return self._error(f"Error generating data {e}")
        return OperationResult(ok=True, message="")

    # ---------- remote operations ----------
    def on_save(self):
        """Create the selected forecast if it has no name, otherwise overwrite it."""
        if self.selected is None:
            return self._error("Error saving data: no forecast is selected")
        if self.store is None:
            return self._error("Error saving data: forecasts have not been initialized")

        try:
            body = self.selected.to_json()
            if self.selected.is_new:
                response = self.store.push(body)
                if response.status_code == 200:
                    new_name = response.json()["name"]
                    result = self._info(f"Successfully added data with name {new_name}", 200)
                    self.selected = None
                    self.selected_id = None
                else:
                    logger.warning("Add returned status %s", response.status_code)
                    result = self._info(
                        f"Add was not successful, server return status {response.status_code}",
                        response.status_code, ok=False,
                    )
            else:
                response = self.store.write(self.selected.name, body)
                if response.status_code == 200:
                    updated = FirebaseWeatherForecast.from_json(response.json(), name=self.selected.name)
                    result = self._info(f"Successfully updated FirebaseWeatherForecast {updated}", 200)
                else:
                    logger.warning("Update of %s returned status %s", self.selected.name, response.status_code)
                    result = self._info(
                        f"Update was not successful, server return status {response.status_code}",
                        response.status_code, ok=False,
                    )

            self.fetch()
            self._close_dialog()
            return result

        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.exception("Saving forecast failed")
            self._close_dialog()
            return self._error(f"Error saving data {e}")

    def on_delete(self):
        if self.selected is None or not self.selected.name:
            return self._error("Error deleting data: select a saved forecast first")
        if self.store is None:
            return self._error("Error deleting data: forecasts have not been initialized")

        name = self.selected.name
        try:
            response = self.store.remove(name)
            if response.status_code == 200:
                result = self._info(f"Successfully deleted data with name {name}", 200)
                self.selected = None
                self.selected_id = None
                self.fetch()
            else:
                logger.warning("Delete of %s returned status %s", name, response.status_code)
                result = self._info(
                    f"Delete was not successful, server return status {response.status_code}",
                    response.status_code, ok=False,
                )
        except (requests.RequestException, ValueError) as e:
            logger.exception("Deleting forecast %s failed", name)
            result = self._error(f"Error deleting Firebase Realtime Database data {e}")

        self._close_dialog()
        return result

    def fetch(self):
        """Reload every forecast for the user, replacing the displayed list on success."""
        if self.store is None:
            return self._error("Error fetching data: forecasts have not been initialized")
        try:
            response = self.store.fetch_all()
            if response.status_code != 200:
                logger.warning("Fetch returned status %s", response.status_code)
                return self._info(
                    f"Fetch data was not successful, server return status {response.status_code}",
                    response.status_code, ok=False,
                )
            self.forecasts = parse_collection(response.json())
        except (requests.RequestException, ValueError, TypeError) as e:
            logger.exception("Fetching forecasts failed")
            return self._error(f"Error fetching Firebase Realtime Database data {e}")

        logger.info("Fetched %d forecasts", len(self.forecasts))
        return self._info("Successfully fetched Firebase Realtime Database data", 200)
