from dataclasses import dataclass
import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


# Celsius -> Fahrenheit, truncated toward zero like the stored integer readings.
def to_fahrenheit(celsius):
    return int(32 + (celsius or 0) / 0.5556)


class WeatherForecast(db.Model):
    __tablename__ = "weather_forecast"

    id = db.Column("weatherforecast_id", db.Integer, primary_key=True, autoincrement=True)
    city = db.Column(db.String(120), index=True)
    date = db.Column(db.Date, index=True)
    temperature_celsius = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.String(255))

    version = db.Column(db.Integer, nullable=False)
    create_time = db.Column(db.DateTime, nullable=False)
    update_time = db.Column(db.DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def temperature_fahrenheit(self):
        return to_fahrenheit(self.temperature_celsius)

    def __eq__(self, other):
        if not isinstance(other, WeatherForecast):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self):
        return hash((WeatherForecast, self.id))

    def __repr__(self):
        return f"<WeatherForecast {self.id} {self.city} {self.date}>"


@event.listens_for(WeatherForecast, "before_insert")
def _before_persist(mapper, connection, target):
    target.create_time = datetime.datetime.now()


@event.listens_for(WeatherForecast, "before_update")
def _before_update(mapper, connection, target):
    target.update_time = datetime.datetime.now()


@dataclass
class FirebaseWeatherForecast:
    """A forecast as stored under a user's node in the Realtime Database.

    `name` is the push key the database generates; it stays None until the
    record has been saved once.
    """

    name: str | None = None
    city: str | None = None
    date: datetime.date | None = None
    temperature_celsius: int = 0
    description: str | None = None

    @property
    def temperature_fahrenheit(self):
        return to_fahrenheit(self.temperature_celsius)

    @property
    def is_new(self):
        return not self.name

    def to_json(self):
        body = {
            "name": self.name,
            "city": self.city,
            "date": self.date.isoformat() if self.date else None,
            "description": self.description,
            "temperatureCelsius": self.temperature_celsius,
            "temperatureFahrenheit": self.temperature_fahrenheit,
        }
        return {key: value for key, value in body.items() if value is not None}

    @classmethod
    def from_json(cls, data, name=None):
        """
        Build a record from a decoded JSON object. Unknown keys are ignored and
        an explicit `name` wins over any name in the body.
        Raises ValueError for a malformed date or temperature.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for a forecast, got {type(data).__name__}")

        raw_date = data.get("date")
        if isinstance(raw_date, str) and raw_date:
            parsed_date = datetime.date.fromisoformat(raw_date)
        else:
            parsed_date = None

        raw_temp = data.get("temperatureCelsius")
        return cls(
            name=name if name is not None else data.get("name"),
            city=data.get("city"),
            date=parsed_date,
            temperature_celsius=int(raw_temp) if raw_temp is not None else 0,
            description=data.get("description"),
        )

    def __str__(self):
        return (
            f"FirebaseWeatherForecast(name={self.name}, city={self.city}, date={self.date}, "
            f"temperatureCelsius={self.temperature_celsius}, description={self.description})"
        )
