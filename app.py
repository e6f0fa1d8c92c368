import logging
import os
from datetime import datetime
from urllib.parse import urlencode

from flask import Flask, render_template, request, redirect, url_for, flash, session

from models import db, WeatherForecast, FirebaseWeatherForecast
from firebase_rtdb import FirebaseSession
from forecast_crud_view import ForecastCrudView

logger = logging.getLogger(__name__)


# Parses the shared forecast form fields; raises ValueError with a user-facing message.
def _forecast_fields(form):
    city = (form.get("city") or "").strip()
    description = (form.get("description") or "").strip()
    date_str = (form.get("date") or "").strip()
    temperature_str = (form.get("temperature_celsius") or "").strip()

    forecast_date = None
    if date_str:
        try:
            forecast_date = datetime.strptime(date_str, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format.")

    temperature = 0
    if temperature_str:
        try:
            temperature = int(temperature_str)
        except ValueError:
            raise ValueError("Temperature must be a whole number of degrees Celsius.")

    return {
        "city": city or None,
        "date": forecast_date,
        "temperature_celsius": temperature,
        "description": description or None,
    }


def _selected_from_form(form):
    fields = _forecast_fields(form)
    name = (form.get("name") or "").strip() or None
    return FirebaseWeatherForecast(name=name, **fields)


# Session context for the signed-in Firebase user; the Flask session wins over configuration.
def _current_firebase_session(app):
    return FirebaseSession(
        user_id=session.get("firebase_local_id") or app.config["FIREBASE_USER_ID"],
        id_token=session.get("firebase_id_token") or app.config["FIREBASE_ID_TOKEN"],
    )


def _flash_messages(view):
    for message in view.messages:
        flash(message.text, message.category)


# App factory — sets configuration, initializes the database, and registers routes.
def create_app():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///weather.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["FIREBASE_RTDB_BASE_URL"] = os.environ.get("FIREBASE_RTDB_BASE_URL")
    app.config["FIREBASE_USER_ID"] = os.environ.get("FIREBASE_USER_ID", "")
    app.config["FIREBASE_ID_TOKEN"] = os.environ.get("FIREBASE_ID_TOKEN", "")
    app.config["FIREBASE_TIMEOUT"] = float(os.environ.get("FIREBASE_TIMEOUT", "30"))

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    # urllib3 logs full request lines at DEBUG, including the `auth` token in the query string.
    logging.getLogger("urllib3").setLevel(logging.INFO)

    db.init_app(app)

    with app.app_context():
        db.create_all()

    def make_view():
        return ForecastCrudView(
            _current_firebase_session(app),
            base_url=app.config["FIREBASE_RTDB_BASE_URL"],
            timeout=app.config["FIREBASE_TIMEOUT"],
        )

    @app.route("/", methods=["GET"])
    def index():
        sort = request.args.get("sort", "date")
        direction = request.args.get("dir", "desc")

        sortable = {
            "id": WeatherForecast.id,
            "city": WeatherForecast.city,
            "date": WeatherForecast.date,
            "temperature_celsius": WeatherForecast.temperature_celsius,
            "description": WeatherForecast.description,
            "create_time": WeatherForecast.create_time,
            "update_time": WeatherForecast.update_time,
        }
        sort_column = sortable.get(sort, WeatherForecast.date)
        records = WeatherForecast.query.order_by(sort_column.asc() if direction == "asc" else sort_column.desc()).all()

        def sort_link(col_name):
            next_direction = "asc"
            if sort == col_name and direction == "asc":
                next_direction = "desc"
            params = {"sort": col_name, "dir": next_direction}
            return f"?{urlencode(params)}"

        return render_template("index.html", records=records, sort=sort, direction=direction, sort_link=sort_link)

    @app.route("/add", methods=["POST"])
    def add():
        try:
            fields = _forecast_fields(request.form)
        except ValueError as e:
            flash(str(e), "error")
            return redirect(url_for("index"))

        record = WeatherForecast(**fields)
        db.session.add(record)
        db.session.commit()
        logger.info("Added weather forecast %s", record.id)

        flash("Forecast added.", "success")
        return redirect(url_for("index"))

    @app.route("/edit/<int:record_id>", methods=["POST"])
    def edit(record_id):
        record = db.session.get(WeatherForecast, record_id)
        if record is None:
            flash("Forecast not found.", "error")
            return redirect(url_for("index"))
        try:
            fields = _forecast_fields(request.form)
        except ValueError as e:
            flash(str(e), "error")
            return redirect(url_for("index"))

        for field, value in fields.items():
            setattr(record, field, value)
        db.session.commit()

        flash("Forecast updated.", "success")
        return redirect(url_for("index"))

    # Deletes the selected record.
    @app.route("/delete/<int:record_id>", methods=["POST"])
    def delete(record_id):
        record = db.session.get(WeatherForecast, record_id)
        if record is None:
            flash("Forecast not found.", "error")
            return redirect(request.referrer or url_for("index"))
        db.session.delete(record)
        db.session.commit()
        flash("Forecast deleted.", "success")
        return redirect(request.referrer or url_for("index"))

    # ---------- Firebase Realtime Database CRUD ----------
    @app.route("/firebase", methods=["GET"])
    def firebase_forecasts():
        view = make_view()
        view.init()
        if request.args.get("new"):
            view.on_open_new()
        elif request.args.get("edit"):
            view.on_select(request.args["edit"])
        _flash_messages(view)
        return render_template("firebase_forecasts.html", view=view)

    @app.route("/firebase/generate", methods=["POST"])
    def firebase_generate():
        view = make_view()
        view.init()
        try:
            view.selected = _selected_from_form(request.form)
        except ValueError:
            view.on_open_new()
        view.selected_id = view.selected.name
        view.dialog_open = True
        view.on_generate_data()
        _flash_messages(view)
        return render_template("firebase_forecasts.html", view=view)

    @app.route("/firebase/save", methods=["POST"])
    def firebase_save():
        try:
            selected = _selected_from_form(request.form)
        except ValueError as e:
            flash(str(e), "error")
            return redirect(url_for("firebase_forecasts"))
        view = make_view()
        view.init()
        view.messages.clear()
        view.selected = selected
        view.selected_id = selected.name
        view.on_save()
        _flash_messages(view)
        return redirect(url_for("firebase_forecasts"))

    @app.route("/firebase/delete", methods=["POST"])
    def firebase_delete():
        view = make_view()
        view.init()
        view.messages.clear()
        name = (request.form.get("name") or "").strip()
        view.selected = FirebaseWeatherForecast(name=name) if name else None
        view.selected_id = name or None
        view.on_delete()
        _flash_messages(view)
        return redirect(url_for("firebase_forecasts"))

    return app

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
