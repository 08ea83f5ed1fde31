"""FastAPI web interface for Metro Connect."""

import datetime as dt
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import ALLOWED_ORIGINS, API_HOST, API_PORT, setup_logging
from .database import Database, get_db
from .exceptions import (
    MetroConnectException, PermissionDeniedException, UnauthorizedException, ValidationException,
)
from .search import search_trips
from .stations import (
    LINE_COLORS, LINE_DISPLAY_NAMES, LINE_ORDER, find_stations_by_line, grouped_stations,
)
from .validations import (
    ConnectionIn, ConnectionUpdate, MessageIn, ProfileIn, ReportIn, SearchParams, TripIn,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Metro Connect",
    description="Find fellow commuters travelling your metro route",
    version="0.1.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MetroConnectException)
async def metro_connect_exception_handler(request: Request, exc: MetroConnectException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%d): %s", request.method, request.url.path,
                       exc.status_code, exc.message)
    content = {"error": exc.message, "code": exc.code}
    if getattr(exc, "status", None):
        content["status"] = exc.status
    return JSONResponse(status_code=exc.status_code, content=content)


def _first_error_message(errors) -> str:
    if not errors:
        return "Invalid request"
    message = errors[0].get("msg", "Invalid request")
    return message.removeprefix("Value error, ")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": _first_error_message(exc.errors()), "code": "VALIDATION_ERROR"},
    )


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """The caller's user id, supplied by the fronting auth layer."""
    if not x_user_id:
        raise UnauthorizedException()
    return x_user_id


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Metro Connect"}


@app.get("/lines")
async def list_lines():
    """All lines in display order."""
    return [
        {"id": line.value, "name": LINE_DISPLAY_NAMES[line], "color": LINE_COLORS[line]}
        for line in LINE_ORDER
    ]


@app.get("/stations")
async def list_stations(line: Optional[str] = None, exclude: Optional[str] = None):
    """Stations grouped by line, optionally a single line."""
    groups = grouped_stations(exclude)
    if line:
        wanted = {s.line for s in find_stations_by_line(line)}
        groups = [(l, stations) for l, stations in groups if l in wanted]

    return {
        "count": sum(len(stations) for _, stations in groups),
        "lines": [
            {
                "line": l.value,
                "name": LINE_DISPLAY_NAMES[l],
                "color": LINE_COLORS[l],
                "stations": [
                    {
                        "id": s.id,
                        "name": s.name,
                        "sequence_index": s.sequence_index,
                        "is_interchange": s.is_interchange,
                    }
                    for s in stations
                ],
            }
            for l, stations in groups
        ],
    }


@app.get("/search")
def search(
    start_station: Optional[str] = None,
    end_station: Optional[str] = None,
    travel_date: Optional[str] = None,
    travel_time: Optional[str] = None,
    gender_filter: Optional[str] = None,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_db),
):
    """Ranked trips of other travellers near the searched route and time."""
    if not start_station or not end_station or not travel_date or not travel_time:
        raise ValidationException("Missing required search parameters")

    try:
        params = SearchParams(
            start_station=start_station,
            end_station=end_station,
            travel_date=travel_date,
            travel_time=travel_time,
            gender_filter=gender_filter or "All",
        )
    except ValidationError as e:
        raise ValidationException(_first_error_message(e.errors()))

    return search_trips(db, user_id, params.to_query())


@app.get("/trips")
def get_trips(user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    """The caller's upcoming trips."""
    return db.get_user_trips(user_id, from_date=dt.date.today())


@app.post("/trips", status_code=201)
def create_trip(trip: TripIn, user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    return db.create_trip(user_id, trip.model_dump())


@app.put("/trips/{trip_id}")
def update_trip(trip_id: int, trip: TripIn, user_id: str = Depends(current_user),
                db: Database = Depends(get_db)):
    return db.update_trip(user_id, trip_id, trip.model_dump())


@app.delete("/trips/{trip_id}")
def delete_trip(trip_id: int, user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    db.delete_trip(user_id, trip_id)
    return {"success": True}


@app.get("/profile")
def get_profile(user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    return db.get_profile(user_id)


@app.put("/profile")
def update_profile(profile: ProfileIn, user_id: str = Depends(current_user),
                   db: Database = Depends(get_db)):
    return db.upsert_profile(user_id, profile.model_dump())


@app.get("/people")
def search_people(q: Optional[str] = None, user_id: str = Depends(current_user),
                  db: Database = Depends(get_db)):
    """Other users by name, with the caller's connection status to each."""
    return db.search_people(user_id, q)


@app.get("/people/{person_id}/trips")
def get_person_trips(person_id: str, user_id: str = Depends(current_user),
                     db: Database = Depends(get_db)):
    """A connected user's upcoming trips."""
    if not db.are_connected(user_id, person_id):
        raise PermissionDeniedException("You must be connected to view their trips")
    return db.get_user_trips(person_id, from_date=dt.date.today())


@app.get("/connections")
def get_connections(user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    return db.get_connections(user_id)


@app.post("/connections", status_code=201)
def create_connection(request: ConnectionIn, user_id: str = Depends(current_user),
                      db: Database = Depends(get_db)):
    return db.create_connection(user_id, request.recipient_id)


@app.patch("/connections/{connection_id}")
def respond_to_connection(connection_id: int, request: ConnectionUpdate,
                          user_id: str = Depends(current_user), db: Database = Depends(get_db)):
    return db.respond_to_connection(user_id, connection_id, request.status)


@app.get("/messages")
def get_messages(connection_id: Optional[int] = None, user_id: str = Depends(current_user),
                 db: Database = Depends(get_db)):
    """Chat history of an accepted connection, oldest first."""
    if not connection_id:
        raise ValidationException("connection_id is required")
    return db.get_messages(user_id, connection_id)


@app.post("/messages", status_code=201)
def send_message(request: MessageIn, user_id: str = Depends(current_user),
                 db: Database = Depends(get_db)):
    return db.send_message(user_id, request.connection_id, request.content)


@app.post("/reports", status_code=201)
def create_report(request: ReportIn, user_id: str = Depends(current_user),
                  db: Database = Depends(get_db)):
    return db.create_report(user_id, request.reported_user_id, request.reason, request.description)


def run_server(host: str = API_HOST, port: int = API_PORT):
    """Run the FastAPI server."""
    import uvicorn
    setup_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
