"""Delhi Metro station data and the per-line station index."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple, Optional, Union


class MetroLine(str, Enum):
    """A named metro line."""
    RED = "Red"
    YELLOW = "Yellow"
    BLUE = "Blue"
    BLUE_BRANCH = "BlueBranch"
    GREEN = "Green"
    VIOLET = "Violet"
    PINK = "Pink"
    MAGENTA = "Magenta"
    GREY = "Grey"
    ORANGE = "Orange"
    RAPID_METRO = "RapidMetro"


LINE_DISPLAY_NAMES: dict[MetroLine, str] = {
    MetroLine.RED: "Red Line",
    MetroLine.YELLOW: "Yellow Line",
    MetroLine.BLUE: "Blue Line",
    MetroLine.BLUE_BRANCH: "Blue Line (Vaishali Branch)",
    MetroLine.GREEN: "Green Line",
    MetroLine.VIOLET: "Violet Line",
    MetroLine.PINK: "Pink Line",
    MetroLine.MAGENTA: "Magenta Line",
    MetroLine.GREY: "Grey Line",
    MetroLine.ORANGE: "Airport Express",
    MetroLine.RAPID_METRO: "Rapid Metro Gurugram",
}

LINE_COLORS: dict[MetroLine, str] = {
    MetroLine.RED: "#EE1C25",
    MetroLine.YELLOW: "#FFCB05",
    MetroLine.BLUE: "#0072BC",
    MetroLine.BLUE_BRANCH: "#4A9FD8",
    MetroLine.GREEN: "#00A651",
    MetroLine.VIOLET: "#8E4A9C",
    MetroLine.PINK: "#EC4899",
    MetroLine.MAGENTA: "#B5157E",
    MetroLine.GREY: "#9CA3AF",
    MetroLine.ORANGE: "#F7941D",
    MetroLine.RAPID_METRO: "#1E3A8A",
}

# Display order in the station picker
LINE_ORDER: list[MetroLine] = [
    MetroLine.RED,
    MetroLine.YELLOW,
    MetroLine.BLUE,
    MetroLine.BLUE_BRANCH,
    MetroLine.GREEN,
    MetroLine.VIOLET,
    MetroLine.PINK,
    MetroLine.MAGENTA,
    MetroLine.GREY,
    MetroLine.ORANGE,
    MetroLine.RAPID_METRO,
]

# Stations in order along each line, terminus to terminus.
# A name listed on several lines is an interchange.
LINE_SEQUENCES: dict[MetroLine, list[str]] = {
    MetroLine.RED: [
        "Shaheed Sthal (New Bus Adda)", "Hindon River", "Arthala", "Mohan Nagar",
        "Shyam Park", "Major Mohit Sharma Rajendra Nagar", "Raj Bagh", "Shaheed Nagar",
        "Dilshad Garden", "Jhilmil", "Mansarovar Park", "Shahdara", "Welcome",
        "Seelampur", "Shastri Park", "Kashmere Gate", "Tis Hazari", "Pul Bangash",
        "Pratap Nagar", "Shastri Nagar", "Inderlok", "Kanhaiya Nagar", "Keshav Puram",
        "Netaji Subhash Place", "Kohat Enclave", "Pitampura", "Rohini East",
        "Rohini West", "Rithala",
    ],
    MetroLine.YELLOW: [
        "Samaypur Badli", "Rohini Sector 18-19", "Haiderpur Badli Mor", "Jahangirpuri",
        "Adarsh Nagar", "Azadpur", "Model Town", "GTB Nagar", "Vishwavidyalaya",
        "Vidhan Sabha", "Civil Lines", "Kashmere Gate", "Chandni Chowk", "Chawri Bazar",
        "New Delhi", "Rajiv Chowk", "Patel Chowk", "Central Secretariat", "Udyog Bhawan",
        "Lok Kalyan Marg", "Jor Bagh", "Dilli Haat - INA", "AIIMS", "Green Park",
        "Hauz Khas", "Malviya Nagar", "Saket", "Qutab Minar", "Chhattarpur",
        "Sultanpur", "Ghitorni", "Arjan Garh", "Guru Dronacharya", "Sikanderpur",
        "MG Road", "IFFCO Chowk", "Millennium City Centre Gurugram",
    ],
    MetroLine.BLUE: [
        "Dwarka Sector 21", "Dwarka Sector 8", "Dwarka Sector 9", "Dwarka Sector 10",
        "Dwarka Sector 11", "Dwarka Sector 12", "Dwarka Sector 13", "Dwarka Sector 14",
        "Dwarka", "Dwarka Mor", "Nawada", "Uttam Nagar West", "Uttam Nagar East",
        "Janakpuri West", "Janakpuri East", "Tilak Nagar", "Subhash Nagar",
        "Tagore Garden", "Rajouri Garden", "Ramesh Nagar", "Moti Nagar", "Kirti Nagar",
        "Shadipur", "Patel Nagar", "Rajendra Place", "Karol Bagh", "Jhandewalan",
        "Ramakrishna Ashram Marg", "Rajiv Chowk", "Barakhamba Road", "Mandi House",
        "Supreme Court", "Indraprastha", "Yamuna Bank", "Akshardham", "Mayur Vihar-I",
        "Mayur Vihar Extension", "New Ashok Nagar", "Noida Sector 15", "Noida Sector 16",
        "Noida Sector 18", "Botanical Garden", "Golf Course", "Noida City Centre",
        "Noida Sector 34", "Noida Sector 52", "Noida Sector 61", "Noida Sector 59",
        "Noida Sector 62", "Noida Electronic City",
    ],
    MetroLine.BLUE_BRANCH: [
        "Yamuna Bank", "Laxmi Nagar", "Nirman Vihar", "Preet Vihar", "Karkarduma",
        "Anand Vihar ISBT", "Kaushambi", "Vaishali",
    ],
    MetroLine.GREEN: [
        "Inderlok", "Ashok Park Main", "Punjabi Bagh", "Shivaji Park", "Madipur",
        "Paschim Vihar East", "Paschim Vihar West", "Peeragarhi", "Udyog Nagar",
        "Maharaja Surajmal Stadium", "Nangloi", "Nangloi Railway Station",
        "Rajdhani Park", "Mundka", "Mundka Industrial Area", "Ghevra", "Tikri Kalan",
        "Tikri Border", "Pandit Shree Ram Sharma", "Bahadurgarh City",
        "Brigadier Hoshiar Singh",
    ],
    MetroLine.VIOLET: [
        "Kashmere Gate", "Lal Quila", "Jama Masjid", "Delhi Gate", "ITO", "Mandi House",
        "Janpath", "Central Secretariat", "Khan Market", "Jawaharlal Nehru Stadium",
        "Jangpura", "Lajpat Nagar", "Moolchand", "Kailash Colony", "Nehru Place",
        "Kalkaji Mandir", "Govind Puri", "Harkesh Nagar Okhla", "Jasola Apollo",
        "Sarita Vihar", "Mohan Estate", "Tughlakabad Station", "Badarpur Border",
        "Sarai", "NHPC Chowk", "Mewala Maharajpur", "Sector 28 Faridabad", "Badkal Mor",
        "Old Faridabad", "Neelam Chowk Ajronda", "Bata Chowk", "Escorts Mujesar",
        "Sant Surdas (Sihi)", "Raja Nahar Singh",
    ],
    MetroLine.PINK: [
        "Majlis Park", "Azadpur", "Shalimar Bagh", "Netaji Subhash Place", "Shakurpur",
        "Punjabi Bagh West", "ESI-Basaidarapur", "Rajouri Garden", "Mayapuri",
        "Naraina Vihar", "Delhi Cantt", "Durgabai Deshmukh South Campus",
        "Sir M. Vishweshwaraiah Moti Bagh", "Bhikaji Cama Place", "Sarojini Nagar",
        "Dilli Haat - INA", "South Extension", "Lajpat Nagar", "Vinobapuri", "Ashram",
        "Sarai Kale Khan - Hazrat Nizamuddin", "Mayur Vihar-I", "Mayur Vihar Pocket-1",
        "Trilokpuri Sanjay Lake", "East Vinod Nagar - Mayur Vihar-II",
        "Mandawali - West Vinod Nagar", "IP Extension", "Anand Vihar ISBT", "Karkarduma",
        "Karkarduma Court", "Krishna Nagar", "East Azad Nagar", "Welcome", "Jaffrabad",
        "Maujpur-Babarpur", "Gokulpuri", "Johri Enclave", "Shiv Vihar",
    ],
    MetroLine.MAGENTA: [
        "Janakpuri West", "Dabri Mor - Janakpuri South", "Dashrathpuri", "Palam",
        "Sadar Bazaar Cantonment", "Terminal 1 IGI Airport", "Shankar Vihar",
        "Vasant Vihar", "Munirka", "R.K. Puram", "IIT Delhi", "Hauz Khas",
        "Panchsheel Park", "Chirag Delhi", "Greater Kailash", "Nehru Enclave",
        "Kalkaji Mandir", "Okhla NSIC", "Sukhdev Vihar", "Jamia Millia Islamia",
        "Okhla Vihar", "Jasola Vihar Shaheen Bagh", "Kalindi Kunj",
        "Okhla Bird Sanctuary", "Botanical Garden",
    ],
    MetroLine.GREY: [
        "Dwarka", "Nangli", "Najafgarh", "Dhansa Bus Stand",
    ],
    MetroLine.ORANGE: [
        "New Delhi", "Shivaji Stadium", "Dhaula Kuan", "Delhi Aerocity", "IGI Airport",
        "Dwarka Sector 21", "Yashobhoomi Dwarka Sector 25",
    ],
    MetroLine.RAPID_METRO: [
        "Sector 55-56", "Sector 54 Chowk", "Sector 53-54", "Sector 42-43", "Phase 1",
        "Sikanderpur", "Phase 2", "Belvedere Towers", "Cyber City", "Moulsari Avenue",
        "Phase 3",
    ],
}


@dataclass(frozen=True)
class Station:
    """A station as served by one line. Interchanges get one record per line."""
    id: str
    name: str
    line: MetroLine
    sequence_index: int
    is_interchange: bool


class StationEntry(NamedTuple):
    """A (line, position) pair for one station name."""
    line: MetroLine
    sequence_index: int


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def build_stations(sequences: Mapping[MetroLine, list[str]]) -> list[Station]:
    """Flatten line sequences into Station records."""
    line_counts = Counter(name for names in sequences.values() for name in set(names))
    stations = []
    for line, names in sequences.items():
        for index, name in enumerate(names):
            stations.append(Station(
                id=f"{line.value.lower()}-{_slug(name)}",
                name=name,
                line=line,
                sequence_index=index,
                is_interchange=line_counts[name] > 1,
            ))
    return stations


def build_station_index(stations: Iterable[Station]) -> Mapping[str, tuple[StationEntry, ...]]:
    """Map each station name to every (line, sequence_index) it occupies.

    The result is read-only; building it has no side effects, so callers
    with their own topology can build a private index.
    """
    index: dict[str, list[StationEntry]] = {}
    for station in stations:
        index.setdefault(station.name, []).append(
            StationEntry(station.line, station.sequence_index)
        )
    return MappingProxyType({name: tuple(entries) for name, entries in index.items()})


ALL_STATIONS: list[Station] = build_stations(LINE_SEQUENCES)

# Built once per process and never mutated
STATION_INDEX = build_station_index(ALL_STATIONS)

# Common names people type for busy stations
STATION_ALIASES: dict[str, str] = {
    "cp": "Rajiv Chowk",
    "connaught place": "Rajiv Chowk",
    "ndls": "New Delhi",
    "new delhi railway station": "New Delhi",
    "ina": "Dilli Haat - INA",
    "du": "Vishwavidyalaya",
    "delhi university": "Vishwavidyalaya",
    "nsp": "Netaji Subhash Place",
    "airport": "IGI Airport",
    "t3": "IGI Airport",
    "t1": "Terminal 1 IGI Airport",
    "aerocity": "Delhi Aerocity",
    "hazrat nizamuddin": "Sarai Kale Khan - Hazrat Nizamuddin",
    "nizamuddin": "Sarai Kale Khan - Hazrat Nizamuddin",
    "red fort": "Lal Quila",
    "cyber hub": "Cyber City",
    "huda city centre": "Millennium City Centre Gurugram",
    "jamia": "Jamia Millia Islamia",
    "iit": "IIT Delhi",
    "anand vihar": "Anand Vihar ISBT",
    "noida 18": "Noida Sector 18",
}

_NAME_LOOKUP: dict[str, str] = {name.lower(): name for name in STATION_INDEX}


def station_names() -> list[str]:
    """All distinct station names, sorted."""
    return sorted(STATION_INDEX)


def find_station(query: str) -> Optional[str]:
    """Resolve free text to a canonical station name (fuzzy match)."""
    query_lower = query.lower().strip()
    if not query_lower:
        return None

    if query_lower in _NAME_LOOKUP:
        return _NAME_LOOKUP[query_lower]

    if query_lower in STATION_ALIASES:
        return STATION_ALIASES[query_lower]

    # Partial match - prefer shorter station names (more specific)
    matches = [
        (len(lowered), name)
        for lowered, name in _NAME_LOOKUP.items()
        if query_lower in lowered
    ]
    if matches:
        matches.sort()
        return matches[0][1]

    return None


def _to_line(line: Union[MetroLine, str]) -> Optional[MetroLine]:
    if isinstance(line, MetroLine):
        return line
    for candidate in MetroLine:
        if candidate.value.lower() == line.lower():
            return candidate
    return None


def find_stations_by_line(line: Union[MetroLine, str]) -> list[Station]:
    """Find all stations on a given line, in route order."""
    metro_line = _to_line(line)
    if metro_line is None:
        return []
    return [s for s in ALL_STATIONS if s.line == metro_line]


def get_station_lines(name: str) -> list[MetroLine]:
    """Get all lines serving a station."""
    return [entry.line for entry in STATION_INDEX.get(name, ())]


def grouped_stations(exclude: Optional[str] = None) -> list[tuple[MetroLine, list[Station]]]:
    """Stations grouped by line in display order, one entry per name per line."""
    groups = []
    for line in LINE_ORDER:
        seen = set()
        stations = []
        for station in find_stations_by_line(line):
            if station.name == exclude or station.name in seen:
                continue
            seen.add(station.name)
            stations.append(station)
        if stations:
            groups.append((line, stations))
    return groups
