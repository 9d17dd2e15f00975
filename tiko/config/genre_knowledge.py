"""Static knowledge about electronic music genres, venues and cities.

# ─── PURPOSE ──────────────────────────────────────────────────────────
#
# Curated, hand-coded tables the scoring and taste services lean on:
#
#   - GENRE_SIMILARITY: how close two genres sound (0-1), e.g. a
#     "deep house" listener is likely to enjoy a "house" night (0.85).
#   - GENRE_AUDIO_PROFILES: the typical energy / danceability / valence /
#     tempo of a genre, used to expand a listener's genres by sound.
#   - Keyword sets used to decide whether an event is a music event and
#     whether a genre counts as EDM.
#   - City lookup tables for the Ticketmaster and EDMTrain APIs.
#   - A seed catalog of well-known electronic music venues.
#
# All functions are pure (no I/O).  Tables are built once at import time.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import math
import re


# ═════════════════════════════════════════════════════════════════════════
# 1. GENRE SIMILARITY MATRIX
# ═════════════════════════════════════════════════════════════════════════
# Directed entries; lookups check both directions, so an entry only needs
# to appear once.  Values come from audio-feature and co-listening
# analysis of the catalog.

GENRE_SIMILARITY: dict[str, dict[str, float]] = {
    # House family
    "house": {
        "deep house": 0.85, "tech house": 0.78, "progressive house": 0.82,
        "future house": 0.75, "tropical house": 0.68, "disco": 0.45,
        "funk": 0.42, "soul": 0.38, "garage": 0.55, "electronic": 0.72,
        "dance": 0.68,
    },
    "deep house": {
        "house": 0.85, "minimal house": 0.88, "microhouse": 0.82,
        "soulful house": 0.79, "ambient": 0.45, "downtempo": 0.52,
        "jazz": 0.35, "soul": 0.48, "progressive house": 0.65,
        "tech house": 0.58,
    },
    "tech house": {
        "house": 0.78, "techno": 0.72, "minimal techno": 0.68,
        "progressive house": 0.62, "industrial": 0.35, "experimental": 0.28,
        "electronic": 0.75, "dance": 0.65,
    },
    "progressive house": {
        "house": 0.82, "trance": 0.65, "progressive trance": 0.78,
        "deep house": 0.65, "tech house": 0.62, "ambient": 0.42,
        "electronic": 0.78, "melodic techno": 0.58,
    },
    # Techno family
    "techno": {
        "minimal techno": 0.85, "hard techno": 0.78, "acid techno": 0.72,
        "detroit techno": 0.82, "tech house": 0.72, "industrial": 0.55,
        "experimental": 0.48, "ambient": 0.35, "electronic": 0.75,
        "melodic techno": 0.68,
    },
    "minimal techno": {
        "techno": 0.85, "microhouse": 0.65, "ambient techno": 0.72,
        "minimal": 0.78, "experimental": 0.52, "ambient": 0.48,
        "deep house": 0.45, "melodic techno": 0.62,
    },
    "melodic techno": {
        "techno": 0.68, "progressive house": 0.58, "trance": 0.52,
        "ambient": 0.45, "minimal techno": 0.62, "progressive trance": 0.55,
        "electronic": 0.65, "deep house": 0.48,
    },
    # Trance family
    "trance": {
        "progressive trance": 0.88, "uplifting trance": 0.82,
        "psytrance": 0.65, "vocal trance": 0.78, "progressive house": 0.65,
        "progressive rock": 0.35, "ambient": 0.42, "new age": 0.28,
        "electronic": 0.72, "melodic techno": 0.52,
    },
    "progressive trance": {
        "trance": 0.88, "progressive house": 0.78, "uplifting trance": 0.72,
        "ambient": 0.48, "electronic": 0.75, "melodic techno": 0.55,
    },
    "psytrance": {
        "trance": 0.65, "goa trance": 0.92, "psychedelic rock": 0.45,
        "world music": 0.32, "experimental": 0.48, "electronic": 0.62,
    },
    # Bass music family
    "dubstep": {
        "future bass": 0.75, "riddim": 0.82, "melodic dubstep": 0.78,
        "chillstep": 0.65, "hip hop": 0.45, "trap": 0.68,
        "electronic rock": 0.52, "electronic": 0.72, "bass": 0.85,
    },
    "future bass": {
        "dubstep": 0.75, "melodic dubstep": 0.85, "chillstep": 0.72,
        "trap": 0.65, "pop": 0.48, "hip hop": 0.42, "rb": 0.38,
        "electronic": 0.78, "bass": 0.72,
    },
    "drum and bass": {
        "liquid dnb": 0.88, "neurofunk": 0.82, "jungle": 0.85,
        "breakbeat": 0.78, "hip hop": 0.45, "jazz": 0.35, "funk": 0.42,
        "electronic": 0.75, "bass": 0.82,
    },
    # Electronic crossover
    "electronic": {
        "house": 0.72, "techno": 0.75, "trance": 0.72, "dubstep": 0.72,
        "ambient": 0.58, "synthwave": 0.65, "electro": 0.78, "dance": 0.82,
        "edm": 0.88,
    },
    "ambient": {
        "downtempo": 0.82, "chillout": 0.85, "new age": 0.65,
        "experimental": 0.58, "deep house": 0.45, "minimal techno": 0.48,
        "drone": 0.72, "electronic": 0.58,
    },
    "synthwave": {
        "retrowave": 0.92, "darkwave": 0.75, "new wave": 0.68,
        "electronic": 0.65, "pop": 0.45, "indie electronic": 0.58,
    },
    # Rock crossover
    "alternative rock": {
        "indie rock": 0.78, "grunge": 0.72, "postrock": 0.65,
        "math rock": 0.58, "electronic rock": 0.55, "industrial": 0.48,
        "synthwave": 0.42, "rock": 0.85,
    },
    "indie rock": {
        "alternative rock": 0.78, "indie pop": 0.72, "indie folk": 0.65,
        "garage rock": 0.68, "indie electronic": 0.58, "chillwave": 0.52,
        "dream pop": 0.62, "rock": 0.72,
    },
    # Pop crossover
    "pop": {
        "dance pop": 0.85, "electropop": 0.82, "synthpop": 0.78,
        "indie pop": 0.72, "electronic": 0.65, "house": 0.58,
        "future bass": 0.48,
    },
    "dance pop": {
        "pop": 0.85, "electropop": 0.88, "euro pop": 0.82, "house": 0.68,
        "electronic": 0.72, "disco": 0.65,
    },
    # Hip-hop crossover
    "hip hop": {
        "trap": 0.78, "rap": 0.92, "rb": 0.65, "electronic": 0.45,
        "dubstep": 0.45, "future bass": 0.42, "drum and bass": 0.45,
    },
    "trap": {
        "hip hop": 0.78, "future bass": 0.65, "dubstep": 0.68,
        "electronic": 0.58, "rap": 0.72,
    },
    # Other electronic subgenres
    "breakbeat": {
        "drum and bass": 0.78, "jungle": 0.82, "big beat": 0.75,
        "electronic": 0.68,
    },
    "garage": {
        "uk garage": 0.95, "2step": 0.88, "house": 0.55, "electronic": 0.62,
    },
    "hardstyle": {
        "hardcore": 0.82, "hard techno": 0.68, "gabber": 0.75,
        "electronic": 0.65,
    },
    "chillout": {
        "ambient": 0.85, "downtempo": 0.88, "lounge": 0.82, "trip hop": 0.65,
        "electronic": 0.62,
    },
    "trip hop": {
        "downtempo": 0.78, "chillout": 0.65, "hip hop": 0.58,
        "electronic": 0.68, "ambient": 0.55,
    },
}

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_genre(genre: str) -> str:
    """Lowercase, spell out ``&`` as ``and``, strip punctuation, collapse spaces.

    ``"Drum & Bass"`` and ``"drum and bass"`` normalize to the same key, as
    do ``"R&B"`` / ``"rb"`` and ``"Post-Rock"`` / ``"postrock"``.
    """
    text = genre.lower().replace(" & ", " and ")
    text = _NON_WORD.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


# ═════════════════════════════════════════════════════════════════════════
# 2. GENRE AUDIO PROFILES AND SUBGENRES
# ═════════════════════════════════════════════════════════════════════════

GENRE_AUDIO_PROFILES: dict[str, dict[str, float]] = {
    "house": {"energy": 0.8, "danceability": 0.9, "valence": 0.7, "tempo": 125},
    "deep house": {"energy": 0.6, "danceability": 0.8, "valence": 0.6, "tempo": 120},
    "tech house": {"energy": 0.8, "danceability": 0.9, "valence": 0.6, "tempo": 128},
    "progressive house": {"energy": 0.7, "danceability": 0.8, "valence": 0.7, "tempo": 128},
    "techno": {"energy": 0.9, "danceability": 0.8, "valence": 0.4, "tempo": 130},
    "minimal techno": {"energy": 0.7, "danceability": 0.7, "valence": 0.3, "tempo": 125},
    "detroit techno": {"energy": 0.8, "danceability": 0.8, "valence": 0.5, "tempo": 130},
    "trance": {"energy": 0.8, "danceability": 0.7, "valence": 0.8, "tempo": 132},
    "progressive trance": {"energy": 0.7, "danceability": 0.7, "valence": 0.7, "tempo": 130},
    "psytrance": {"energy": 0.9, "danceability": 0.8, "valence": 0.6, "tempo": 145},
    "electronic": {"energy": 0.6, "danceability": 0.6, "valence": 0.6, "tempo": 120},
    "edm": {"energy": 0.9, "danceability": 0.9, "valence": 0.8, "tempo": 128},
    "dubstep": {"energy": 0.9, "danceability": 0.8, "valence": 0.5, "tempo": 140},
    "drum and bass": {"energy": 0.9, "danceability": 0.8, "valence": 0.6, "tempo": 174},
    "bass": {"energy": 0.8, "danceability": 0.8, "valence": 0.6, "tempo": 150},
    "ambient": {"energy": 0.2, "danceability": 0.2, "valence": 0.5, "tempo": 80},
    "chillout": {"energy": 0.4, "danceability": 0.5, "valence": 0.7, "tempo": 90},
    "downtempo": {"energy": 0.3, "danceability": 0.4, "valence": 0.6, "tempo": 85},
}

GENRE_SUBGENRES: dict[str, list[str]] = {
    "house": [
        "deep house", "tech house", "progressive house", "electro house",
        "future house", "tropical house", "acid house", "chicago house",
    ],
    "deep house": ["minimal deep house", "vocal deep house", "organic house"],
    "tech house": ["minimal tech house", "vocal tech house"],
    "progressive house": ["melodic progressive house"],
    "techno": [
        "minimal techno", "detroit techno", "berlin techno", "acid techno",
        "hard techno", "melodic techno", "industrial techno",
    ],
    "minimal techno": ["dub techno", "ambient techno", "microhouse"],
    "trance": [
        "progressive trance", "uplifting trance", "psytrance",
        "vocal trance", "tech trance",
    ],
    "psytrance": ["goa trance", "forest psytrance"],
    "electronic": ["synthwave", "chillwave"],
    "edm": ["big room", "festival edm"],
    "dubstep": ["melodic dubstep", "riddim"],
    "drum and bass": ["liquid dnb", "neurofunk", "jungle"],
    "bass": ["future bass", "melodic bass"],
    "ambient": ["dark ambient", "drone"],
    "chillout": ["lounge", "downtempo", "trip hop"],
}

GENRE_CROSSOVERS: dict[str, list[str]] = {
    "house": ["techno", "garage"],
    "deep house": ["house", "techno", "ambient", "downtempo"],
    "tech house": ["house", "techno"],
    "progressive house": ["house", "trance", "progressive trance"],
    "techno": ["house", "ambient"],
    "minimal techno": ["techno", "ambient"],
    "detroit techno": ["techno"],
    "trance": ["progressive house", "ambient"],
    "progressive trance": ["trance", "progressive house", "ambient"],
    "psytrance": ["trance"],
    "electronic": ["ambient"],
    "edm": ["house", "trance", "dubstep"],
    "dubstep": ["bass", "electronic", "drum and bass"],
    "drum and bass": ["dubstep", "bass"],
    "bass": ["dubstep", "electronic"],
    "ambient": ["electronic"],
    "chillout": ["ambient", "electronic"],
    "downtempo": ["chillout", "ambient"],
}


def audio_profile_similarity(features: dict[str, float] | None, profile: dict[str, float] | None) -> float:
    """Exponential-decay similarity over energy, danceability and valence.

    Each feature contributes ``exp(-3 * |a - b|)``; the result is the mean
    over features present on both sides, 0.0 when none are.
    """
    if not features or not profile:
        return 0.0
    scores = [
        math.exp(-abs(features[name] - profile[name]) * 3)
        for name in ("energy", "danceability", "valence")
        if features.get(name) is not None and profile.get(name) is not None
    ]
    return sum(scores) / len(scores) if scores else 0.0


def expand_genres(genres: list[str], audio_features: dict[str, float] | None = None) -> list[str]:
    """Expand a listener's genres with subgenres and sound-compatible neighbours.

    Every known genre contributes its subgenres.  A crossover genre is only
    added (with its first two subgenres) when the listener's averaged audio
    features sit close to the source genre's profile (similarity > 0.7).
    Order is preserved; the input genres come first.
    """
    expanded: dict[str, None] = {normalize_genre(g): None for g in genres if g}
    crossovers: dict[str, None] = {}

    for genre in list(expanded):
        for sub in GENRE_SUBGENRES.get(genre, []):
            expanded.setdefault(sub, None)
        profile = GENRE_AUDIO_PROFILES.get(genre)
        for cross in GENRE_CROSSOVERS.get(genre, []):
            if cross not in GENRE_AUDIO_PROFILES:
                continue
            if audio_profile_similarity(audio_features, profile) > 0.7:
                crossovers.setdefault(cross, None)
                for sub in GENRE_SUBGENRES.get(cross, [])[:2]:
                    expanded.setdefault(sub, None)

    for cross in crossovers:
        expanded.setdefault(cross, None)
    return list(expanded)


# ═════════════════════════════════════════════════════════════════════════
# 3. KEYWORD SETS
# ═════════════════════════════════════════════════════════════════════════

EDM_KEYWORDS: tuple[str, ...] = ("house", "techno", "trance", "electronic", "edm", "dance")

# Genre words counted by the profile-less baseline score.
SCORING_EDM_KEYWORDS: tuple[str, ...] = (
    "house", "techno", "trance", "dubstep", "electronic", "dance", "edm",
)

# Words in event names / descriptions / venue names that mark a music event.
MUSIC_KEYWORDS: tuple[str, ...] = (
    "dj", "music", "concert", "festival", "electronic", "house", "techno",
    "edm", "dance", "bass", "club", "party", "live music", "band", "artist",
    "performance", "tour", "show", "live", "rave", "b2b", "trance",
    "dubstep", "drum and bass",
)

# Words that mark a listing as an attraction rather than a show.  "tour"
# is in both lists on purpose: a castle tour and a DJ tour cancel out and
# the remaining words decide.
NON_MUSIC_KEYWORDS: tuple[str, ...] = (
    "admission", "general admission", "museum", "exhibition", "castle",
    "historic", "tour", "visit", "sightseeing", "gallery", "hockey",
    "basketball", "baseball", "comedy", "theatre", "theater",
)

CLUB_VENUE_KEYWORDS: tuple[str, ...] = (
    "club", "festival", "warehouse", "hall", "lounge", "rave", "afterhours",
)


def is_edm_genre(genre: str) -> bool:
    """Return True when the genre name contains one of :data:`EDM_KEYWORDS`."""
    lowered = genre.lower()
    return any(keyword in lowered for keyword in EDM_KEYWORDS)


def count_keywords(text: str, keywords: tuple[str, ...]) -> int:
    """Count how many keywords appear as whole words/phrases in ``text``."""
    lowered = f" {_WHITESPACE.sub(' ', text.lower())} "
    return sum(1 for keyword in keywords if re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", lowered))


# ═════════════════════════════════════════════════════════════════════════
# 4. CITY LOOKUPS
# ═════════════════════════════════════════════════════════════════════════
# Unknown cities resolve to Toronto, the platform's home market.

TICKETMASTER_DMA_IDS: dict[str, str] = {
    "toronto": "527", "vancouver": "528", "montreal": "522", "calgary": "530",
    "ottawa": "521", "edmonton": "529", "winnipeg": "520",
    "quebec city": "523", "hamilton": "525", "london": "526",
    "new york": "345", "los angeles": "324", "chicago": "249",
    "san francisco": "382", "boston": "235", "seattle": "385",
    "miami": "332", "denver": "264", "austin": "218", "las vegas": "319",
}

EDMTRAIN_LOCATION_IDS: dict[str, str] = {
    "toronto": "146", "vancouver": "147", "montreal": "96", "calgary": "28",
    "ottawa": "106", "edmonton": "47", "winnipeg": "156", "new york": "99",
    "los angeles": "87", "chicago": "35", "san francisco": "125",
    "boston": "23", "seattle": "128", "miami": "93", "denver": "43",
    "austin": "16", "las vegas": "85",
}

DEFAULT_CITY = "Toronto"


def get_dma_id(city: str) -> str:
    """Return the Ticketmaster DMA id for ``city`` (Toronto when unknown)."""
    return TICKETMASTER_DMA_IDS.get(city.lower().strip(), TICKETMASTER_DMA_IDS["toronto"])


def get_edmtrain_location_id(city: str) -> str:
    """Return the EDMTrain location id for ``city`` (Toronto when unknown)."""
    return EDMTRAIN_LOCATION_IDS.get(city.lower().strip(), EDMTRAIN_LOCATION_IDS["toronto"])


# Countries a new city can be requested in, keyed by the names users type.
TICKETMASTER_COUNTRY_CODES: dict[str, str] = {
    "canada": "CA", "united states": "US", "usa": "US",
    "united kingdom": "GB", "uk": "GB", "germany": "DE",
    "france": "FR", "netherlands": "NL", "spain": "ES",
    "italy": "IT", "australia": "AU", "brazil": "BR",
    "mexico": "MX", "japan": "JP", "south korea": "KR",
}

# Queue order for city requests; unlisted countries get 30.
REGIONAL_PRIORITY: dict[str, int] = {
    "US": 100, "CA": 95, "GB": 90, "AU": 85, "DE": 80, "FR": 75,
    "NL": 70, "ES": 65, "IT": 60, "BR": 55, "MX": 50, "JP": 45,
}


def get_country_code(country: str) -> str | None:
    """Return the Ticketmaster country code for ``country``, or ``None`` if unsupported."""
    return TICKETMASTER_COUNTRY_CODES.get(" ".join(country.lower().split()))


def get_regional_priority(country_code: str) -> int:
    return REGIONAL_PRIORITY.get(country_code.upper(), 30)


# ═════════════════════════════════════════════════════════════════════════
# 5. SEED VENUE CATALOG AND DEFAULT TASTE
# ═════════════════════════════════════════════════════════════════════════

SEED_VENUES: list[dict] = [
    {"id": "v1", "name": "Fabric London", "location": "London, UK",
     "coordinates": (51.5203, -0.1019), "genres": ["techno", "house", "drum & bass"],
     "description": "Iconic London nightclub known for electronic music",
     "website": "https://fabriclondon.com", "capacity": 1600},
    {"id": "v2", "name": "Berghain", "location": "Berlin, Germany",
     "coordinates": (52.5111, 13.4399), "genres": ["techno", "house"],
     "description": "Famous Berlin techno club with strict door policy",
     "website": "https://berghain.de", "capacity": 1500},
    {"id": "v3", "name": "Output", "location": "New York, USA",
     "coordinates": (40.7223, -73.9588), "genres": ["house", "techno", "electronic"],
     "description": "Brooklyn-based nightclub with focus on sound quality",
     "website": "https://outputclub.com", "capacity": 1200},
    {"id": "v4", "name": "Echostage", "location": "Washington DC, USA",
     "coordinates": (38.9183, -76.9726), "genres": ["edm", "trance", "dubstep"],
     "description": "Massive venue hosting top EDM artists",
     "website": "https://echostage.com", "capacity": 3000},
    {"id": "v5", "name": "Ministry of Sound", "location": "London, UK",
     "coordinates": (51.4963, -0.0994), "genres": ["house", "trance", "edm"],
     "description": "Legendary London club and record label",
     "website": "https://ministryofsound.com", "capacity": 1500},
    {"id": "v6", "name": "Printworks", "location": "London, UK",
     "coordinates": (51.4983, -0.0514), "genres": ["techno", "house", "drum & bass"],
     "description": "Massive venue in former printing factory",
     "website": "https://printworkslondon.co.uk", "capacity": 6000},
    {"id": "v7", "name": "Hï Ibiza", "location": "Ibiza, Spain",
     "coordinates": (38.9177, 1.4082), "genres": ["house", "edm", "techno"],
     "description": "Modern superclub in Ibiza",
     "website": "https://hiibiza.com", "capacity": 4000},
    {"id": "v8", "name": "Exchange LA", "location": "Los Angeles, USA",
     "coordinates": (34.0454, -118.2491), "genres": ["house", "trance", "techno"],
     "description": "Multi-level club in historic bank building",
     "website": "https://exchangela.com", "capacity": 1500},
    {"id": "v9", "name": "Stereo Montreal", "location": "Montreal, Canada",
     "coordinates": (45.5088, -73.5549), "genres": ["house", "techno"],
     "description": "Afterhours club with legendary sound system",
     "website": "https://stereo-nightclub.com", "capacity": 1000},
    {"id": "v10", "name": "Zouk Singapore", "location": "Singapore",
     "coordinates": (1.3104, 103.8405), "genres": ["edm", "house", "trance"],
     "description": "Award-winning club in Singapore",
     "website": "https://zoukclub.com", "capacity": 2000},
    {"id": "v11", "name": "The Warehouse Project", "location": "Manchester, UK",
     "coordinates": (53.4754, -2.2385), "genres": ["house", "techno", "drum & bass"],
     "description": "Seasonal series of club nights",
     "website": "https://thewarehouseproject.com", "capacity": 10000},
    {"id": "v12", "name": "Tresor", "location": "Berlin, Germany",
     "coordinates": (52.5102, 13.4201), "genres": ["techno", "house"],
     "description": "Historic techno club in former power plant",
     "website": "https://tresorberlin.com", "capacity": 1000},
]

# Genre weights (0-1) assumed for a listener with no taste data yet.
DEFAULT_GENRE_WEIGHTS: dict[str, float] = {
    "house": 0.85,
    "drum and bass": 0.75,
    "techno": 0.70,
    "trance": 0.60,
    "future bass": 0.55,
    "dubstep": 0.40,
}
