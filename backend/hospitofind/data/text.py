"""String helpers shared by slugs, sitemaps and country grouping."""
import re
import unicodedata

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

NIGERIA_STATES = frozenset(
    s.lower()
    for s in (
        "Abia", "Adamawa", "Akwa Ibom", "Anambra", "Bauchi", "Bayelsa", "Benue", "Borno",
        "Cross River", "Delta", "Ebonyi", "Edo", "Ekiti", "Enugu", "Gombe", "Imo", "Jigawa",
        "Kaduna", "Kano", "Katsina", "Kebbi", "Kogi", "Kwara", "Lagos", "Nasarawa", "Ogun",
        "Ondo", "Osun", "Oyo", "Plateau", "Rivers", "Sokoto", "Taraba", "Yobe", "Zamfara",
        "FCT", "Abuja",
    )
)


def sanitize(value: str | None) -> str:
    """
    URL slug: lowercase ASCII, accents stripped, runs of anything else collapsed to one hyphen.
    "Saint Nicholas Hospital, Lagos" -> "saint-nicholas-hospital-lagos"
    """
    if not value:
        return ""
    text = unicodedata.normalize("NFD", str(value).strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_ALNUM_RE.sub("-", text).strip("-")


def normalize_country(state: str | None) -> str:
    """Map any Nigerian state to "Nigeria"; otherwise capitalize the stored state value."""
    if not state or not state.strip():
        return "Unknown"
    trimmed = state.strip().lower()
    if trimmed in NIGERIA_STATES or trimmed == "nigeria":
        return "Nigeria"
    stripped = state.strip()
    return stripped[:1].upper() + stripped[1:]
