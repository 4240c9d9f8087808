"""
Sitemap XML documents. Every builder takes plain data (already filtered to verified
hospitals) and returns the XML text.
"""
from xml.sax.saxutils import escape

from hospitofind.data.hospitals_repo import HospitalRecord
from hospitofind.data.text import sanitize

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"

SITEMAP_FILES = (
    "/sitemap-static.xml",
    "/sitemap-countries.xml",
    "/sitemap-cities.xml",
    "/sitemap-hospitals.xml",
    "/sitemap-images.xml",
)

STATIC_PAGES = (
    "/", "/findHospital", "/about", "/country", "/login", "/signup",
    "/dashboard", "/nearby", "/policy",
)

_XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'


def _esc(value: str) -> str:
    return escape(value, {'"': "&quot;", "'": "&apos;"})


def _lastmod(iso_ts: str) -> str:
    return iso_ts.split("T")[0]


def _url(loc: str, *, lastmod: str | None = None, priority: str | None = None, image: str | None = None) -> str:
    parts = [f"<loc>{_esc(loc)}</loc>"]
    if lastmod:
        parts.append(f"<lastmod>{lastmod}</lastmod>")
    if priority:
        parts.append(f"<priority>{priority}</priority>")
    if image:
        parts.append(f"<image:image><image:loc>{_esc(image)}</image:loc></image:image>")
    return "<url>" + "".join(parts) + "</url>"


def _urlset(items: list[str], with_images: bool = False) -> str:
    ns = f'xmlns="{SITEMAP_NS}"'
    if with_images:
        ns += f' xmlns:image="{IMAGE_NS}"'
    return _XML_HEADER + f"<urlset {ns}>\n" + "\n".join(items) + "\n</urlset>\n"


def _sitemapindex(locs: list[str]) -> str:
    items = [f"<sitemap><loc>{_esc(loc)}</loc></sitemap>" for loc in locs]
    return _XML_HEADER + f'<sitemapindex xmlns="{SITEMAP_NS}">\n' + "\n".join(items) + "\n</sitemapindex>\n"


def hospital_page_url(frontend_url: str, h: HospitalRecord) -> str:
    slug = h.slug or sanitize(h.name)
    return f"{frontend_url.rstrip('/')}/hospital/{sanitize(h.state)}/{sanitize(h.city)}/{slug}"


def sitemap_index(site_url: str) -> str:
    base = site_url.rstrip("/")
    return _sitemapindex([base + path for path in SITEMAP_FILES])


def static_sitemap(frontend_url: str) -> str:
    base = frontend_url.rstrip("/")
    return _urlset([_url(base + page, priority="0.6") for page in STATIC_PAGES])


def countries_sitemap(frontend_url: str, states: list[str]) -> str:
    base = frontend_url.rstrip("/")
    slugs = sorted({sanitize(s) for s in states if sanitize(s)})
    return _urlset([_url(f"{base}/country/{s}", priority="0.8") for s in slugs])


def cities_sitemap(frontend_url: str, pairs: list[tuple[str, str]]) -> str:
    """pairs: (state, city)."""
    base = frontend_url.rstrip("/")
    unique = sorted({(sanitize(state), sanitize(city)) for state, city in pairs if state and city})
    return _urlset([_url(f"{base}/country/{s}/{c}", priority="0.7") for s, c in unique])


def hospitals_sitemap(frontend_url: str, hospitals: list[HospitalRecord]) -> str:
    return _urlset(
        [_url(hospital_page_url(frontend_url, h), lastmod=_lastmod(h.updated_at), priority="0.9") for h in hospitals]
    )


def images_sitemap(frontend_url: str, hospitals: list[HospitalRecord]) -> str:
    items = [
        _url(hospital_page_url(frontend_url, h), lastmod=_lastmod(h.updated_at), image=h.photo_url)
        for h in hospitals
        if h.photo_url
    ]
    return _urlset(items, with_images=True)


def country_sitemap(site_url: str, state: str, cities: list[str]) -> str:
    """Index of the per-city sitemaps for one country (state value)."""
    base = site_url.rstrip("/")
    country = sanitize(state)
    slugs = sorted({sanitize(c) for c in cities if sanitize(c)})
    return _sitemapindex([f"{base}/sitemap-city/{country}/{c}.xml" for c in slugs])


def city_sitemap(frontend_url: str, hospitals: list[HospitalRecord]) -> str:
    items = [
        _url(hospital_page_url(frontend_url, h), lastmod=_lastmod(h.updated_at), image=h.photo_url or None)
        for h in hospitals
    ]
    return _urlset(items, with_images=True)
